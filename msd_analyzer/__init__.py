"""
MSD Analyzer - ensemble mean square displacement and velocity
autocorrelation for single-particle-tracking trajectories

Trajectories may be sampled at arbitrary, irregular and per-track
distinct time points.

Main Features:
- Discovery of all distinct time lags with tolerance-based binning
- Per-track MSD and velocity autocorrelation over every valid sample pair
- Ensemble averages weighted by pair counts, with the standard error
  of the weighted mean
- Drift estimation ('centroid' or 'velocity') and correction
- Pooling of ensemble curves from several datasets

Example Usage:
-------------
>>> from msd_analyzer import MSDAnalyzer, pool
>>>
>>> ma = MSDAnalyzer(2, space_units='µm', time_units='s')
>>> ma.add_all(tracks)          # (t, x, y) arrays or Trajectory objects
>>> ma.compute_drift('velocity')
>>> msd = ma.get_mean_msd()
>>> vcorr = ma.get_mean_vcorr(normalize=True)
>>> print(ma.summary())
>>>
>>> # Combine datasets
>>> pooled = pool([ma, other_ma])
>>> df = pooled.msd.to_dataframe()
"""

__version__ = "0.2.0"

# Main classes
from .analyzer import MSDAnalyzer, AnalyzerParameters
from .trajectory import Trajectory, as_trajectories

# Errors
from .errors import (
    MSDAnalyzerError,
    BadDimensionality,
    BadArgument,
    InconsistentArray
)

# Lags
from .delays import (
    LAG_TOLERANCE_DECIMALS,
    round_to_decimals,
    track_delays,
    get_all_delays
)

# Statistics
from .stats import weighted_mean, weighted_standard_error

# Curves
from .curves import (
    TrackCurve,
    compute_track_msd,
    compute_track_vcorr,
    compute_velocities
)
from .ensemble import EnsembleCurve, aggregate_curves

# Drift
from .drift import (
    Drift,
    DRIFT_MODES,
    compute_drift,
    manual_drift,
    correct_trajectories
)

# Pooling
from .pooling import PooledEnsemble, pool

# I/O
from .io import (
    trajectories_to_dataframe,
    save_csv_trajectories,
    save_curve_csv
)
from .synthetic import simulate_tracks

__all__ = [
    # Main
    'MSDAnalyzer',
    'AnalyzerParameters',
    'Trajectory',
    'as_trajectories',

    # Errors
    'MSDAnalyzerError',
    'BadDimensionality',
    'BadArgument',
    'InconsistentArray',

    # Lags
    'LAG_TOLERANCE_DECIMALS',
    'round_to_decimals',
    'track_delays',
    'get_all_delays',

    # Statistics
    'weighted_mean',
    'weighted_standard_error',

    # Curves
    'TrackCurve',
    'EnsembleCurve',
    'compute_track_msd',
    'compute_track_vcorr',
    'compute_velocities',
    'aggregate_curves',

    # Drift
    'Drift',
    'DRIFT_MODES',
    'compute_drift',
    'manual_drift',
    'correct_trajectories',

    # Pooling
    'PooledEnsemble',
    'pool',

    # I/O
    'trajectories_to_dataframe',
    'save_csv_trajectories',
    'save_curve_csv',
    'simulate_tracks',
]
