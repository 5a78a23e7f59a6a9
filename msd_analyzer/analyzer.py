"""
Main MSD Analyzer Class

High-level interface owning a set of trajectories, their drift and the
lazily computed MSD and velocity correlation curves.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import numpy as np
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, Union

from .curves import TrackCurve, compute_track_msd, compute_track_vcorr
from .delays import LAG_TOLERANCE_DECIMALS, get_all_delays
from .drift import Drift, compute_drift, correct_trajectories, manual_drift
from .ensemble import EnsembleCurve, aggregate_curves
from .errors import BadDimensionality
from .trajectory import Trajectory, as_trajectories


@dataclass
class AnalyzerParameters:
    """
    Parameters for MSD analysis.

    - tolerance_decimals: Lags and time stamps agreeing to this many
                          decimals are treated as identical.
    - pool_drift_mode: Drift mode computed for an analyzer that is pooled
                       without a drift.
    - n_workers: Threads used for per-track computations (1 = serial).
    - verbose: Print progress.
    """
    tolerance_decimals: int = LAG_TOLERANCE_DECIMALS
    pool_drift_mode: str = 'velocity'
    n_workers: int = 1
    verbose: bool = False


class MSDAnalyzer:
    """
    Mean square displacement and velocity correlation analysis of an
    ensemble of trajectories.

    Curves are computed on first request and memoized. Any change to the
    trajectory set or to the drift bumps an internal version counter, and
    a cached curve is only returned while its version is current.

    Parameters
    ----------
    n_dim : int
        Dimensionality of the trajectories
    space_units : str
        Space unit label
    time_units : str
        Time unit label
    params : AnalyzerParameters, optional
        Analysis parameters. If None, defaults are used.
    tracks : sequence of Trajectory or ndarray, optional
        Initial trajectories, (t, x_1, ..., x_d) matrices accepted

    Examples
    --------
    >>> ma = MSDAnalyzer(2, space_units='µm', time_units='s')
    >>> ma.add_all(tracks)
    >>> ma.compute_drift('velocity')
    >>> msd = ma.get_mean_msd()
    >>> msd.to_dataframe()
    """

    def __init__(self,
                 n_dim: int,
                 space_units: str = 'µm',
                 time_units: str = 's',
                 params: Optional[AnalyzerParameters] = None,
                 tracks: Optional[Sequence[Union[Trajectory, np.ndarray]]] = None):
        if isinstance(n_dim, (bool, np.bool_)) or not isinstance(n_dim, (int, np.integer)) \
                or n_dim < 1:
            raise BadDimensionality(
                f"Dimensionality must be a positive integer, got {n_dim!r}"
            )
        self.n_dim = int(n_dim)
        self.space_units = space_units
        self.time_units = time_units
        self.params = params or AnalyzerParameters()

        self._lock = threading.RLock()
        self._tracks: List[Trajectory] = []
        self._drift: Optional[Drift] = None
        self._version = 0
        self._cache = {}

        if tracks is not None:
            self.add_all(tracks)

    # ------------------------------------------------------------------
    # Trajectory set

    @property
    def trajectories(self) -> Tuple[Trajectory, ...]:
        """Raw trajectories; their arrays are read-only."""
        return tuple(self._tracks)

    @property
    def n_tracks(self) -> int:
        return len(self._tracks)

    @property
    def version(self) -> int:
        """Counter bumped on every change to the trajectories or the drift."""
        return self._version

    def _check_tracks(self, tracks: List[Trajectory]) -> None:
        for traj in tracks:
            if traj.length and traj.n_dim != self.n_dim:
                raise ValueError(
                    f"Track {traj.id} has {traj.n_dim} dimensions, "
                    f"analyzer expects {self.n_dim}"
                )

    def _invalidate(self) -> None:
        self._version += 1
        self._cache.clear()

    def _tracks_changed(self) -> None:
        # A computed drift belongs to the old track set; a manual one is kept
        if self._drift is not None and self._drift.mode != 'manual':
            self._drift = None
        self._invalidate()

    def _ingest(self, tracks, start_id: int = 0) -> List[Trajectory]:
        new_tracks = [traj.freeze() for traj in as_trajectories(tracks, start_id=start_id)]
        self._check_tracks(new_tracks)
        return new_tracks

    def add_all(self, tracks: Sequence[Union[Trajectory, np.ndarray]]) -> 'MSDAnalyzer':
        """
        Append read-only copies of the given tracks.

        A computed drift is dropped and must be recomputed; a manual
        drift is kept.

        Parameters
        ----------
        tracks : sequence of Trajectory or ndarray
            Trajectories or (t, x_1, ..., x_d) sample matrices

        Returns
        -------
        self : MSDAnalyzer
            For method chaining
        """
        with self._lock:
            self._tracks.extend(self._ingest(tracks, start_id=len(self._tracks)))
            self._tracks_changed()
        return self

    def replace_trajectories(self,
                             tracks: Sequence[Union[Trajectory, np.ndarray]]) -> 'MSDAnalyzer':
        """
        Replace the whole trajectory set.

        A computed drift is dropped and must be recomputed; a manual
        drift is kept. Curves are recomputed on next access.
        """
        with self._lock:
            self._tracks = self._ingest(tracks)
            self._tracks_changed()
        return self

    def clear_trajectories(self) -> 'MSDAnalyzer':
        return self.replace_trajectories([])

    def get_trajectory(self, index: int) -> Trajectory:
        """Copy of the raw trajectory at `index`."""
        return self._tracks[index].copy()

    # ------------------------------------------------------------------
    # Cache

    def _cached(self, key, compute: Callable):
        with self._lock:
            entry = self._cache.get(key)
            if entry is not None and entry[0] == self._version:
                return entry[1]
            version = self._version
            value = compute()
            self._cache[key] = (version, value)
            return value

    def _is_valid(self, key) -> bool:
        entry = self._cache.get(key)
        return entry is not None and entry[0] == self._version

    @property
    def msd_valid(self) -> bool:
        """Whether the full-set MSD curves are cached and current."""
        return self._is_valid('msd')

    @property
    def vcorr_valid(self) -> bool:
        """Whether the full-set velocity correlation curves are cached and current."""
        return self._is_valid('vcorr')

    @property
    def drift_valid(self) -> bool:
        """Whether a drift has been computed or set."""
        return self._drift is not None

    def _map_tracks(self, func: Callable, tracks: Sequence[Trajectory]) -> list:
        if self.params.n_workers > 1 and len(tracks) > 1:
            with ThreadPoolExecutor(max_workers=self.params.n_workers) as pool:
                return list(pool.map(func, tracks))
        return [func(traj) for traj in tracks]

    # ------------------------------------------------------------------
    # Delays

    @property
    def delays(self) -> np.ndarray:
        """Sorted distinct lags over all trajectories."""
        return self._cached('delays', lambda: get_all_delays(
            self._tracks,
            decimals=self.params.tolerance_decimals,
            n_workers=self.params.n_workers
        ))

    def get_delays(self, indices: Optional[Sequence[int]] = None) -> np.ndarray:
        """Distinct lags over the trajectories at `indices` (all if None)."""
        if indices is None:
            return self.delays
        return get_all_delays(self._tracks, indices,
                              decimals=self.params.tolerance_decimals)

    # ------------------------------------------------------------------
    # Drift

    @property
    def drift(self) -> Optional[Drift]:
        """Current drift, None if no drift has been computed."""
        return self._drift

    def compute_drift(self, mode: str = 'velocity') -> Drift:
        """
        Estimate the ensemble drift from the raw trajectories.

        Parameters
        ----------
        mode : str
            'clear', 'centroid' or 'velocity'

        Returns
        -------
        drift : Drift
        """
        with self._lock:
            drift = compute_drift(self._tracks, mode=mode,
                                  decimals=self.params.tolerance_decimals)
            if self.params.verbose:
                print(f"Computed {mode} drift over {len(drift.time)} time points")
            self._drift = drift
            self._invalidate()
        return drift

    def set_manual_drift(self, data: np.ndarray) -> 'MSDAnalyzer':
        """
        Use a user-supplied drift.

        Parameters
        ----------
        data : ndarray
            (t, x_1, ..., x_d) drift matrix
        """
        drift = manual_drift(data)
        if drift.n_dim != self.n_dim:
            raise ValueError(
                f"Drift has {drift.n_dim} dimensions, analyzer expects {self.n_dim}"
            )
        with self._lock:
            self._drift = drift
            self._invalidate()
        return self

    def clear_drift(self) -> 'MSDAnalyzer':
        with self._lock:
            self._drift = None
            self._invalidate()
        return self

    @property
    def corrected_trajectories(self) -> Tuple[Trajectory, ...]:
        """Drift-corrected trajectories; the raw ones if there is no drift."""
        def correct():
            if self._drift is None:
                return tuple(self._tracks)
            return tuple(traj.freeze() for traj in correct_trajectories(self._tracks, self._drift))
        return self._cached('corrected', correct)

    # ------------------------------------------------------------------
    # Curves

    def _track_curves(self, key: str, func: Callable,
                      indices: Optional[Sequence[int]]) -> List[TrackCurve]:
        decimals = self.params.tolerance_decimals

        def compute_all():
            tracks = self.corrected_trajectories
            if self.params.verbose:
                print(f"Computing {key} for {len(tracks)} trajectories")
            return self._map_tracks(lambda traj: func(traj, decimals), tracks)

        if indices is None:
            return list(self._cached(key, compute_all))

        with self._lock:
            if self._is_valid(key):
                curves = self._cache[key][1]
                return [curves[i] for i in indices]
            tracks = self.corrected_trajectories
            return self._map_tracks(lambda traj: func(traj, decimals),
                                    [tracks[i] for i in indices])

    def compute_msd(self, indices: Optional[Sequence[int]] = None) -> List[TrackCurve]:
        """
        Per-track mean square displacement.

        Parameters
        ----------
        indices : sequence of int, optional
            Restrict to these trajectories

        Returns
        -------
        curves : list of TrackCurve
        """
        return self._track_curves('msd', compute_track_msd, indices)

    def compute_vcorr(self, indices: Optional[Sequence[int]] = None) -> List[TrackCurve]:
        """
        Per-track velocity correlation.

        Parameters
        ----------
        indices : sequence of int, optional
            Restrict to these trajectories

        Returns
        -------
        curves : list of TrackCurve
        """
        return self._track_curves('vcorr', compute_track_vcorr, indices)

    def _mean_curve(self, key: str, curves_func: Callable,
                    indices: Optional[Sequence[int]]) -> EnsembleCurve:
        if indices is None:
            return self._cached(
                'mean_' + key,
                lambda: aggregate_curves(curves_func(None), self.delays)
            )
        return aggregate_curves(curves_func(indices), self.delays)

    def get_mean_msd(self, indices: Optional[Sequence[int]] = None) -> EnsembleCurve:
        """
        Ensemble-averaged mean square displacement.

        Parameters
        ----------
        indices : sequence of int, optional
            Restrict to these trajectories

        Returns
        -------
        curve : EnsembleCurve
            Rows of (lag, mean, sem, n), sorted by lag
        """
        return self._mean_curve('msd', self.compute_msd, indices)

    def get_mean_vcorr(self, indices: Optional[Sequence[int]] = None,
                       normalize: bool = False) -> EnsembleCurve:
        """
        Ensemble-averaged velocity correlation.

        Parameters
        ----------
        indices : sequence of int, optional
            Restrict to these trajectories
        normalize : bool
            Divide by the zero-lag value <|v|^2>

        Returns
        -------
        curve : EnsembleCurve
        """
        curve = self._mean_curve('vcorr', self.compute_vcorr, indices)
        return curve.normalized() if normalize else curve

    # ------------------------------------------------------------------

    def summary(self) -> str:
        """
        Get summary string.

        Returns
        -------
        summary : str
        """
        lines = ["MSD Analyzer Summary", "=" * 40]
        lines.append(f"Dimensionality: {self.n_dim}")
        lines.append(f"Units: space={self.space_units}, time={self.time_units}")
        lines.append(f"Trajectories: {self.n_tracks}")

        if self._tracks:
            lengths = [t.length for t in self._tracks]
            lines.append(f"  Mean length: {np.mean(lengths):.1f} samples")
            lines.append(f"Distinct lags: {len(self.delays)}")

        if self._drift is not None:
            lines.append(f"Drift: {self._drift.mode} over {len(self._drift.time)} time points")
        else:
            lines.append("Drift: none")

        lines.append(f"MSD valid: {self.msd_valid}, VCorr valid: {self.vcorr_valid}")
        return "\n".join(lines)

    def __repr__(self):
        return (f"MSDAnalyzer(n_dim={self.n_dim}, "
                f"space_units={self.space_units!r}, "
                f"time_units={self.time_units!r}, "
                f"n_tracks={self.n_tracks})")
