"""
Per-Track Curve Module

Mean square displacement and velocity correlation of single trajectories
sampled at arbitrary time points.

For every pair of samples (i, j) with i <= j the rounded lag
tau = t_j - t_i is formed; all pairs sharing a lag are grouped and their
mean is the track's single contribution at that lag, weighted by the
number of pairs.
"""

import numpy as np
from dataclasses import dataclass
from typing import Tuple

from .delays import LAG_TOLERANCE_DECIMALS, round_to_decimals
from .trajectory import Trajectory


@dataclass(eq=False)
class TrackCurve:
    """Per-lag statistics of one trajectory. Arrays are read-only."""
    track_id: int
    lags: np.ndarray  # Rounded lags present in the track
    mean: np.ndarray  # Mean observation at each lag
    std: np.ndarray  # Standard deviation of the observations
    n: np.ndarray  # Number of sample pairs at each lag

    def __post_init__(self):
        for name in ('lags', 'mean', 'std', 'n'):
            value = np.array(getattr(self, name))
            value.setflags(write=False)
            setattr(self, name, value)

    def __len__(self):
        return len(self.lags)

    def as_array(self) -> np.ndarray:
        """Rows of (lag, mean, std, n)."""
        return np.column_stack([self.lags, self.mean, self.std, self.n])


def _empty_curve(track_id: int) -> TrackCurve:
    return TrackCurve(
        track_id=track_id,
        lags=np.zeros(0),
        mean=np.zeros(0),
        std=np.zeros(0),
        n=np.zeros(0, dtype=int)
    )


def _group_by_lag(track_id: int,
                  time: np.ndarray,
                  values: np.ndarray,
                  i: np.ndarray,
                  j: np.ndarray,
                  decimals: int) -> TrackCurve:
    """Group pair observations by rounded lag."""
    lag = round_to_decimals(time[j] - time[i], decimals)
    lags, inverse = np.unique(lag, return_inverse=True)
    inverse = inverse.ravel()

    counts = np.bincount(inverse)
    mean = np.bincount(inverse, weights=values) / counts
    dev = values - mean[inverse]
    std = np.sqrt(np.bincount(inverse, weights=dev ** 2) / counts)

    return TrackCurve(track_id=track_id, lags=lags, mean=mean, std=std, n=counts)


def compute_track_msd(trajectory: Trajectory,
                      decimals: int = LAG_TOLERANCE_DECIMALS) -> TrackCurve:
    """
    Mean square displacement of one trajectory at every lag it contains.

    MSD(tau) = <|r(t + tau) - r(t)|^2>

    The zero lag is included through the pairs (i, i), so it is always
    exactly 0 with a weight equal to the number of samples.

    Parameters
    ----------
    trajectory : Trajectory
        Input trajectory
    decimals : int
        Lag rounding tolerance in decimal places

    Returns
    -------
    curve : TrackCurve
    """
    n_points = trajectory.length
    if n_points == 0:
        return _empty_curve(trajectory.id)

    i, j = np.triu_indices(n_points)
    dr = trajectory.positions[j] - trajectory.positions[i]
    sq_displacements = np.sum(dr ** 2, axis=1)

    return _group_by_lag(trajectory.id, trajectory.time, sq_displacements, i, j, decimals)


def compute_velocities(trajectory: Trajectory) -> Tuple[np.ndarray, np.ndarray]:
    """
    Instantaneous velocities by forward finite differences.

    Parameters
    ----------
    trajectory : Trajectory
        Input trajectory

    Returns
    -------
    time : ndarray
        Start time of each step, shape (n-1,)
    velocities : ndarray
        Velocity over each step, shape (n-1, d)
    """
    dt = np.diff(trajectory.time)
    velocities = np.diff(trajectory.positions, axis=0) / dt[:, None]
    return trajectory.time[:-1].copy(), velocities


def compute_track_vcorr(trajectory: Trajectory,
                        decimals: int = LAG_TOLERANCE_DECIMALS) -> TrackCurve:
    """
    Velocity autocorrelation of one trajectory at every lag it contains.

    C_v(tau) = <v(t) . v(t + tau)>

    Velocities are stamped at the start of their step, so lags are
    formed between step start times. The value is not normalized; the
    zero lag holds <|v|^2>.

    Parameters
    ----------
    trajectory : Trajectory
        Input trajectory
    decimals : int
        Lag rounding tolerance in decimal places

    Returns
    -------
    curve : TrackCurve
        Empty for tracks with fewer than 2 samples
    """
    if trajectory.length < 2:
        return _empty_curve(trajectory.id)

    time, velocities = compute_velocities(trajectory)
    i, j = np.triu_indices(len(time))
    dot_products = np.sum(velocities[i] * velocities[j], axis=1)

    return _group_by_lag(trajectory.id, time, dot_products, i, j, decimals)
