"""
Drift Estimation Module

Estimates the systematic motion shared by an ensemble of trajectories
and removes it from each of them.

Modes
-----
clear
    No drift.
centroid
    Mean position over the tracks present at each time, relative to
    the first time point. Sensitive to tracks entering and leaving.
velocity
    Mean instantaneous velocity over the tracks covering each time
    interval, integrated over time. Independent of where each track
    starts.
"""

import warnings

import numpy as np
from dataclasses import dataclass
from typing import List, Sequence

from .delays import LAG_TOLERANCE_DECIMALS, round_to_decimals
from .trajectory import Trajectory

DRIFT_MODES = ('clear', 'centroid', 'velocity')


@dataclass(eq=False)
class Drift:
    """Drift trajectory over the common time base."""
    time: np.ndarray  # Common time base
    positions: np.ndarray  # Drift displacement, shape (n, d)
    mode: str = 'manual'

    @property
    def n_dim(self) -> int:
        return self.positions.shape[1]

    def as_array(self) -> np.ndarray:
        """Rows of (t, x_1, ..., x_d)."""
        return np.column_stack([self.time, self.positions])

    def covers(self, times: np.ndarray) -> bool:
        """Whether any of `times` falls inside the drift time range."""
        if len(self.time) == 0:
            return False
        times = np.asarray(times, dtype=float)
        return bool(np.any((times >= self.time[0]) & (times <= self.time[-1])))

    def at(self, times: np.ndarray) -> np.ndarray:
        """
        Drift at arbitrary times by linear interpolation.

        Exact on the time base; clamped to the end values outside it.

        Parameters
        ----------
        times : ndarray
            Query times

        Returns
        -------
        drift : ndarray
            Shape (len(times), d)
        """
        times = np.asarray(times, dtype=float)
        return np.column_stack([
            np.interp(times, self.time, self.positions[:, k])
            for k in range(self.n_dim)
        ]).reshape(len(times), self.n_dim)


def common_time_base(trajectories: Sequence[Trajectory],
                     decimals: int = LAG_TOLERANCE_DECIMALS) -> np.ndarray:
    """Sorted union of all rounded time stamps."""
    if len(trajectories) == 0:
        return np.zeros(0)
    return np.unique(round_to_decimals(
        np.concatenate([traj.time for traj in trajectories]), decimals
    ))


def _centroid_drift(trajectories, base, decimals, n_dim):
    sums = np.zeros((len(base), n_dim))
    counts = np.zeros(len(base))

    for traj in trajectories:
        if traj.length == 0:
            continue
        idx = np.searchsorted(base, round_to_decimals(traj.time, decimals))
        np.add.at(sums, idx, traj.positions)
        np.add.at(counts, idx, 1)

    centroid = sums / counts[:, None]
    return centroid - centroid[0]


def _velocity_drift(trajectories, base, decimals, n_dim):
    n_intervals = len(base) - 1
    # Difference arrays: a step covering intervals [s, e) adds at s, removes at e
    velocity_diff = np.zeros((n_intervals + 1, n_dim))
    count_diff = np.zeros(n_intervals + 1)

    for traj in trajectories:
        if traj.length < 2:
            continue
        idx = np.searchsorted(base, round_to_decimals(traj.time, decimals))
        velocities = np.diff(traj.positions, axis=0) / np.diff(traj.time)[:, None]
        starts, stops = idx[:-1], idx[1:]
        np.add.at(velocity_diff, starts, velocities)
        np.add.at(velocity_diff, stops, -velocities)
        np.add.at(count_diff, starts, 1)
        np.add.at(count_diff, stops, -1)

    velocity_sum = np.cumsum(velocity_diff, axis=0)[:n_intervals]
    counts = np.round(np.cumsum(count_diff)[:n_intervals])

    uncovered = counts == 0
    if np.any(uncovered):
        warnings.warn(
            f"{int(np.sum(uncovered))} time interval(s) not covered by any track; "
            "drift velocity set to zero there",
            RuntimeWarning
        )
    mean_velocity = np.zeros((n_intervals, n_dim))
    mean_velocity[~uncovered] = velocity_sum[~uncovered] / counts[~uncovered, None]

    displacement = mean_velocity * np.diff(base)[:, None]
    return np.vstack([np.zeros((1, n_dim)), np.cumsum(displacement, axis=0)])


def compute_drift(trajectories: Sequence[Trajectory],
                  mode: str = 'velocity',
                  decimals: int = LAG_TOLERANCE_DECIMALS) -> Drift:
    """
    Estimate the ensemble drift.

    Parameters
    ----------
    trajectories : sequence of Trajectory
        Input trajectories, all of the same dimensionality
    mode : str
        One of 'clear', 'centroid', 'velocity'
    decimals : int
        Time rounding tolerance used to align the tracks

    Returns
    -------
    drift : Drift
        Drift over the common time base, zero at its first point
    """
    if mode not in DRIFT_MODES:
        raise ValueError(f"Unknown drift mode {mode!r}, expected one of {DRIFT_MODES}")

    base = common_time_base(trajectories, decimals)
    n_dim = next((traj.n_dim for traj in trajectories if traj.length), 1)

    if len(base) == 0 or mode == 'clear':
        positions = np.zeros((len(base), n_dim))
    elif mode == 'centroid':
        positions = _centroid_drift(trajectories, base, decimals, n_dim)
    else:
        positions = _velocity_drift(trajectories, base, decimals, n_dim)

    return Drift(time=base, positions=positions, mode=mode)


def manual_drift(data: np.ndarray) -> Drift:
    """
    Drift from a user-supplied (t, x_1, ..., x_d) matrix.

    Rows are sorted by time.
    """
    data = np.asarray(data, dtype=float)
    if data.ndim != 2 or data.shape[1] < 2:
        raise ValueError(f"Expected an (n, 1 + d) drift array, got shape {data.shape}")
    data = data[np.argsort(data[:, 0], kind='stable')]
    return Drift(time=data[:, 0].copy(), positions=data[:, 1:].copy(), mode='manual')


def correct_trajectories(trajectories: Sequence[Trajectory],
                         drift: Drift) -> List[Trajectory]:
    """
    Subtract the drift from every trajectory.

    The input trajectories are left untouched. Tracks with no time stamp
    inside the drift time range are returned uncorrected.

    Parameters
    ----------
    trajectories : sequence of Trajectory
        Raw trajectories
    drift : Drift
        Drift to remove

    Returns
    -------
    corrected : list of Trajectory
        New trajectories
    """
    corrected = []
    uncorrected_ids = []

    for traj in trajectories:
        if traj.length == 0:
            corrected.append(traj.copy())
        elif not drift.covers(traj.time):
            uncorrected_ids.append(traj.id)
            corrected.append(traj.copy())
        else:
            corrected.append(traj.shifted(drift.at(traj.time)))

    if uncorrected_ids:
        warnings.warn(
            f"Insufficient overlap with the drift time range; tracks {uncorrected_ids} "
            "left uncorrected",
            RuntimeWarning
        )

    return corrected
