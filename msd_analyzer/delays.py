"""
Delay Binning Module

Discovers the distinct time lags present in a set of trajectories.

Lags are rounded to a fixed number of decimals so that floating-point
jitter does not split one true lag into several near-identical bins.
"""

import numpy as np
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence

from .trajectory import Trajectory

# Lags agreeing to 1e-12 are the same lag
LAG_TOLERANCE_DECIMALS = 12


def round_to_decimals(values, decimals: int = LAG_TOLERANCE_DECIMALS) -> np.ndarray:
    """
    Round values to the nearest multiple of 10**-decimals.

    Parameters
    ----------
    values : array_like
        Values to round
    decimals : int
        Number of decimal places kept

    Returns
    -------
    rounded : ndarray
    """
    rounded = np.round(np.asarray(values, dtype=float), decimals)
    # -0.0 and 0.0 must share a bin
    return rounded + 0.0


def track_delays(time: np.ndarray, decimals: int = LAG_TOLERANCE_DECIMALS) -> np.ndarray:
    """
    Distinct lags within one trajectory, including the zero lag.

    Parameters
    ----------
    time : ndarray
        Time stamps of the trajectory
    decimals : int
        Rounding tolerance in decimal places

    Returns
    -------
    delays : ndarray
        Sorted unique lags
    """
    time = np.asarray(time, dtype=float)
    dt = np.abs(time[:, None] - time[None, :])
    return np.unique(round_to_decimals(dt, decimals))


def get_all_delays(trajectories: Sequence[Trajectory],
                   indices: Optional[Sequence[int]] = None,
                   decimals: int = LAG_TOLERANCE_DECIMALS,
                   n_workers: int = 1) -> np.ndarray:
    """
    Sorted set of distinct lags over all trajectories.

    Lags are only formed between samples of the same trajectory.

    Parameters
    ----------
    trajectories : sequence of Trajectory
        Input trajectories
    indices : sequence of int, optional
        Restrict to these trajectories
    decimals : int
        Rounding tolerance in decimal places
    n_workers : int
        Threads used for the per-track extraction

    Returns
    -------
    delays : ndarray
        Sorted unique lags; empty if there are no trajectories

    Notes
    -----
    Binning rounds each lag to the nearest multiple of 10**-decimals.
    Two lags closer than the tolerance still land in neighbouring bins
    when they straddle a rounding boundary, e.g. 1.0000000000004 and
    1.0000000000006 at 12 decimals. Lags more than one tolerance step
    apart are always kept distinct.
    """
    if indices is not None:
        trajectories = [trajectories[i] for i in indices]
    if len(trajectories) == 0:
        return np.zeros(0)

    def extract(traj):
        return track_delays(traj.time, decimals)

    if n_workers > 1:
        with ThreadPoolExecutor(max_workers=n_workers) as pool:
            per_track = list(pool.map(extract, trajectories))
    else:
        per_track = [extract(traj) for traj in trajectories]

    return np.unique(round_to_decimals(np.concatenate(per_track), decimals))


def delay_indices(lags: np.ndarray, delays: np.ndarray) -> np.ndarray:
    """
    Position of each rounded lag in the sorted global delay array.

    Parameters
    ----------
    lags : ndarray
        Rounded lags, each present in `delays`
    delays : ndarray
        Sorted global delays

    Returns
    -------
    idx : ndarray of int
    """
    idx = np.searchsorted(delays, lags)
    if np.any(idx >= len(delays)) or np.any(delays[np.minimum(idx, len(delays) - 1)] != lags):
        raise ValueError("Lags are not part of the delay set")
    return idx
