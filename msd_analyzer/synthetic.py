"""
Synthetic Trajectories

Brownian trajectories with optional drift, random start times and
dropped frames, for demonstrations and tests.
"""

import numpy as np
from typing import List, Optional, Sequence

from .trajectory import Trajectory


def simulate_tracks(n_tracks: int = 20,
                    n_dim: int = 2,
                    n_frames: int = 50,
                    diffusion_coeff: float = 0.1,
                    frame_interval: float = 1.0,
                    drift_velocity: Optional[Sequence[float]] = None,
                    missing_fraction: float = 0.0,
                    max_start_frame: int = 0,
                    seed: Optional[int] = None) -> List[Trajectory]:
    """
    Create Brownian trajectories sharing a common drift.

    Parameters
    ----------
    n_tracks : int
        Number of trajectories
    n_dim : int
        Dimensionality
    n_frames : int
        Frames per trajectory before dropping
    diffusion_coeff : float
        Diffusion coefficient in space^2/time
    frame_interval : float
        Time between frames
    drift_velocity : sequence of float, optional
        Constant drift velocity added to every track
    missing_fraction : float
        Probability that a frame is dropped (first frame always kept)
    max_start_frame : int
        Tracks start at a random frame in [0, max_start_frame]
    seed : int, optional
        Random seed

    Returns
    -------
    trajectories : list of Trajectory
    """
    rng = np.random.RandomState(seed)
    velocity = np.zeros(n_dim) if drift_velocity is None else np.asarray(drift_velocity, float)

    trajectories = []
    for track_id in range(n_tracks):
        start = rng.randint(0, max_start_frame + 1)
        time = (start + np.arange(n_frames)) * frame_interval

        steps = rng.randn(n_frames - 1, n_dim) * np.sqrt(2 * diffusion_coeff * frame_interval)
        steps += velocity * frame_interval
        positions = np.vstack([rng.rand(1, n_dim) * 10, np.zeros((n_frames - 1, n_dim))])
        positions[1:] = positions[0] + np.cumsum(steps, axis=0)

        keep = rng.rand(n_frames) >= missing_fraction
        keep[0] = True

        trajectories.append(Trajectory(id=track_id, time=time[keep], positions=positions[keep]))

    return trajectories
