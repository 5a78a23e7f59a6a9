"""
Trajectory Module

Particle trajectories sampled at arbitrary, possibly irregular time points.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import List, Sequence, Union


@dataclass(eq=False)
class Trajectory:
    """
    A particle trajectory: strictly increasing times and d-dimensional positions.

    Parameters
    ----------
    id : int
        Track identifier
    time : ndarray
        Time stamps, shape (n,)
    positions : ndarray
        Positions, shape (n, d)
    """
    id: int
    time: np.ndarray = field(default_factory=lambda: np.zeros(0))
    positions: np.ndarray = field(default_factory=lambda: np.zeros((0, 1)))

    def __post_init__(self):
        self.time = np.asarray(self.time, dtype=float).ravel()
        positions = np.asarray(self.positions, dtype=float)
        if positions.ndim == 1:
            positions = positions.reshape(-1, 1)
        self.positions = positions

        if len(self.time) != len(self.positions):
            raise ValueError(
                f"Track {self.id}: {len(self.time)} time stamps "
                f"but {len(self.positions)} positions"
            )
        if np.any(np.diff(self.time) <= 0):
            raise ValueError(f"Track {self.id}: time values must be strictly increasing")

    @classmethod
    def from_array(cls, id: int, data: np.ndarray) -> 'Trajectory':
        """
        Build a trajectory from a (t, x_1, ..., x_d) sample matrix.

        Parameters
        ----------
        id : int
            Track identifier
        data : ndarray
            Array of shape (n, 1 + d); first column is time

        Returns
        -------
        trajectory : Trajectory
        """
        data = np.asarray(data, dtype=float)
        if data.ndim != 2 or data.shape[1] < 2:
            raise ValueError(
                f"Track {id}: expected an (n, 1 + d) array, got shape {data.shape}"
            )
        return cls(id=id, time=data[:, 0].copy(), positions=data[:, 1:].copy())

    @property
    def length(self) -> int:
        """Number of samples."""
        return len(self.time)

    @property
    def n_dim(self) -> int:
        return self.positions.shape[1]

    @property
    def start_time(self) -> float:
        return float(self.time[0]) if self.length else np.nan

    @property
    def end_time(self) -> float:
        return float(self.time[-1]) if self.length else np.nan

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time if self.length else 0.0

    def as_array(self) -> np.ndarray:
        """Return the (t, x_1, ..., x_d) sample matrix."""
        return np.column_stack([self.time, self.positions])

    def copy(self) -> 'Trajectory':
        return Trajectory(id=self.id, time=self.time.copy(), positions=self.positions.copy())

    def freeze(self) -> 'Trajectory':
        """Make `time` and `positions` read-only in place; returns self."""
        self.time.setflags(write=False)
        self.positions.setflags(write=False)
        return self

    def shifted(self, offset: np.ndarray) -> 'Trajectory':
        """
        Return a new trajectory with `offset` subtracted from the positions.

        `offset` broadcasts against the (n, d) position array.
        """
        return Trajectory(id=self.id, time=self.time.copy(),
                          positions=self.positions - offset)

    def __repr__(self):
        return (f"Trajectory(id={self.id}, length={self.length}, n_dim={self.n_dim}, "
                f"t={self.start_time:g}-{self.end_time:g})")


def as_trajectories(tracks: Sequence[Union[Trajectory, np.ndarray]],
                    start_id: int = 0) -> List[Trajectory]:
    """
    Convert a collection of tracks to independent Trajectory copies.

    Parameters
    ----------
    tracks : sequence of Trajectory or ndarray
        Trajectory objects or (t, x_1, ..., x_d) sample matrices
    start_id : int
        Identifier given to the first raw matrix; following matrices
        are numbered consecutively

    Returns
    -------
    trajectories : list of Trajectory
    """
    trajectories = []
    for k, track in enumerate(tracks):
        if isinstance(track, Trajectory):
            trajectories.append(track.copy())
        else:
            trajectories.append(Trajectory.from_array(start_id + k, track))
    return trajectories
