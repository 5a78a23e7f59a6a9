"""
Ensemble Averaging Module

Combines per-track curves into an ensemble curve. At each lag the
per-track means are averaged with the track's pair count as weight;
the error is the standard error of that weighted mean.
"""

import warnings

import numpy as np
import pandas as pd
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .curves import TrackCurve
from .delays import delay_indices
from .stats import weighted_mean, weighted_standard_error


def _read_only(a: np.ndarray) -> np.ndarray:
    a = np.array(a)
    a.setflags(write=False)
    return a


@dataclass(frozen=True, eq=False)
class EnsembleCurve:
    """
    Ensemble-averaged curve, one row per lag.

    Arrays are read-only. Rows of a single ensemble are sorted by lag;
    pooled curves keep the concatenation order and record in `source`
    which analyzer each row came from.
    """
    lags: np.ndarray  # Time lags
    mean: np.ndarray  # Weighted mean at each lag
    sem: np.ndarray  # Standard error of the weighted mean
    n: np.ndarray  # Total number of pair observations
    n_tracks: np.ndarray  # Number of contributing tracks
    source: Optional[np.ndarray] = field(default=None)

    def __post_init__(self):
        for name in ('lags', 'mean', 'sem', 'n', 'n_tracks', 'source'):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, _read_only(value))

    def __len__(self):
        return len(self.lags)

    @classmethod
    def empty(cls) -> 'EnsembleCurve':
        return cls(
            lags=np.zeros(0),
            mean=np.zeros(0),
            sem=np.zeros(0),
            n=np.zeros(0, dtype=int),
            n_tracks=np.zeros(0, dtype=int)
        )

    def as_array(self) -> np.ndarray:
        """Rows of (lag, mean, sem, n)."""
        return np.column_stack([self.lags, self.mean, self.sem, self.n])

    def to_dataframe(self) -> pd.DataFrame:
        """
        Export as a pandas DataFrame.

        Returns
        -------
        df : pandas.DataFrame
            Columns: lag, mean, sem, n, n_tracks [, source]
        """
        data = {
            'lag': self.lags,
            'mean': self.mean,
            'sem': self.sem,
            'n': self.n,
            'n_tracks': self.n_tracks,
        }
        if self.source is not None:
            data['source'] = self.source
        return pd.DataFrame(data)

    def normalized(self) -> 'EnsembleCurve':
        """
        Curve divided by its zero-lag value.

        Used for the velocity correlation, where the zero lag holds
        <|v|^2>. Returns an unchanged copy if there is no usable zero lag.
        """
        at_zero = np.flatnonzero(self.lags == 0)
        if len(at_zero) == 0 or self.mean[at_zero[0]] == 0:
            warnings.warn("No non-zero value at lag 0; curve left unnormalized",
                          RuntimeWarning)
            return EnsembleCurve(self.lags, self.mean, self.sem, self.n,
                                 self.n_tracks, self.source)
        scale = self.mean[at_zero[0]]
        return EnsembleCurve(
            lags=self.lags,
            mean=self.mean / scale,
            sem=self.sem / abs(scale),
            n=self.n,
            n_tracks=self.n_tracks,
            source=self.source
        )

    @classmethod
    def concatenate(cls, curves: Sequence['EnsembleCurve']) -> 'EnsembleCurve':
        """
        Stack the rows of several curves without merging equal lags.

        Parameters
        ----------
        curves : sequence of EnsembleCurve
            Curves to stack; curve k is recorded as source k

        Returns
        -------
        curve : EnsembleCurve
        """
        if len(curves) == 0:
            return cls.empty()
        return cls(
            lags=np.concatenate([c.lags for c in curves]),
            mean=np.concatenate([c.mean for c in curves]),
            sem=np.concatenate([c.sem for c in curves]),
            n=np.concatenate([c.n for c in curves]),
            n_tracks=np.concatenate([c.n_tracks for c in curves]),
            source=np.concatenate([np.full(len(c), k, dtype=int)
                                   for k, c in enumerate(curves)])
        )


def aggregate_curves(track_curves: List[TrackCurve],
                     delays: np.ndarray) -> EnsembleCurve:
    """
    Ensemble average of per-track curves.

    Parameters
    ----------
    track_curves : list of TrackCurve
        Per-track curves whose lags belong to `delays`
    delays : ndarray
        Sorted global delay set

    Returns
    -------
    curve : EnsembleCurve
        One row per lag with non-zero total weight, sorted by lag
    """
    values_by_lag = [[] for _ in range(len(delays))]
    weights_by_lag = [[] for _ in range(len(delays))]

    for curve in track_curves:
        if len(curve) == 0:
            continue
        for k, value, weight in zip(delay_indices(curve.lags, delays), curve.mean, curve.n):
            values_by_lag[k].append(value)
            weights_by_lag[k].append(weight)

    lags = []
    means = []
    sems = []
    n_total = []
    n_tracks = []

    for k, delay in enumerate(delays):
        weights = weights_by_lag[k]
        if np.sum(weights) == 0:
            continue
        values = values_by_lag[k]
        lags.append(delay)
        means.append(weighted_mean(values, weights))
        sems.append(weighted_standard_error(values, weights))
        n_total.append(int(np.sum(weights)))
        n_tracks.append(len(weights))

    if not lags:
        return EnsembleCurve.empty()

    return EnsembleCurve(
        lags=np.array(lags),
        mean=np.array(means),
        sem=np.array(sems),
        n=np.array(n_total, dtype=int),
        n_tracks=np.array(n_tracks, dtype=int)
    )
