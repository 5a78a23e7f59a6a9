"""
Pooling Module

Combines the ensemble curves of several independent analyzers.

Pooling concatenates rows; it does not re-average. A lag present in two
analyzers appears twice in the pooled curve, once per source, and a
downstream fit treats the rows as independent observations.
"""

from concurrent.futures import ThreadPoolExecutor

import pandas as pd
from dataclasses import dataclass
from typing import Sequence, Tuple

from .analyzer import MSDAnalyzer
from .ensemble import EnsembleCurve
from .errors import BadArgument, InconsistentArray


@dataclass(frozen=True, eq=False)
class PooledEnsemble:
    """
    Pooled MSD and velocity correlation curves.

    Holds no trajectories and no drift. Row k of each curve came from
    the analyzer at position `source[k]` of the pooled array.
    """
    n_dim: int
    space_units: str
    time_units: str
    msd: EnsembleCurve
    vcorr: EnsembleCurve
    n_sources: int

    def get_mean_msd(self) -> EnsembleCurve:
        return self.msd

    def get_mean_vcorr(self) -> EnsembleCurve:
        return self.vcorr

    def to_dataframes(self) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """MSD and velocity correlation as pandas DataFrames."""
        return self.msd.to_dataframe(), self.vcorr.to_dataframe()

    def __repr__(self):
        return (f"PooledEnsemble(n_sources={self.n_sources}, n_dim={self.n_dim}, "
                f"msd_rows={len(self.msd)}, vcorr_rows={len(self.vcorr)})")


def check_consistency(analyzers: Sequence[MSDAnalyzer]) -> None:
    """
    Verify all analyzers share dimensionality and units.

    Raises
    ------
    BadArgument
        If an element is not an MSDAnalyzer
    InconsistentArray
        On the first analyzer that differs from the first one
    """
    for index, analyzer in enumerate(analyzers):
        if not isinstance(analyzer, MSDAnalyzer):
            raise BadArgument(
                f"pool: element {index} is a {type(analyzer).__name__}, "
                "expected MSDAnalyzer"
            )

    reference = analyzers[0]
    for index, analyzer in enumerate(analyzers[1:], 1):
        for field in ('n_dim', 'space_units', 'time_units'):
            expected = getattr(reference, field)
            found = getattr(analyzer, field)
            if found != expected:
                raise InconsistentArray(index, field, expected, found)


def _source_curves(analyzer: MSDAnalyzer) -> Tuple[EnsembleCurve, EnsembleCurve]:
    if not analyzer.drift_valid:
        analyzer.compute_drift(analyzer.params.pool_drift_mode)
    return analyzer.get_mean_msd(), analyzer.get_mean_vcorr()


def pool(analyzers: Sequence[MSDAnalyzer], n_workers: int = 1) -> PooledEnsemble:
    """
    Pool the ensemble curves of compatible analyzers.

    Each analyzer's drift is computed if it has none (using its
    `pool_drift_mode`), then its drift-corrected mean MSD and velocity
    correlation are computed if not cached. The rows are concatenated
    in array order.

    Parameters
    ----------
    analyzers : sequence of MSDAnalyzer
        Analyzers with equal dimensionality, space units and time units
    n_workers : int
        Threads used to compute the source curves

    Returns
    -------
    pooled : PooledEnsemble

    Raises
    ------
    BadArgument
        If `analyzers` is empty or holds something other than MSDAnalyzer
    InconsistentArray
        If units or dimensionality differ
    """
    if isinstance(analyzers, MSDAnalyzer) or not isinstance(analyzers, (list, tuple)):
        raise BadArgument("pool: expected a list or tuple of MSDAnalyzer")
    if len(analyzers) == 0:
        raise BadArgument("pool: no analyzers given")

    check_consistency(analyzers)

    if n_workers > 1 and len(analyzers) > 1:
        with ThreadPoolExecutor(max_workers=n_workers) as executor:
            curves = list(executor.map(_source_curves, analyzers))
    else:
        curves = [_source_curves(analyzer) for analyzer in analyzers]

    reference = analyzers[0]
    return PooledEnsemble(
        n_dim=reference.n_dim,
        space_units=reference.space_units,
        time_units=reference.time_units,
        msd=EnsembleCurve.concatenate([c[0] for c in curves]),
        vcorr=EnsembleCurve.concatenate([c[1] for c in curves]),
        n_sources=len(analyzers)
    )
