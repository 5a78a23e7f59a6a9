"""
Test pooling of ensemble curves across analyzers.
"""

import numpy as np
import pytest

from msd_analyzer import (
    BadArgument,
    InconsistentArray,
    MSDAnalyzer,
    PooledEnsemble,
    pool,
    simulate_tracks
)


def make_analyzer(seed, space_units='µm', time_units='s', n_dim=2, n_frames=12):
    tracks = simulate_tracks(n_tracks=6, n_dim=n_dim, n_frames=n_frames,
                             missing_fraction=0.2, seed=seed)
    return MSDAnalyzer(n_dim, space_units=space_units, time_units=time_units, tracks=tracks)


class TestPool:
    """Test concatenation of curves."""

    def test_rows_are_concatenated(self):
        a = make_analyzer(0, n_frames=10)
        b = make_analyzer(1, n_frames=15)
        k1 = len(a.get_mean_msd())
        k2 = len(b.get_mean_msd())

        pooled = pool([a, b])

        assert isinstance(pooled, PooledEnsemble)
        assert len(pooled.msd) == k1 + k2
        assert pooled.n_sources == 2
        # Coincident lags are not merged
        assert len(np.unique(pooled.msd.lags)) < len(pooled.msd)
        np.testing.assert_array_equal(pooled.msd.source, [0] * k1 + [1] * k2)

    def test_uses_drift_corrected_curves(self):
        a = make_analyzer(0)
        b = make_analyzer(1)
        assert not a.drift_valid

        pooled = pool([a, b])

        assert a.drift_valid and b.drift_valid
        assert a.drift.mode == 'velocity'
        np.testing.assert_allclose(pooled.msd.mean[:len(a.get_mean_msd())],
                                   a.get_mean_msd().mean)
        np.testing.assert_allclose(pooled.get_mean_vcorr().mean[:len(a.get_mean_vcorr())],
                                   a.get_mean_vcorr().mean)

    def test_existing_drift_is_kept(self):
        a = make_analyzer(0)
        b = make_analyzer(1)
        a.compute_drift('centroid')

        pool([a, b])
        assert a.drift.mode == 'centroid'

    def test_pooled_has_units(self):
        pooled = pool([make_analyzer(0, space_units='nm', time_units='ms'),
                       make_analyzer(1, space_units='nm', time_units='ms')])
        assert pooled.space_units == 'nm'
        assert pooled.time_units == 'ms'
        assert pooled.n_dim == 2
        assert not hasattr(pooled, 'trajectories')

    def test_threaded(self):
        analyzers = [make_analyzer(k) for k in range(4)]
        expected = 0
        for k in range(4):
            reference = make_analyzer(k)
            reference.compute_drift('velocity')
            expected += len(reference.get_mean_msd())

        pooled = pool(analyzers, n_workers=3)
        assert len(pooled.msd) == expected

    def test_to_dataframes(self):
        msd_df, vcorr_df = pool([make_analyzer(0), make_analyzer(1)]).to_dataframes()
        assert 'source' in msd_df.columns
        assert set(vcorr_df['source']) == {0, 1}


class TestPoolConsistency:
    """Test rejection of incompatible analyzers."""

    def test_space_units_mismatch(self):
        a = make_analyzer(0, space_units='um')
        b = make_analyzer(1, space_units='nm')

        with pytest.raises(InconsistentArray) as excinfo:
            pool([a, b])

        assert excinfo.value.index == 1
        assert excinfo.value.field == 'space_units'
        # Fails before any source is touched
        assert not a.drift_valid
        assert not b.msd_valid

    def test_first_mismatch_reported(self):
        analyzers = [
            make_analyzer(0),
            make_analyzer(1),
            make_analyzer(2, time_units='ms'),
            make_analyzer(3, space_units='nm'),
        ]
        with pytest.raises(InconsistentArray) as excinfo:
            pool(analyzers)

        assert excinfo.value.index == 2
        assert excinfo.value.field == 'time_units'

    def test_dimensionality_mismatch(self):
        with pytest.raises(InconsistentArray) as excinfo:
            pool([make_analyzer(0), make_analyzer(1, n_dim=3)])
        assert excinfo.value.field == 'n_dim'

    def test_inconsistent_is_value_error(self):
        with pytest.raises(ValueError, match="inconsistent ensemble"):
            pool([make_analyzer(0, space_units='um'), make_analyzer(1, space_units='nm')])

    def test_non_analyzer_element(self):
        with pytest.raises(BadArgument):
            pool([make_analyzer(0), np.zeros((3, 3))])

    def test_not_a_list(self):
        with pytest.raises(BadArgument):
            pool(make_analyzer(0))

    def test_empty(self):
        with pytest.raises(BadArgument):
            pool([])
