"""
Test lag discovery and tolerance-based binning.
"""

import numpy as np
import pytest

from msd_analyzer.delays import (
    LAG_TOLERANCE_DECIMALS,
    round_to_decimals,
    track_delays,
    get_all_delays,
    delay_indices
)
from msd_analyzer.trajectory import Trajectory


def make_track(track_id, time, x=None):
    time = np.asarray(time, dtype=float)
    x = time if x is None else np.asarray(x, dtype=float)
    return Trajectory(id=track_id, time=time, positions=np.column_stack([x, np.zeros_like(x)]))


class TestRounding:
    """Test decimal rounding of lags."""

    def test_default_tolerance(self):
        assert LAG_TOLERANCE_DECIMALS == 12

    def test_jitter_is_removed(self):
        rounded = round_to_decimals([1.0, 1.0 + 3e-13, 1.0 - 3e-13])
        assert len(np.unique(rounded)) == 1

    def test_negative_zero_shares_bin(self):
        rounded = round_to_decimals([-0.0, 0.0, -1e-14])
        assert len(np.unique(rounded)) == 1
        assert not np.any(np.signbit(rounded))


class TestTrackDelays:
    """Test lags within a single trajectory."""

    def test_unit_spacing(self):
        delays = track_delays(np.array([0.0, 1.0, 2.0, 3.0]))
        np.testing.assert_array_equal(delays, [0, 1, 2, 3])

    def test_single_sample_gives_zero_lag(self):
        np.testing.assert_array_equal(track_delays(np.array([5.0])), [0.0])

    def test_irregular_sampling(self):
        delays = track_delays(np.array([0.0, 0.5, 2.0]))
        np.testing.assert_allclose(delays, [0.0, 0.5, 1.5, 2.0])

    def test_offset_start_time(self):
        """Lags depend only on differences."""
        np.testing.assert_array_equal(
            track_delays(np.array([10.0, 11.0, 12.0])),
            track_delays(np.array([0.0, 1.0, 2.0]))
        )


class TestAllDelays:
    """Test the lag set over several trajectories."""

    def test_union_of_tracks(self):
        a = make_track(0, [0, 1, 2, 3])
        b = make_track(1, [0, 2, 4])

        np.testing.assert_array_equal(get_all_delays([a]), [0, 1, 2, 3])
        np.testing.assert_array_equal(get_all_delays([b]), [0, 2, 4])
        np.testing.assert_array_equal(get_all_delays([a, b]), [0, 1, 2, 3, 4])

    def test_no_cross_track_lags(self):
        """Time differences between tracks are not lags."""
        a = make_track(0, [0.0])
        b = make_track(1, [7.0])
        np.testing.assert_array_equal(get_all_delays([a, b]), [0.0])

    def test_index_subset(self):
        a = make_track(0, [0, 1, 2, 3])
        b = make_track(1, [0, 2, 4])
        np.testing.assert_array_equal(get_all_delays([a, b], indices=[1]), [0, 2, 4])

    def test_empty_set(self):
        delays = get_all_delays([])
        assert len(delays) == 0

    def test_close_lags_share_a_bin(self):
        a = make_track(0, [0.0, 1.0])
        b = make_track(1, [0.0, 1.0 + 4e-13])
        np.testing.assert_array_equal(get_all_delays([a, b]), [0.0, 1.0])

    def test_separated_lags_stay_distinct(self):
        a = make_track(0, [0.0, 1.0])
        b = make_track(1, [0.0, 1.0 + 2e-11])
        assert len(get_all_delays([a, b])) == 3

    def test_boundary_straddling_lags_split(self):
        """Rounding places lags on either side of a half step in different bins."""
        a = make_track(0, [0.0, 1.0000000000004])
        b = make_track(1, [0.0, 1.0000000000006])
        np.testing.assert_allclose(get_all_delays([a, b]), [0.0, 1.0, 1.000000000001])

    def test_one_step_apart_stay_distinct(self):
        a = make_track(0, [0.0, 1.0])
        b = make_track(1, [0.0, 1.0 + 2e-12])
        assert len(get_all_delays([a, b])) == 3

    def test_threaded_matches_serial(self):
        rng = np.random.RandomState(3)
        tracks = [make_track(k, np.cumsum(rng.rand(8) + 0.1)) for k in range(10)]
        np.testing.assert_array_equal(
            get_all_delays(tracks, n_workers=4),
            get_all_delays(tracks)
        )


class TestDelayIndices:
    """Test lookup of rounded lags in the delay set."""

    def test_lookup(self):
        delays = np.array([0.0, 1.0, 2.0, 4.0])
        np.testing.assert_array_equal(delay_indices(np.array([0.0, 2.0, 4.0]), delays), [0, 2, 3])

    def test_missing_lag_raises(self):
        with pytest.raises(ValueError):
            delay_indices(np.array([3.0]), np.array([0.0, 1.0, 2.0, 4.0]))

    def test_beyond_last_raises(self):
        with pytest.raises(ValueError):
            delay_indices(np.array([5.0]), np.array([0.0, 1.0]))
