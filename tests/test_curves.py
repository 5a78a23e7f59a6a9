"""
Test per-track MSD and velocity correlation.
"""

import numpy as np
import pytest

from msd_analyzer.curves import compute_track_msd, compute_track_vcorr, compute_velocities
from msd_analyzer.trajectory import Trajectory


def linear_track(track_id, time, speed=1.0):
    time = np.asarray(time, dtype=float)
    positions = np.column_stack([speed * time, np.zeros_like(time)])
    return Trajectory(id=track_id, time=time, positions=positions)


class TestTrackMSD:
    """Test MSD of single trajectories."""

    def test_linear_motion_unit_spacing(self):
        curve = compute_track_msd(linear_track(0, [0, 1, 2, 3]))

        np.testing.assert_array_equal(curve.lags, [0, 1, 2, 3])
        np.testing.assert_allclose(curve.mean, [0, 1, 4, 9])
        np.testing.assert_array_equal(curve.n, [4, 3, 2, 1])
        np.testing.assert_allclose(curve.std, 0.0)

    def test_zero_lag_is_exactly_zero(self):
        rng = np.random.RandomState(0)
        for _ in range(20):
            n = rng.randint(1, 15)
            traj = Trajectory(id=0, time=np.cumsum(rng.rand(n) + 0.01),
                              positions=rng.randn(n, 3))
            curve = compute_track_msd(traj)
            assert curve.lags[0] == 0.0
            assert curve.mean[0] == 0.0
            assert curve.n[0] == n

    def test_single_sample(self):
        curve = compute_track_msd(linear_track(0, [3.0]))
        np.testing.assert_array_equal(curve.lags, [0.0])
        np.testing.assert_array_equal(curve.mean, [0.0])
        np.testing.assert_array_equal(curve.n, [1])

    def test_empty_track(self):
        curve = compute_track_msd(Trajectory(id=0))
        assert len(curve) == 0

    def test_missing_frames(self):
        """Frames 0, 1, 3: lag 2 has one pair, lag 1 has one pair."""
        curve = compute_track_msd(linear_track(0, [0, 1, 3]))

        np.testing.assert_array_equal(curve.lags, [0, 1, 2, 3])
        np.testing.assert_array_equal(curve.n, [3, 1, 1, 1])
        np.testing.assert_allclose(curve.mean, [0, 1, 4, 9])

    def test_grouped_mean_and_std(self):
        traj = Trajectory(id=0, time=[0, 1, 2], positions=[[0.0], [1.0], [3.0]])
        curve = compute_track_msd(traj)

        # lag 1: squared displacements 1 and 4
        assert curve.mean[1] == pytest.approx(2.5)
        assert curve.std[1] == pytest.approx(1.5)
        assert curve.n[1] == 2

    def test_as_array(self):
        curve = compute_track_msd(linear_track(0, [0, 1]))
        np.testing.assert_allclose(curve.as_array(), [[0, 0, 0, 2], [1, 1, 0, 1]])

    def test_arrays_read_only(self):
        curve = compute_track_msd(linear_track(0, [0, 1, 2]))
        with pytest.raises(ValueError):
            curve.mean[0] = 1.0
        with pytest.raises(ValueError):
            curve.n[0] = 0


class TestVelocities:
    """Test finite-difference velocities."""

    def test_irregular_steps(self):
        traj = Trajectory(id=0, time=[0.0, 0.5, 2.0], positions=[[0.0], [1.0], [4.0]])
        time, velocities = compute_velocities(traj)

        np.testing.assert_array_equal(time, [0.0, 0.5])
        np.testing.assert_allclose(velocities, [[2.0], [2.0]])


class TestTrackVCorr:
    """Test velocity correlation of single trajectories."""

    def test_constant_velocity(self):
        curve = compute_track_vcorr(linear_track(0, [0, 1, 2, 3], speed=2.0))

        np.testing.assert_array_equal(curve.lags, [0, 1, 2])
        np.testing.assert_allclose(curve.mean, [4, 4, 4])
        np.testing.assert_array_equal(curve.n, [3, 2, 1])

    def test_reversal_anticorrelates(self):
        traj = Trajectory(id=0, time=[0, 1, 2], positions=[[0.0], [1.0], [0.0]])
        curve = compute_track_vcorr(traj)

        np.testing.assert_allclose(curve.mean, [1.0, -1.0])

    def test_short_track_contributes_nothing(self):
        assert len(compute_track_vcorr(linear_track(0, [1.0]))) == 0
