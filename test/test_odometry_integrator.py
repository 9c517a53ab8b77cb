#!/usr/bin/env python3
"""
Test the rate-limited noisy odometry integrator
"""

import math

import pytest

from diffdrive_odometry.models import NoiseMode, NoisyDelta, Pose2D
from diffdrive_odometry.noise_model import NoiseModel
from diffdrive_odometry.odometry_integrator import (
    IntegratorState, OdometryIntegrator, true_pose_delta
)
from diffdrive_odometry.utils import update_pose


def make_integrator(noise_model=None, period=0.0, true_pose=Pose2D(), initial_pose=None):
    if noise_model is None:
        noise_model = NoiseModel()
    return OdometryIntegrator(noise_model, true_pose, start_time=0.0,
                              publish_period=period, initial_pose=initial_pose)


def arc_trajectory(steps, distance=0.02, rotation=0.05, start=Pose2D()):
    """True poses of a robot driving a constant arc"""
    poses = []
    pose = start
    for _ in range(steps):
        x, y, yaw = update_pose(pose.x, pose.y, pose.yaw, distance, rotation)
        pose = Pose2D(x, y, yaw)
        poses.append(pose)
    return poses


class TestTruePoseDelta:

    def test_forward_motion_in_previous_heading_frame(self):
        delta = true_pose_delta(Pose2D(0.0, 0.0, math.pi / 2), Pose2D(0.0, 1.0, math.pi / 2))
        assert delta.distance == pytest.approx(1.0)
        assert delta.rotation == pytest.approx(0.0)

    def test_backward_motion_is_negative(self):
        delta = true_pose_delta(Pose2D(1.0, 0.0, 0.0), Pose2D(0.5, 0.0, 0.0))
        assert delta.distance == pytest.approx(-0.5)

    def test_lateral_motion_is_dropped(self):
        delta = true_pose_delta(Pose2D(0.0, 0.0, 0.0), Pose2D(0.0, 0.3, 0.0))
        assert delta.distance == pytest.approx(0.0)

    def test_rotation_across_the_wrap_is_short(self):
        delta = true_pose_delta(Pose2D(yaw=3.1), Pose2D(yaw=-3.1))
        assert delta.rotation == pytest.approx(2.0 * math.pi - 6.2)


class TestZeroNoise:

    def test_estimate_equals_dead_reckoning_of_true_deltas(self):
        integrator = make_integrator()
        poses = arc_trajectory(200)

        x = y = yaw = 0.0
        previous = Pose2D()
        for i, true_pose in enumerate(poses, start=1):
            result = integrator.step(i * 0.01, true_pose)
            delta = true_pose_delta(previous, true_pose)
            x, y, yaw = update_pose(x, y, yaw, delta.distance, delta.rotation)
            previous = true_pose

            assert result.pose.x == pytest.approx(x, abs=1e-12)
            assert result.pose.y == pytest.approx(y, abs=1e-12)
            assert result.pose.yaw == pytest.approx(yaw, abs=1e-12)

    @pytest.mark.parametrize('mode', [NoiseMode.DIRECT, NoiseMode.WHEEL])
    def test_estimate_tracks_truth_from_same_start(self, mode):
        integrator = make_integrator(NoiseModel(mode=mode))
        for i, true_pose in enumerate(arc_trajectory(300), start=1):
            result = integrator.step(i * 0.01, true_pose)
            assert result.pose.x == pytest.approx(true_pose.x, abs=1e-9)
            assert result.pose.y == pytest.approx(true_pose.y, abs=1e-9)
            assert result.pose.yaw == pytest.approx(true_pose.yaw, abs=1e-9)


class TestYawNormalization:

    def test_yaw_stays_in_range_while_spinning(self):
        integrator = make_integrator(initial_pose=Pose2D(yaw=3.0))
        expected = 3.0
        for i in range(1, 101):
            result = integrator.step(float(i), Pose2D(yaw=float(i)))
            expected = math.atan2(math.sin(expected + 1.0), math.cos(expected + 1.0))

            assert -math.pi < result.pose.yaw <= math.pi
            assert -math.pi < integrator.estimated_pose.yaw <= math.pi
            assert result.pose.yaw == pytest.approx(expected, abs=1e-9)


class TestStationaryRobot:

    @pytest.mark.parametrize('noise_model', [
        NoiseModel(mode=NoiseMode.DIRECT, linear_scale=0.5, angular_scale=0.5, seed=1),
        NoiseModel(mode=NoiseMode.WHEEL, wheel_scale=0.5, seed=1),
    ])
    def test_pose_unchanged_after_many_still_cycles(self, noise_model):
        start = Pose2D(1.5, -2.0, 0.7)
        true_pose = Pose2D(4.0, 4.0, -1.0)
        integrator = make_integrator(noise_model, true_pose=true_pose, initial_pose=start)

        for i in range(1, 101):
            result = integrator.step(i * 0.05, true_pose)
            assert result is not None
            assert result.pose == start
            assert result.velocity.vx == 0.0
            assert result.velocity.wz == 0.0


class TestRateLimiting:

    def test_publishes_every_fifth_call(self):
        integrator = make_integrator(period=0.05)
        published = []
        now = 0.0
        for i in range(1, 101):
            now += 0.01
            result = integrator.step(now, Pose2D(x=i * 0.001))
            if result is not None:
                published.append(i)

        assert len(published) == 20
        assert published[0] == 5
        gaps = [b - a for a, b in zip(published, published[1:])]
        assert all(gap == 5 for gap in gaps)

    def test_period_tolerance_absorbs_float_error(self):
        integrator = make_integrator(period=0.05)
        assert integrator.step(0.05 - 1e-12, Pose2D(x=0.1)) is not None
        assert integrator.step(0.09, Pose2D(x=0.2)) is None

    def test_skipped_cycle_changes_nothing(self):
        integrator = make_integrator(period=0.05)
        assert integrator.step(0.01, Pose2D(x=1.0)) is None
        assert integrator.estimated_pose == Pose2D()
        assert integrator.last_true_pose == Pose2D()
        assert integrator.last_publish_time == 0.0

    def test_increment_measured_since_last_publish(self):
        integrator = make_integrator(period=0.05)
        integrator.step(0.01, Pose2D(x=0.1))
        integrator.step(0.02, Pose2D(x=0.2))
        result = integrator.step(0.05, Pose2D(x=0.5))
        assert result.increment.distance == pytest.approx(0.5)
        assert result.elapsed == pytest.approx(0.05)

    @pytest.mark.parametrize('now', [0.0, -0.01])
    def test_non_advancing_clock_skips_cycle(self, now):
        integrator = make_integrator()
        assert integrator.step(now, Pose2D(x=1.0)) is None
        assert integrator.estimated_pose == Pose2D()
        assert integrator.state == IntegratorState.IDLE

    def test_from_rate(self):
        integrator = OdometryIntegrator.from_rate(NoiseModel(), Pose2D(), 0.0, 20.0)
        assert integrator.publish_period == pytest.approx(0.05)
        with pytest.raises(ValueError):
            OdometryIntegrator.from_rate(NoiseModel(), Pose2D(), 0.0, 0.0)

    def test_negative_period_raises(self):
        with pytest.raises(ValueError):
            make_integrator(period=-1.0)


class TestPublishedResult:

    def test_velocity_is_increment_over_elapsed_time(self):
        integrator = make_integrator()
        result = integrator.step(0.05, Pose2D(0.1, 0.0, 0.02))
        assert result.velocity.vx == pytest.approx(2.0)
        assert result.velocity.vy == 0.0
        assert result.velocity.wz == pytest.approx(0.4)
        assert result.stamp == 0.05

    def test_increment_is_world_frame_change(self):
        integrator = make_integrator(initial_pose=Pose2D(yaw=math.pi / 2))
        result = integrator.step(0.1, Pose2D(x=0.3))
        assert result.increment.dx == pytest.approx(0.0, abs=1e-12)
        assert result.increment.dy == pytest.approx(0.3)
        assert result.pose.y == pytest.approx(0.3)

    def test_direct_mode_has_no_wheel_data(self):
        integrator = make_integrator(NoiseModel(mode=NoiseMode.DIRECT, linear_scale=0.1))
        result = integrator.step(0.1, Pose2D(x=0.3))
        increment = result.increment
        assert increment.left_travel is None
        assert increment.left_rate is None
        assert increment.left_variance is None

    def test_wheel_mode_reports_travel_rates_and_variance(self):
        model = NoiseModel(mode=NoiseMode.WHEEL, track_width=0.34, wheel_scale=0.1, seed=2)
        integrator = make_integrator(model)
        result = integrator.step(0.1, Pose2D(x=0.3))
        increment = result.increment

        assert increment.left_rate == pytest.approx(increment.left_travel / 0.1)
        assert increment.right_rate == pytest.approx(increment.right_travel / 0.1)
        assert increment.left_variance == pytest.approx((0.1 * 0.3) ** 2)
        assert increment.distance == pytest.approx(
            (increment.left_travel + increment.right_travel) / 2.0)

    def test_yaw_increment_is_normalized(self):
        class OvershootingNoise:
            def apply(self, delta):
                return NoisyDelta(distance=delta.distance, rotation=3.5)

        integrator = make_integrator(OvershootingNoise())
        result = integrator.step(0.1, Pose2D(yaw=3.1))

        assert result.increment.dyaw == pytest.approx(3.5 - 2.0 * math.pi)
        assert -math.pi < result.increment.dyaw <= math.pi
        assert result.pose.yaw == pytest.approx(result.increment.dyaw)

    def test_noise_makes_estimate_drift(self):
        model = NoiseModel(linear_scale=0.2, angular_scale=0.2, seed=4)
        integrator = make_integrator(model)
        poses = arc_trajectory(100)
        for i, true_pose in enumerate(poses, start=1):
            integrator.step(i * 0.01, true_pose)

        estimate = integrator.estimated_pose
        error = math.hypot(estimate.x - poses[-1].x, estimate.y - poses[-1].y)
        assert error > 1e-6
        assert math.isfinite(estimate.x) and math.isfinite(estimate.y)


if __name__ == '__main__':
    pytest.main([__file__])
