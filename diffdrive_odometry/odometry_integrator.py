#!/usr/bin/env python3
"""
Noisy odometry integrator

Dead-reckons an estimated pose from the motion of the true pose between
publish cycles, passing every increment through the noise model first.
"""

import math
from enum import Enum
from typing import Optional

from .models import BodyDelta, OdometryIncrement, OdometryResult, Pose2D, Velocity2D
from .noise_model import NoiseModel
from .utils import calculate_velocities, normalize_angle, update_pose

# Slack on the publish period for clocks built from summed float steps
PERIOD_TOLERANCE = 1e-9


class IntegratorState(Enum):
    """Integrator state"""
    IDLE = 'idle'
    INTEGRATING = 'integrating'


def true_pose_delta(previous: Pose2D, current: Pose2D) -> BodyDelta:
    """
    Motion between two true poses, expressed in the previous heading frame

    Only the forward component of the translation is kept; a differential
    drive cannot move sideways.

    Args:
        previous (Pose2D): True pose at the last publish cycle
        current (Pose2D): True pose now

    Returns:
        BodyDelta: (distance, rotation)
    """
    dx = current.x - previous.x
    dy = current.y - previous.y
    forward = dx * math.cos(previous.yaw) + dy * math.sin(previous.yaw)
    return BodyDelta(
        distance=forward,
        rotation=normalize_angle(current.yaw - previous.yaw),
    )


class OdometryIntegrator:
    """
    Rate-limited noisy odometry estimator

    Owns the estimated pose. Each call to step() either does nothing (not yet
    time to publish) or integrates exactly one corrupted increment.
    """

    def __init__(
        self,
        noise_model: NoiseModel,
        initial_true_pose: Pose2D,
        start_time: float,
        publish_period: float = 0.05,
        initial_pose: Optional[Pose2D] = None
    ):
        """
        Initialize the integrator

        Args:
            noise_model (NoiseModel): Source of corrupted increments
            initial_true_pose (Pose2D): True pose at startup
            start_time (float): Time at startup in seconds
            publish_period (float): Minimum time between integration cycles
            initial_pose (Pose2D): Starting estimate (default: origin)
        """
        if publish_period < 0.0:
            raise ValueError(f"publish_period must not be negative, got {publish_period}")

        self.noise_model = noise_model
        self.publish_period = publish_period

        self.last_true_pose = initial_true_pose
        self.estimated_pose = initial_pose if initial_pose is not None else Pose2D()
        self.last_publish_time = start_time
        self.velocity = Velocity2D()
        self.state = IntegratorState.IDLE

    @classmethod
    def from_rate(cls, noise_model: NoiseModel, initial_true_pose: Pose2D,
                  start_time: float, publish_rate: float) -> 'OdometryIntegrator':
        if publish_rate <= 0.0:
            raise ValueError(f"publish_rate must be positive, got {publish_rate}")
        return cls(noise_model, initial_true_pose, start_time,
                   publish_period=1.0 / publish_rate)

    def is_due(self, now: float) -> bool:
        """Check whether a cycle at the given time would integrate"""
        elapsed = now - self.last_publish_time
        return elapsed > 0.0 and elapsed >= self.publish_period - PERIOD_TOLERANCE

    def step(self, now: float, true_pose: Pose2D) -> Optional[OdometryResult]:
        """
        Run one integrator cycle

        Args:
            now (float): Current time in seconds
            true_pose (Pose2D): Most recent true pose

        Returns:
            Optional[OdometryResult]: Published result, or None if the cycle
            was skipped by rate limiting or a non-advancing clock
        """
        if not self.is_due(now):
            return None

        self.state = IntegratorState.INTEGRATING
        try:
            dt = now - self.last_publish_time
            noisy = self.noise_model.apply(true_pose_delta(self.last_true_pose, true_pose))

            previous = self.estimated_pose
            x, y, yaw = update_pose(
                previous.x, previous.y, previous.yaw, noisy.distance, noisy.rotation
            )
            pose = Pose2D(x, y, yaw)

            linear_vel, angular_vel = calculate_velocities(noisy.distance, noisy.rotation, dt)
            velocity = Velocity2D(vx=linear_vel, vy=0.0, wz=angular_vel)

            left_rate = right_rate = None
            if noisy.left_travel is not None:
                left_rate = noisy.left_travel / dt
                right_rate = noisy.right_travel / dt

            increment = OdometryIncrement(
                dx=pose.x - previous.x,
                dy=pose.y - previous.y,
                dyaw=normalize_angle(noisy.rotation),
                distance=noisy.distance,
                left_travel=noisy.left_travel,
                right_travel=noisy.right_travel,
                left_rate=left_rate,
                right_rate=right_rate,
                left_variance=noisy.left_variance,
                right_variance=noisy.right_variance,
            )

            self.last_true_pose = true_pose
            self.estimated_pose = pose
            self.velocity = velocity
            self.last_publish_time = now

            return OdometryResult(
                stamp=now, elapsed=dt, pose=pose, velocity=velocity, increment=increment
            )
        finally:
            self.state = IntegratorState.IDLE
