#!/usr/bin/env python3
"""
Encoder noise model for simulated wheel odometry

Corrupts the true motion of one odometry period with zero-mean Gaussian noise
whose standard deviation grows with the motion itself, so a robot standing
still accumulates no drift.

Two modes are available:
    direct  Noise on the forward distance (alpha) and on the heading
            change (beta). Default.
    wheel   The motion is split into left/right wheel travel, each wheel gets
            independent noise, and the noisy travel is recombined. Also
            reports the noisy per-wheel travel and its variance.
"""

from typing import Optional

import numpy as np

from .kinematics import body_delta_to_wheel_motion, wheel_motion_to_body_delta
from .models import BodyDelta, DriveParameters, NoiseMode, NoisyDelta, parse_noise_mode

# Lower bound for the per-wheel standard deviation
MIN_WHEEL_STDDEV = 1e-6


class NoiseModel:
    """
    Gaussian encoder noise scaled by the true motion

    The random generator is created once and reused for every sample.
    """

    def __init__(
        self,
        mode=NoiseMode.DIRECT,
        track_width: float = 0.34,
        wheel_scale: float = 0.0,
        linear_scale: float = 0.0,
        angular_scale: float = 0.0,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None
    ):
        """
        Initialize the noise model

        Args:
            mode: NoiseMode or its configuration string
            track_width (float): Distance between wheels
            wheel_scale (float): Per-wheel std-dev per meter of wheel travel
            linear_scale (float): Direct mode std-dev per meter of travel
            angular_scale (float): Direct mode std-dev per radian of rotation
            seed (int): Seed for a new generator (ignored when rng is given)
            rng (np.random.Generator): Generator to draw samples from
        """
        self.mode = parse_noise_mode(mode)
        self.track_width = track_width
        self.wheel_scale = wheel_scale
        self.linear_scale = linear_scale
        self.angular_scale = angular_scale
        self.rng = rng if rng is not None else np.random.default_rng(seed)

    @classmethod
    def from_parameters(cls, params: DriveParameters,
                        rng: Optional[np.random.Generator] = None) -> 'NoiseModel':
        return cls(
            mode=params.noise_mode,
            track_width=params.wheel_separation,
            wheel_scale=params.wheel_noise_scale,
            linear_scale=params.linear_noise_scale,
            angular_scale=params.angular_noise_scale,
            seed=params.seed,
            rng=rng,
        )

    @property
    def enabled(self) -> bool:
        """True if any coefficient of the active mode is positive"""
        if self.mode == NoiseMode.WHEEL:
            return self.wheel_scale > 0.0
        return self.linear_scale > 0.0 or self.angular_scale > 0.0

    def apply(self, delta: BodyDelta) -> NoisyDelta:
        """
        Corrupt one period of true motion

        Args:
            delta (BodyDelta): True forward distance and heading change

        Returns:
            NoisyDelta: Corrupted motion (plus per-wheel data in wheel mode)
        """
        if self.mode == NoiseMode.WHEEL:
            return self._apply_per_wheel(delta)
        return self._apply_direct(delta)

    def _apply_direct(self, delta: BodyDelta) -> NoisyDelta:
        distance = delta.distance
        rotation = delta.rotation

        linear_std = self.linear_scale * abs(distance)
        if linear_std > 0.0:
            distance += self.rng.normal(0.0, linear_std)

        angular_std = self.angular_scale * abs(rotation)
        if angular_std > 0.0:
            rotation += self.rng.normal(0.0, angular_std)

        return NoisyDelta(distance=float(distance), rotation=float(rotation))

    def _apply_per_wheel(self, delta: BodyDelta) -> NoisyDelta:
        left, right = body_delta_to_wheel_motion(delta, self.track_width)

        left_std = self._wheel_stddev(left)
        right_std = self._wheel_stddev(right)

        noisy_left = self._perturb_wheel(left, left_std)
        noisy_right = self._perturb_wheel(right, right_std)

        noisy = wheel_motion_to_body_delta(noisy_left, noisy_right, self.track_width)
        return NoisyDelta(
            distance=noisy.distance,
            rotation=noisy.rotation,
            left_travel=noisy_left,
            right_travel=noisy_right,
            left_variance=left_std * left_std,
            right_variance=right_std * right_std,
        )

    def _wheel_stddev(self, travel: float) -> float:
        return max(abs(self.wheel_scale * travel), MIN_WHEEL_STDDEV)

    def _perturb_wheel(self, travel: float, stddev: float) -> float:
        # A wheel that did not turn reads exactly zero; the floored std-dev is
        # still reported as its variance.
        if self.wheel_scale <= 0.0 or travel == 0.0:
            return travel
        return float(travel + self.rng.normal(0.0, stddev))
