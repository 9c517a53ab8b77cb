"""
Data types shared by the drive controller and the odometry integrator
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .utils import normalize_angle


class NoiseMode(Enum):
    """Where encoder noise is injected"""
    DIRECT = 'direct'  # on forward distance and yaw change
    WHEEL = 'wheel'    # on each wheel's travel


class OpenLoopSource(Enum):
    """What drives the noiseless open-loop pose accumulator"""
    COMMAND = 'command'
    JOINTS = 'joints'


@dataclass
class VelocityCommand:
    """Body-frame velocity setpoint (m/s, rad/s)"""
    linear: float = 0.0
    angular: float = 0.0


@dataclass(frozen=True)
class WheelSpeeds:
    """Linear speed at each wheel's contact point (m/s)"""
    left: float = 0.0
    right: float = 0.0


@dataclass(frozen=True)
class Pose2D:
    """Planar pose; yaw is normalized to (-pi, pi] on construction"""
    x: float = 0.0
    y: float = 0.0
    yaw: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, 'yaw', normalize_angle(self.yaw))


@dataclass(frozen=True)
class Velocity2D:
    """Instantaneous body velocity; vy is always zero for a differential drive"""
    vx: float = 0.0
    vy: float = 0.0
    wz: float = 0.0


@dataclass(frozen=True)
class BodyDelta:
    """Forward travel (m) and heading change (rad) over one period"""
    distance: float = 0.0
    rotation: float = 0.0


@dataclass(frozen=True)
class NoisyDelta:
    """
    Output of the noise model

    The per-wheel fields are only filled in per-wheel mode.
    """
    distance: float
    rotation: float
    left_travel: Optional[float] = None
    right_travel: Optional[float] = None
    left_variance: Optional[float] = None
    right_variance: Optional[float] = None


@dataclass(frozen=True)
class OdometryIncrement:
    """Change applied to the estimated pose during one publish cycle"""
    dx: float
    dy: float
    dyaw: float
    distance: float
    left_travel: Optional[float] = None
    right_travel: Optional[float] = None
    left_rate: Optional[float] = None
    right_rate: Optional[float] = None
    left_variance: Optional[float] = None
    right_variance: Optional[float] = None


@dataclass(frozen=True)
class OdometryResult:
    """Everything one eligible integrator cycle publishes"""
    stamp: float
    elapsed: float
    pose: Pose2D
    velocity: Velocity2D
    increment: OdometryIncrement


@dataclass(frozen=True)
class DriveParameters:
    """
    Robot geometry, actuator limit and noise configuration

    Immutable after initialization.

    Args:
        wheel_separation (float): Distance between the wheels in meters
        wheel_diameter (float): Wheel diameter in meters
        max_torque (float): Torque cap applied to both wheel joints
        noise_mode (NoiseMode): Which noise model to use
        wheel_noise_scale (float): Per-wheel mode std-dev per meter of travel
        linear_noise_scale (float): Direct mode std-dev per meter of travel
        angular_noise_scale (float): Direct mode std-dev per radian of rotation
        seed (int): Optional seed for the noise generator
    """
    wheel_separation: float = 0.34
    wheel_diameter: float = 0.15
    max_torque: float = 5.0
    noise_mode: NoiseMode = NoiseMode.DIRECT
    wheel_noise_scale: float = 0.0
    linear_noise_scale: float = 0.0
    angular_noise_scale: float = 0.0
    seed: Optional[int] = field(default=None, compare=False)

    def __post_init__(self):
        if self.wheel_separation <= 0.0:
            raise ValueError(
                f"wheel_separation must be positive, got {self.wheel_separation}")
        if self.wheel_diameter <= 0.0:
            raise ValueError(
                f"wheel_diameter must be positive, got {self.wheel_diameter}")
        if self.max_torque < 0.0:
            raise ValueError(
                f"max_torque must not be negative, got {self.max_torque}")
        if not isinstance(self.noise_mode, NoiseMode):
            object.__setattr__(self, 'noise_mode', parse_noise_mode(self.noise_mode))

    @property
    def wheel_radius(self) -> float:
        return self.wheel_diameter / 2.0


def parse_noise_mode(value) -> NoiseMode:
    """
    Resolve a noise mode from its configuration string

    Args:
        value: NoiseMode or one of 'direct', 'wheel'

    Returns:
        NoiseMode: Matching mode

    Raises:
        ValueError: If the value names no known mode
    """
    if isinstance(value, NoiseMode):
        return value
    try:
        return NoiseMode(str(value).lower())
    except ValueError:
        raise ValueError(
            f"noise mode must be one of {[m.value for m in NoiseMode]}, got {value!r}")


def parse_open_loop_source(value) -> OpenLoopSource:
    """Resolve the open-loop accumulator source from its configuration string"""
    if isinstance(value, OpenLoopSource):
        return value
    try:
        return OpenLoopSource(str(value).lower())
    except ValueError:
        raise ValueError(
            f"open-loop source must be one of {[s.value for s in OpenLoopSource]}, "
            f"got {value!r}")
