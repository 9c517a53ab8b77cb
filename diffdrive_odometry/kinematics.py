"""
Differential drive kinematics

Maps body-frame velocity commands to wheel speeds and wheel travel back to
body-frame displacement. Positive angular velocity speeds up the left wheel.
"""

from typing import Tuple

from .models import BodyDelta, VelocityCommand, WheelSpeeds


def command_to_wheel_speeds(command: VelocityCommand, track_width: float) -> WheelSpeeds:
    """
    Convert a body velocity command to wheel contact-point speeds

    Args:
        command (VelocityCommand): Forward speed and yaw rate
        track_width (float): Distance between wheels, must be positive

    Returns:
        WheelSpeeds: Left and right linear speeds in m/s
    """
    half_turn = command.angular * track_width / 2.0
    return WheelSpeeds(
        left=command.linear + half_turn,
        right=command.linear - half_turn,
    )


def wheel_motion_to_body_delta(
    left_dist: float, right_dist: float, track_width: float
) -> BodyDelta:
    """
    Calculate forward and heading displacement from wheel travel

    Args:
        left_dist (float): Left wheel distance
        right_dist (float): Right wheel distance
        track_width (float): Distance between wheels

    Returns:
        BodyDelta: (distance, rotation)
    """
    return BodyDelta(
        distance=(left_dist + right_dist) / 2.0,
        rotation=(left_dist - right_dist) / track_width,
    )


def body_delta_to_wheel_motion(delta: BodyDelta, track_width: float) -> Tuple[float, float]:
    """
    Split a body displacement into the wheel travel that produces it

    Args:
        delta (BodyDelta): Forward distance and heading change
        track_width (float): Distance between wheels

    Returns:
        Tuple[float, float]: (left_distance, right_distance)
    """
    half_turn = delta.rotation * track_width / 2.0
    return delta.distance + half_turn, delta.distance - half_turn
