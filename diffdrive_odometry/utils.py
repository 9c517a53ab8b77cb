#!/usr/bin/env python3
"""
Utility functions for differential drive odometry calculations
"""

import math
from typing import Tuple, List


def normalize_angle(angle: float) -> float:
    """
    Normalize angle to (-pi, pi]

    Args:
        angle (float): Angle in radians

    Returns:
        float: Normalized angle
    """
    while angle > math.pi:
        angle -= 2.0 * math.pi
    while angle <= -math.pi:
        angle += 2.0 * math.pi
    return angle


def update_pose(
    x: float, y: float, theta: float,
    linear_disp: float, angular_disp: float
) -> Tuple[float, float, float]:
    """
    Update robot pose using odometry displacement

    The translation is applied along the heading held before this update,
    then the heading is advanced and normalized.

    Args:
        x (float): Current x position
        y (float): Current y position
        theta (float): Current orientation
        linear_disp (float): Linear displacement
        angular_disp (float): Angular displacement

    Returns:
        Tuple[float, float, float]: (new_x, new_y, new_theta)
    """
    new_x = x + linear_disp * math.cos(theta)
    new_y = y + linear_disp * math.sin(theta)
    new_theta = normalize_angle(theta + angular_disp)

    return new_x, new_y, new_theta


def calculate_velocities(
    linear_disp: float, angular_disp: float, dt: float
) -> Tuple[float, float]:
    """
    Calculate linear and angular velocities

    Args:
        linear_disp (float): Linear displacement in meters
        angular_disp (float): Angular displacement in radians
        dt (float): Time delta in seconds

    Returns:
        Tuple[float, float]: (linear_velocity, angular_velocity)
    """
    if dt <= 0:
        return 0.0, 0.0

    linear_vel = linear_disp / dt
    angular_vel = angular_disp / dt

    return linear_vel, angular_vel


def euler_to_quaternion(roll: float, pitch: float, yaw: float) -> List[float]:
    """
    Convert Euler angles to quaternion [x, y, z, w]

    Args:
        roll (float): Roll angle in radians
        pitch (float): Pitch angle in radians
        yaw (float): Yaw angle in radians

    Returns:
        List[float]: Quaternion [x, y, z, w]
    """
    cy = math.cos(yaw * 0.5)
    sy = math.sin(yaw * 0.5)
    cp = math.cos(pitch * 0.5)
    sp = math.sin(pitch * 0.5)
    cr = math.cos(roll * 0.5)
    sr = math.sin(roll * 0.5)

    qw = cr * cp * cy + sr * sp * sy
    qx = sr * cp * cy - cr * sp * sy
    qy = cr * sp * cy + sr * cp * sy
    qz = cr * cp * sy - sr * sp * cy

    return [qx, qy, qz, qw]


def wheel_variance_to_body_covariance(
    left_var: float, right_var: float, track_width: float
) -> Tuple[float, float]:
    """
    Propagate independent wheel travel variances to body displacement variances

    Args:
        left_var (float): Variance of the left wheel travel (m^2)
        right_var (float): Variance of the right wheel travel (m^2)
        track_width (float): Distance between wheels

    Returns:
        Tuple[float, float]: (linear_variance, angular_variance)
    """
    linear_var = (left_var + right_var) / 4.0
    angular_var = (left_var + right_var) / (track_width * track_width)
    return linear_var, angular_var
