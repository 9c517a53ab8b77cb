#!/usr/bin/env python3
"""
Differential drive controller

Turns the latest velocity command into wheel joint setpoints every physics
step and keeps a noiseless open-loop pose, separate from the published
noisy odometry.
"""

from typing import Tuple

from .command_intake import CommandIntake
from .kinematics import command_to_wheel_speeds, wheel_motion_to_body_delta
from .models import (
    DriveParameters, OpenLoopSource, Pose2D, Velocity2D, WheelSpeeds,
    parse_open_loop_source,
)
from .simulation import SimulationInterface
from .utils import calculate_velocities, update_pose


class MissingJointError(RuntimeError):
    """Raised when a wheel joint the controller needs does not exist"""

    def __init__(self, side: str, joint_name: str):
        super().__init__(f"The controller couldn't get {side} hinge joint '{joint_name}'")
        self.side = side
        self.joint_name = joint_name


class DriveController:
    """
    Applies wheel setpoints and integrates the open-loop pose

    Both wheel joints are resolved at construction; a missing joint aborts
    initialization.
    """

    def __init__(
        self,
        params: DriveParameters,
        actuators: SimulationInterface,
        intake: CommandIntake,
        left_joint: str = 'left_joint',
        right_joint: str = 'right_joint',
        open_loop_source=OpenLoopSource.COMMAND
    ):
        """
        Initialize the controller

        Args:
            params (DriveParameters): Geometry and torque limit
            actuators (SimulationInterface): Owner of the wheel joints
            intake (CommandIntake): Source of the latest velocity command
            left_joint (str): Left wheel joint name
            right_joint (str): Right wheel joint name
            open_loop_source: Drive the open-loop pose from the command
                or from the measured joint velocities

        Raises:
            MissingJointError: If either joint is missing
        """
        if not actuators.has_joint(left_joint):
            raise MissingJointError('left', left_joint)
        if not actuators.has_joint(right_joint):
            raise MissingJointError('right', right_joint)

        self.params = params
        self.actuators = actuators
        self.intake = intake
        self.left_joint = left_joint
        self.right_joint = right_joint
        self.open_loop_source = parse_open_loop_source(open_loop_source)

        self.wheel_speeds = WheelSpeeds()
        self.open_loop_pose = Pose2D()
        self.open_loop_velocity = Velocity2D()

    @property
    def joint_setpoints(self) -> Tuple[float, float]:
        """Angular velocity setpoints (rad/s) derived from the current wheel speeds"""
        radius = self.params.wheel_radius
        return self.wheel_speeds.left / radius, self.wheel_speeds.right / radius

    def update(self, step_time: float):
        """
        Run one physics step

        Args:
            step_time (float): Physics step in seconds
        """
        command = self.intake.get_latest()
        self.wheel_speeds = command_to_wheel_speeds(command, self.params.wheel_separation)

        left_setpoint, right_setpoint = self.joint_setpoints
        self.actuators.set_joint_velocity(self.left_joint, left_setpoint)
        self.actuators.set_joint_velocity(self.right_joint, right_setpoint)
        self.actuators.set_joint_max_torque(self.left_joint, self.params.max_torque)
        self.actuators.set_joint_max_torque(self.right_joint, self.params.max_torque)

        self._integrate_open_loop(step_time)

    def _integrate_open_loop(self, step_time: float):
        if self.open_loop_source == OpenLoopSource.JOINTS:
            radius = self.params.wheel_radius
            left_dist = step_time * radius * self.actuators.get_joint_velocity(self.left_joint)
            right_dist = step_time * radius * self.actuators.get_joint_velocity(self.right_joint)
        else:
            left_dist = self.wheel_speeds.left * step_time
            right_dist = self.wheel_speeds.right * step_time

        delta = wheel_motion_to_body_delta(left_dist, right_dist, self.params.wheel_separation)

        pose = self.open_loop_pose
        x, y, yaw = update_pose(pose.x, pose.y, pose.yaw, delta.distance, delta.rotation)
        self.open_loop_pose = Pose2D(x, y, yaw)

        linear_vel, angular_vel = calculate_velocities(delta.distance, delta.rotation, step_time)
        self.open_loop_velocity = Velocity2D(vx=linear_vel, vy=0.0, wz=angular_vel)

    def write_world_pose(self):
        """Overwrite the simulated world pose with the open-loop pose"""
        self.actuators.set_world_pose(self.open_loop_pose)
