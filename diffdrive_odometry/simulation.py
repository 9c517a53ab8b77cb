"""
Simulation collaborator

SimulationInterface is what the drive controller and the odometry integrator
need from a physics engine: the true pose, the clock, wheel joints and a
per-step callback. KinematicSimulation implements it with ideal
differential-drive motion so the node runs without an external simulator.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List

from .kinematics import wheel_motion_to_body_delta
from .models import Pose2D
from .utils import update_pose


class SimulationInterface(ABC):
    """Operations consumed from the physics/simulation engine"""

    @abstractmethod
    def get_true_pose(self) -> Pose2D:
        ...

    @abstractmethod
    def get_step_time(self) -> float:
        ...

    @abstractmethod
    def get_time(self) -> float:
        ...

    @abstractmethod
    def has_joint(self, name: str) -> bool:
        ...

    @abstractmethod
    def get_joint_velocity(self, name: str) -> float:
        ...

    @abstractmethod
    def set_joint_velocity(self, name: str, velocity: float):
        ...

    @abstractmethod
    def set_joint_max_torque(self, name: str, torque: float):
        ...

    @abstractmethod
    def set_world_pose(self, pose: Pose2D):
        ...

    @abstractmethod
    def register_step_callback(self, callback: Callable[[], None]):
        ...


@dataclass
class JointState:
    """Actuator state of one wheel joint"""
    velocity: float = 0.0    # rad/s setpoint, tracked ideally
    max_torque: float = 0.0


class KinematicSimulation(SimulationInterface):
    """
    Ideal differential-drive world

    Joints follow their velocity setpoints instantly and the true pose moves
    exactly as the wheels dictate.
    """

    def __init__(
        self,
        joint_names: Iterable[str] = ('left_joint', 'right_joint'),
        left_joint: str = 'left_joint',
        right_joint: str = 'right_joint',
        wheel_separation: float = 0.34,
        wheel_diameter: float = 0.15,
        step_time: float = 0.001,
        initial_pose: Pose2D = Pose2D()
    ):
        """
        Initialize the simulation

        Args:
            joint_names (Iterable[str]): Joints the model exposes
            left_joint (str): Joint that drives the left wheel
            right_joint (str): Joint that drives the right wheel
            wheel_separation (float): Distance between wheels in meters
            wheel_diameter (float): Wheel diameter in meters
            step_time (float): Physics step in seconds
            initial_pose (Pose2D): True pose at time zero
        """
        if step_time <= 0.0:
            raise ValueError(f"step_time must be positive, got {step_time}")

        self.joints: Dict[str, JointState] = {name: JointState() for name in joint_names}
        self.left_joint = left_joint
        self.right_joint = right_joint
        self.wheel_separation = wheel_separation
        self.wheel_radius = wheel_diameter / 2.0
        self.step_time = step_time

        self.pose = initial_pose
        self.time = 0.0
        self.step_count = 0
        self._callbacks: List[Callable[[], None]] = []

    # Collaborator interface

    def get_true_pose(self) -> Pose2D:
        return self.pose

    def get_step_time(self) -> float:
        return self.step_time

    def get_time(self) -> float:
        return self.time

    def has_joint(self, name: str) -> bool:
        return name in self.joints

    def get_joint_velocity(self, name: str) -> float:
        return self.joints[name].velocity

    def set_joint_velocity(self, name: str, velocity: float):
        self.joints[name].velocity = velocity

    def set_joint_max_torque(self, name: str, torque: float):
        self.joints[name].max_torque = torque

    def set_world_pose(self, pose: Pose2D):
        self.pose = pose

    def register_step_callback(self, callback: Callable[[], None]):
        self._callbacks.append(callback)

    # Stepping

    def step(self):
        """Advance physics by one step, then fire the step callbacks"""
        left_dist = self._wheel_travel(self.left_joint)
        right_dist = self._wheel_travel(self.right_joint)
        delta = wheel_motion_to_body_delta(left_dist, right_dist, self.wheel_separation)

        x, y, yaw = update_pose(
            self.pose.x, self.pose.y, self.pose.yaw, delta.distance, delta.rotation
        )
        self.pose = Pose2D(x, y, yaw)
        self.step_count += 1
        self.time = self.step_count * self.step_time

        for callback in self._callbacks:
            callback()

    def run(self, steps: int):
        for _ in range(steps):
            self.step()

    def _wheel_travel(self, joint: str) -> float:
        state = self.joints.get(joint)
        if state is None:
            return 0.0
        return state.velocity * self.wheel_radius * self.step_time
