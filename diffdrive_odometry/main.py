#!/usr/bin/env python3
"""
Main Differential Drive Odometry Node

ROS 2 node that drives a simulated differential-drive robot from cmd_vel and
publishes deliberately noisy wheel odometry plus the matching TF transform.
"""

import rclpy
from rclpy.node import Node
from rclpy.qos import QoSProfile, ReliabilityPolicy, HistoryPolicy
from rclpy.executors import (
    ExternalShutdownException, MultiThreadedExecutor, ShutdownException, SingleThreadedExecutor
)

import math

# ROS messages
from nav_msgs.msg import Odometry
from geometry_msgs.msg import TransformStamped, Twist
from sensor_msgs.msg import JointState
import tf2_ros

# Local imports
from .command_intake import CommandQueueWorker, DEFAULT_POLL_TIMEOUT
from .diff_drive import DiffDrivePlugin
from .drive_controller import MissingJointError
from .models import DriveParameters, NoiseMode, OdometryResult, VelocityCommand
from .simulation import KinematicSimulation
from .utils import euler_to_quaternion, wheel_variance_to_body_covariance


class DiffDriveOdometryNode(Node):
    """
    ROS 2 node for simulated differential drive with noisy odometry

    Steps a kinematic simulation from a timer, applies the latest cmd_vel
    to the wheel joints and publishes nav_msgs/Odometry at a limited rate.
    """

    def __init__(self):
        super().__init__('diffdrive_odometry')

        # Declare parameters
        self.declare_parameters()
        self.get_parameters()

        try:
            self.drive_params = DriveParameters(
                wheel_separation=self.wheel_separation,
                wheel_diameter=self.wheel_diameter,
                max_torque=self.torque,
                noise_mode=self.noise_mode,
                wheel_noise_scale=self.wheel_noise_scale,
                linear_noise_scale=self.alpha,
                angular_noise_scale=self.beta,
                seed=self.seed if self.seed >= 0 else None,
            )
        except ValueError as e:
            self.get_logger().error(f"Invalid drive parameters: {e}")
            raise

        try:
            # Simulated world
            self.simulation = KinematicSimulation(
                joint_names=self.model_joints,
                left_joint=self.left_joint,
                right_joint=self.right_joint,
                wheel_separation=self.wheel_separation,
                wheel_diameter=self.wheel_diameter,
                step_time=self.step_time,
            )

            self.plugin = DiffDrivePlugin(
                self.drive_params,
                self.simulation,
                left_joint=self.left_joint,
                right_joint=self.right_joint,
                publish_rate=self.publish_rate,
                odometry_sink=self.publish_odometry,
                write_world_pose=self.write_world_pose,
                open_loop_source=self.open_loop_source,
            )
        except (MissingJointError, ValueError) as e:
            self.get_logger().error(f"Failed to set up simulation: {e}")
            raise
        self.plugin.attach()

        # QoS profiles
        odom_qos = QoSProfile(
            reliability=ReliabilityPolicy.RELIABLE,
            history=HistoryPolicy.KEEP_LAST,
            depth=1
        )

        debug_qos = QoSProfile(
            reliability=ReliabilityPolicy.BEST_EFFORT,
            history=HistoryPolicy.KEEP_LAST,
            depth=5
        )

        # Publishers
        self.odom_pub = self.create_publisher(
            Odometry,
            self.odom_topic,
            odom_qos
        )

        self.wheels_pub = None
        if self.drive_params.noise_mode == NoiseMode.WHEEL:
            self.wheels_pub = self.create_publisher(
                JointState,
                self.odom_topic + '/wheels',
                debug_qos
            )

        # TF broadcaster
        if self.publish_tf:
            self.tf_broadcaster = tf2_ros.TransformBroadcaster(self)

        # Velocity commands are received on their own node and drained by a
        # background thread, independent of the simulation timer
        self.command_node = rclpy.create_node(
            self.get_name() + '_cmd_vel',
            namespace=self.get_namespace()
        )
        self.cmd_vel_sub = self.command_node.create_subscription(
            Twist,
            self.cmd_vel_topic,
            self.cmd_vel_callback,
            1
        )
        self.command_executor = SingleThreadedExecutor()
        self.command_executor.add_node(self.command_node)
        self.command_worker = CommandQueueWorker(
            poll=self.poll_commands,
            poll_timeout=DEFAULT_POLL_TIMEOUT,
            name='cmd_vel_queue',
            should_run=rclpy.ok
        )
        self.command_worker.start()

        # Timer stepping the simulation
        self.sim_timer = self.create_timer(
            self.step_time,
            self.simulation_timer_callback
        )

        self.get_logger().info(f"Differential drive odometry node started")
        self.get_logger().info(f"Joints: {self.left_joint}, {self.right_joint}")
        self.get_logger().info(f"Wheel separation: {self.wheel_separation:.3f}m")
        self.get_logger().info(f"Wheel diameter: {self.wheel_diameter:.3f}m")
        self.get_logger().info(f"Torque: {self.torque:.2f}")
        self.get_logger().info(f"cmd_vel topic: {self.cmd_vel_topic}")
        self.get_logger().info(f"Odometry topic: {self.odom_topic} ({self.publish_rate:.1f} Hz)")
        self.get_logger().info(f"Frames: {self.odom_frame} -> {self.base_frame}")
        self.get_logger().info(
            f"Noise: mode={self.drive_params.noise_mode.value}, "
            f"wheel_scale={self.wheel_noise_scale}, alpha={self.alpha}, beta={self.beta}"
        )
        if not self.plugin.noise_model.enabled:
            self.get_logger().warn("All noise coefficients are zero, odometry is noiseless")

    def declare_parameters(self):
        """Declare all ROS parameters with default values"""
        # Wheel joints
        self.declare_parameter('joints.left', 'left_joint')
        self.declare_parameter('joints.right', 'right_joint')

        # Robot physical parameters
        self.declare_parameter('robot.wheel_separation', 0.34)  # 340mm
        self.declare_parameter('robot.wheel_diameter', 0.15)    # 150mm
        self.declare_parameter('robot.torque', 5.0)

        # Topics and frames
        self.declare_parameter('topics.cmd_vel_topic', 'cmd_vel')
        self.declare_parameter('topics.odom_topic', 'odom')
        self.declare_parameter('frames.odom_frame', 'odom')
        self.declare_parameter('frames.base_frame', 'base_footprint')

        # Noise model
        self.declare_parameter('noise.mode', 'direct')  # 'direct' or 'wheel'
        self.declare_parameter('noise.wheel_scale', 0.0)
        self.declare_parameter('noise.alpha', 0.0)
        self.declare_parameter('noise.beta', 0.0)
        self.declare_parameter('noise.seed', -1)

        # Publishing settings
        self.declare_parameter('publishing.publish_rate', 20.0)
        self.declare_parameter('publishing.publish_tf', True)

        # Simulation settings
        self.declare_parameter('simulation.step_time', 0.01)
        self.declare_parameter('simulation.joint_names', ['left_joint', 'right_joint'])
        self.declare_parameter('simulation.write_world_pose', False)
        self.declare_parameter('simulation.open_loop_source', 'command')

    def get_parameters(self):
        """Get all parameters from ROS parameter server"""
        # Joints
        self.left_joint = self.get_parameter('joints.left').value
        self.right_joint = self.get_parameter('joints.right').value

        # Robot parameters
        self.wheel_separation = self.get_parameter('robot.wheel_separation').value
        self.wheel_diameter = self.get_parameter('robot.wheel_diameter').value
        self.torque = self.get_parameter('robot.torque').value

        # Topics and frames
        self.cmd_vel_topic = self.get_parameter('topics.cmd_vel_topic').value
        self.odom_topic = self.get_parameter('topics.odom_topic').value
        self.odom_frame = self.get_parameter('frames.odom_frame').value
        self.base_frame = self.get_parameter('frames.base_frame').value

        # Noise model
        self.noise_mode = self.get_parameter('noise.mode').value
        self.wheel_noise_scale = self.get_parameter('noise.wheel_scale').value
        self.alpha = self.get_parameter('noise.alpha').value
        self.beta = self.get_parameter('noise.beta').value
        self.seed = self.get_parameter('noise.seed').value

        # Publishing settings
        self.publish_rate = self.get_parameter('publishing.publish_rate').value
        self.publish_tf = self.get_parameter('publishing.publish_tf').value

        # Simulation settings
        self.step_time = self.get_parameter('simulation.step_time').value
        self.model_joints = list(self.get_parameter('simulation.joint_names').value)
        self.write_world_pose = self.get_parameter('simulation.write_world_pose').value
        self.open_loop_source = self.get_parameter('simulation.open_loop_source').value

    def poll_commands(self, timeout: float):
        """Process at most one pending cmd_vel message"""
        try:
            self.command_executor.spin_once(timeout_sec=timeout)
        except (ExternalShutdownException, ShutdownException):
            # Context went down before the worker saw rclpy.ok() turn false
            return

    def cmd_vel_callback(self, msg: Twist):
        """Store the latest velocity command"""
        self.plugin.on_command_received(
            VelocityCommand(linear=msg.linear.x, angular=msg.angular.z)
        )

    def simulation_timer_callback(self):
        """Advance the simulation by one physics step"""
        self.simulation.step()

    def publish_odometry(self, result: OdometryResult):
        """Publish odometry message"""
        odom_msg = Odometry()

        # Header
        odom_msg.header.stamp = self.get_clock().now().to_msg()
        odom_msg.header.frame_id = self.odom_frame
        odom_msg.child_frame_id = self.base_frame

        # Position
        odom_msg.pose.pose.position.x = result.pose.x
        odom_msg.pose.pose.position.y = result.pose.y
        odom_msg.pose.pose.position.z = 0.0

        # Orientation (convert yaw to quaternion)
        quat = euler_to_quaternion(0.0, 0.0, result.pose.yaw)
        odom_msg.pose.pose.orientation.x = quat[0]
        odom_msg.pose.pose.orientation.y = quat[1]
        odom_msg.pose.pose.orientation.z = quat[2]
        odom_msg.pose.pose.orientation.w = quat[3]

        # Velocities
        odom_msg.twist.twist.linear.x = result.velocity.vx
        odom_msg.twist.twist.linear.y = result.velocity.vy
        odom_msg.twist.twist.angular.z = result.velocity.wz

        increment = result.increment
        if increment.left_variance is not None:
            # Wheel variances propagated to body rates
            linear_var, angular_var = wheel_variance_to_body_covariance(
                increment.left_variance, increment.right_variance, self.wheel_separation
            )
            dt2 = result.elapsed * result.elapsed
            twist_cov = [0.0] * 36
            twist_cov[0] = linear_var / dt2    # linear.x
            twist_cov[7] = 1e6                 # linear.y (not used)
            twist_cov[14] = 1e6                # linear.z (not used)
            twist_cov[21] = 1e6                # angular.x (not used)
            twist_cov[28] = 1e6                # angular.y (not used)
            twist_cov[35] = angular_var / dt2  # angular.z
            odom_msg.twist.covariance = twist_cov

        # Publish
        self.odom_pub.publish(odom_msg)

        if self.wheels_pub is not None and increment.left_travel is not None:
            self.publish_wheel_travel(odom_msg, result)

        # Publish TF if enabled
        if self.publish_tf:
            self.publish_transform(odom_msg)

        self.get_logger().debug(
            f"Odom: x={result.pose.x:.3f}, y={result.pose.y:.3f}, "
            f"θ={math.degrees(result.pose.yaw):.1f}°"
        )

    def publish_wheel_travel(self, odom_msg: Odometry, result: OdometryResult):
        """Publish noisy per-wheel travel; effort carries the travel variance"""
        increment = result.increment

        wheels_msg = JointState()
        wheels_msg.header = odom_msg.header
        wheels_msg.name = [self.left_joint, self.right_joint]
        wheels_msg.position = [increment.left_travel, increment.right_travel]
        wheels_msg.velocity = [increment.left_rate, increment.right_rate]
        wheels_msg.effort = [increment.left_variance, increment.right_variance]

        self.wheels_pub.publish(wheels_msg)

    def publish_transform(self, odom_msg: Odometry):
        """Publish TF transform"""
        t = TransformStamped()
        t.header = odom_msg.header
        t.child_frame_id = odom_msg.child_frame_id

        t.transform.translation.x = odom_msg.pose.pose.position.x
        t.transform.translation.y = odom_msg.pose.pose.position.y
        t.transform.translation.z = odom_msg.pose.pose.position.z
        t.transform.rotation = odom_msg.pose.pose.orientation

        self.tf_broadcaster.sendTransform(t)

    def destroy_node(self):
        """Clean up resources when node is destroyed"""
        self.get_logger().info("Cleaning up differential drive odometry node...")
        if not self.command_worker.stop(timeout=1.0):
            self.get_logger().warn("cmd_vel queue thread did not stop in time")
        self.command_executor.shutdown()
        self.command_node.destroy_node()
        super().destroy_node()


def main(args=None):
    rclpy.init(args=args)

    # Use multi-threaded executor for better performance
    executor = MultiThreadedExecutor()

    try:
        node = DiffDriveOdometryNode()
    except (MissingJointError, ValueError):
        rclpy.shutdown()
        raise

    executor.add_node(node)

    try:
        executor.spin()
    except KeyboardInterrupt:
        pass
    finally:
        node.destroy_node()
        rclpy.shutdown()


if __name__ == '__main__':
    main()
