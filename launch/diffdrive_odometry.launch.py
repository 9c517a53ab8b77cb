#!/usr/bin/env python3
"""
Launch file for Differential Drive Odometry Node
"""

from launch import LaunchDescription
from launch.actions import DeclareLaunchArgument
from launch.substitutions import LaunchConfiguration, PathJoinSubstitution
from launch_ros.actions import Node
from launch_ros.substitutions import FindPackageShare


def generate_launch_description():
    """Generate launch description for differential drive odometry"""

    # Declare launch arguments
    declare_config_file = DeclareLaunchArgument(
        'config_file',
        default_value=PathJoinSubstitution([
            FindPackageShare('diffdrive_odometry'),
            'config',
            'diffdrive_params.yaml'
        ]),
        description='Path to differential drive odometry configuration file'
    )

    declare_cmd_vel_topic = DeclareLaunchArgument(
        'cmd_vel_topic',
        default_value='cmd_vel',
        description='Velocity command topic name'
    )

    declare_odom_topic = DeclareLaunchArgument(
        'odom_topic',
        default_value='odom',
        description='Output odometry topic name'
    )

    declare_noise_mode = DeclareLaunchArgument(
        'noise_mode',
        default_value='direct',
        description='Noise model: direct or wheel'
    )

    declare_publish_rate = DeclareLaunchArgument(
        'publish_rate',
        default_value='20.0',
        description='Odometry publishing rate (Hz)'
    )

    declare_publish_tf = DeclareLaunchArgument(
        'publish_tf',
        default_value='true',
        description='Whether to publish TF transforms'
    )

    # Differential drive odometry node
    diffdrive_odometry_node = Node(
        package='diffdrive_odometry',
        executable='diffdrive_odometry_node',
        name='diffdrive_odometry',
        parameters=[
            LaunchConfiguration('config_file'),
            {
                'topics.cmd_vel_topic': LaunchConfiguration('cmd_vel_topic'),
                'topics.odom_topic': LaunchConfiguration('odom_topic'),
                'noise.mode': LaunchConfiguration('noise_mode'),
                'publishing.publish_rate': LaunchConfiguration('publish_rate'),
                'publishing.publish_tf': LaunchConfiguration('publish_tf'),
            }
        ],
        output='screen',
        emulate_tty=True,
    )

    return LaunchDescription([
        declare_config_file,
        declare_cmd_vel_topic,
        declare_odom_topic,
        declare_noise_mode,
        declare_publish_rate,
        declare_publish_tf,
        diffdrive_odometry_node,
    ])
