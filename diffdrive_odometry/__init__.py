"""
Differential Drive Odometry Package

ROS 2 package that drives a simulated differential-drive robot from velocity
commands and publishes wheel odometry corrupted by a configurable encoder
noise model, for exercising localization and fusion code against drift.
"""

__version__ = "1.0.0"
__author__ = "Robot Developer"
__email__ = "your.email@example.com"
