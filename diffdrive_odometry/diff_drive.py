#!/usr/bin/env python3
"""
Differential drive plugin core

Ties the command intake, drive controller and noisy odometry integrator to a
simulation. The embedding code calls two entry points:

    on_command_received(command)  whenever a velocity command arrives
    on_simulation_step()          once per physics step (attach() registers it)

Nothing here schedules itself or touches ROS.
"""

from typing import Callable, Optional

import numpy as np

from .command_intake import CommandIntake
from .drive_controller import DriveController
from .models import DriveParameters, OdometryResult, OpenLoopSource, VelocityCommand
from .noise_model import NoiseModel
from .odometry_integrator import OdometryIntegrator
from .simulation import SimulationInterface


class DiffDrivePlugin:
    """Differential drive controller with simulated encoder odometry"""

    def __init__(
        self,
        params: DriveParameters,
        simulation: SimulationInterface,
        left_joint: str = 'left_joint',
        right_joint: str = 'right_joint',
        publish_rate: float = 20.0,
        odometry_sink: Optional[Callable[[OdometryResult], None]] = None,
        write_world_pose: bool = False,
        open_loop_source=OpenLoopSource.COMMAND,
        rng: Optional[np.random.Generator] = None
    ):
        """
        Initialize the plugin

        Args:
            params (DriveParameters): Geometry, torque and noise settings
            simulation (SimulationInterface): Physics collaborator
            left_joint (str): Left wheel joint name
            right_joint (str): Right wheel joint name
            publish_rate (float): Odometry publishing rate (Hz)
            odometry_sink (Callable): Receives every published odometry result
            write_world_pose (bool): Write the open-loop pose back into the world
                after every step
            open_loop_source: 'command' or 'joints'
            rng (np.random.Generator): Generator for the noise model

        Raises:
            MissingJointError: If a wheel joint is missing
            ValueError: If the publish rate is not positive
        """
        self.params = params
        self.simulation = simulation
        self.odometry_sink = odometry_sink
        self.write_world_pose = write_world_pose

        self.intake = CommandIntake()
        self.controller = DriveController(
            params, simulation, self.intake,
            left_joint=left_joint,
            right_joint=right_joint,
            open_loop_source=open_loop_source,
        )
        self.noise_model = NoiseModel.from_parameters(params, rng=rng)
        self.integrator = OdometryIntegrator.from_rate(
            self.noise_model,
            simulation.get_true_pose(),
            simulation.get_time(),
            publish_rate,
        )
        self.last_result: Optional[OdometryResult] = None

    def attach(self):
        """Register the step entry point with the simulation"""
        self.simulation.register_step_callback(self.on_simulation_step)

    def on_command_received(self, command: VelocityCommand):
        self.intake.set(command)

    def on_simulation_step(self) -> Optional[OdometryResult]:
        """
        Drive the wheels and, when due, publish one odometry result

        Returns:
            Optional[OdometryResult]: The published result, if any
        """
        self.controller.update(self.simulation.get_step_time())
        if self.write_world_pose:
            self.controller.write_world_pose()

        result = self.integrator.step(
            self.simulation.get_time(), self.simulation.get_true_pose()
        )
        if result is not None:
            self.last_result = result
            if self.odometry_sink is not None:
                self.odometry_sink(result)
        return result
