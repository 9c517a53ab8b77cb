#!/usr/bin/env python3
"""
Velocity command intake

Holds the most recent velocity command behind a lock. The transport writes it
from a background thread; the drive controller reads it once per simulation
step. Only the latest command matters, nothing is queued.
"""

import threading
from typing import Callable, Optional

from .models import VelocityCommand

# Seconds a single poll may block before the stop flag is checked again
DEFAULT_POLL_TIMEOUT = 0.01


class CommandIntake:
    """Thread-safe cell for the latest velocity command"""

    def __init__(self, initial: Optional[VelocityCommand] = None):
        self._lock = threading.Lock()
        self._linear = 0.0
        self._angular = 0.0
        if initial is not None:
            self.set(initial)

    def set(self, command: VelocityCommand):
        """Overwrite the stored command"""
        with self._lock:
            self._linear = command.linear
            self._angular = command.angular

    def get_latest(self) -> VelocityCommand:
        """Copy of the stored command"""
        with self._lock:
            return VelocityCommand(linear=self._linear, angular=self._angular)


class CommandQueueWorker:
    """
    Background loop that keeps draining incoming commands

    Calls poll(timeout) until stopped. The poll callable is responsible for
    delivering whatever arrived into the command intake and must return within
    roughly the timeout, so stop() is honoured within one poll interval.
    """

    def __init__(
        self,
        poll: Callable[[float], None],
        poll_timeout: float = DEFAULT_POLL_TIMEOUT,
        name: str = "command_queue",
        should_run: Optional[Callable[[], bool]] = None
    ):
        """
        Initialize the worker

        Args:
            poll (Callable): Drains pending commands, blocking at most timeout seconds
            poll_timeout (float): Timeout passed to every poll call
            name (str): Thread name
            should_run (Callable): Extra condition checked each iteration,
                e.g. whether the transport is still up
        """
        if poll_timeout <= 0.0:
            raise ValueError(f"poll_timeout must be positive, got {poll_timeout}")

        self.poll = poll
        self.poll_timeout = poll_timeout
        self.name = name
        self.should_run = should_run

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self):
        """Start the background thread"""
        if self._thread is not None and self._thread.is_alive():
            raise RuntimeError(f"Worker '{self.name}' is already running")

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def _run(self):
        while not self._stop_event.is_set():
            if self.should_run is not None and not self.should_run():
                break
            self.poll(self.poll_timeout)

    def stop(self, timeout: Optional[float] = None) -> bool:
        """
        Signal the loop to stop and wait for it

        Args:
            timeout (float): Maximum time to wait for the join

        Returns:
            bool: True if the thread has exited
        """
        self._stop_event.set()
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()
