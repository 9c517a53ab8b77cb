#!/usr/bin/env python3
"""
Test the shared velocity command cell and its background worker
"""

import queue
import threading
import time

import pytest

from diffdrive_odometry.command_intake import CommandIntake, CommandQueueWorker
from diffdrive_odometry.models import VelocityCommand


def wait_for(condition, timeout=2.0):
    """Poll a condition until it holds or the timeout expires"""
    deadline = time.time() + timeout
    while time.time() < deadline:
        if condition():
            return True
        time.sleep(0.001)
    return condition()


class TestCommandIntake:

    def test_starts_at_rest(self):
        assert CommandIntake().get_latest() == VelocityCommand(0.0, 0.0)

    def test_last_write_wins(self):
        intake = CommandIntake()
        intake.set(VelocityCommand(1.0, 0.5))
        intake.set(VelocityCommand(-0.2, 0.1))
        assert intake.get_latest() == VelocityCommand(-0.2, 0.1)

    def test_returns_a_copy(self):
        intake = CommandIntake(VelocityCommand(1.0, 0.0))
        latest = intake.get_latest()
        latest.linear = 99.0
        assert intake.get_latest().linear == 1.0

    def test_writer_cannot_mutate_stored_command(self):
        intake = CommandIntake()
        command = VelocityCommand(1.0, 2.0)
        intake.set(command)
        command.angular = -5.0
        assert intake.get_latest().angular == 2.0

    def test_fields_are_never_torn(self):
        intake = CommandIntake()
        stop = threading.Event()
        torn = []

        def writer(offset):
            value = offset
            while not stop.is_set():
                intake.set(VelocityCommand(value, value))
                value += 1.0

        def reader():
            while not stop.is_set():
                command = intake.get_latest()
                if command.linear != command.angular:
                    torn.append(command)

        threads = [threading.Thread(target=writer, args=(0.0,)),
                   threading.Thread(target=writer, args=(0.5,)),
                   threading.Thread(target=reader)]
        for thread in threads:
            thread.start()
        time.sleep(0.2)
        stop.set()
        for thread in threads:
            thread.join()

        assert torn == []


class TestCommandQueueWorker:

    def make_worker(self, intake, pending, **kwargs):
        def poll(timeout):
            try:
                intake.set(pending.get(timeout=timeout))
            except queue.Empty:
                pass
        return CommandQueueWorker(poll, **kwargs)

    def test_drains_commands_into_intake(self):
        intake = CommandIntake()
        pending = queue.Queue()
        worker = self.make_worker(intake, pending)
        worker.start()
        try:
            pending.put(VelocityCommand(0.3, 0.0))
            pending.put(VelocityCommand(0.7, -0.4))
            assert wait_for(lambda: intake.get_latest() == VelocityCommand(0.7, -0.4))
        finally:
            assert worker.stop(timeout=1.0)

    def test_stop_is_observed_within_a_poll_interval(self):
        worker = self.make_worker(CommandIntake(), queue.Queue(), poll_timeout=0.01)
        worker.start()
        assert worker.is_alive()

        started = time.time()
        assert worker.stop(timeout=1.0)
        assert time.time() - started < 0.5
        assert not worker.is_alive()
        assert worker.stop_requested

    def test_stop_before_start_is_harmless(self):
        worker = self.make_worker(CommandIntake(), queue.Queue())
        assert worker.stop()
        assert not worker.is_alive()

    def test_cannot_start_twice(self):
        worker = self.make_worker(CommandIntake(), queue.Queue())
        worker.start()
        try:
            with pytest.raises(RuntimeError):
                worker.start()
        finally:
            worker.stop(timeout=1.0)

    def test_exits_when_transport_goes_down(self):
        transport_up = threading.Event()
        transport_up.set()
        worker = self.make_worker(CommandIntake(), queue.Queue(),
                                  should_run=transport_up.is_set)
        worker.start()
        transport_up.clear()
        assert wait_for(lambda: not worker.is_alive())
        assert not worker.stop_requested

    def test_poll_receives_configured_timeout(self):
        timeouts = []

        def poll(timeout):
            timeouts.append(timeout)
            time.sleep(timeout)

        worker = CommandQueueWorker(poll, poll_timeout=0.02)
        worker.start()
        assert wait_for(lambda: len(timeouts) >= 2)
        worker.stop(timeout=1.0)
        assert set(timeouts) == {0.02}

    def test_invalid_timeout_raises(self):
        with pytest.raises(ValueError):
            CommandQueueWorker(lambda timeout: None, poll_timeout=0.0)


if __name__ == '__main__':
    pytest.main([__file__])
