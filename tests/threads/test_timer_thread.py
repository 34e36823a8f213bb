"""
Tests for the TimerThread
"""
# Standard
from datetime import datetime, timedelta
import time

# Third Party
import pytest

# Local
from profile_controller.threads import TimerThread
from profile_controller.test_helpers.helpers import wait_for

## Helpers #####################################################################


class Counter:
    def __init__(self, initial_value=0):
        self.value = initial_value

    def increment(self, value=1):
        self.value += value


@pytest.mark.timeout(5)
def test_timer_thread_happy_path():
    timer = TimerThread()
    timer.start_thread()

    value_tracker = Counter()
    timer.put_event(datetime.now(), value_tracker.increment)
    timer.put_event(datetime.now() + timedelta(seconds=0.1), value_tracker.increment)
    timer.put_event(datetime.now() + timedelta(seconds=0.2), value_tracker.increment, 2)
    timer.put_event(
        datetime.now() + timedelta(seconds=0.3), value_tracker.increment, value=2
    )
    assert wait_for(lambda: value_tracker.value == 6)
    timer.stop_thread()
    assert timer.pending_events() == 0


@pytest.mark.timeout(5)
def test_timer_thread_canceled():
    timer = TimerThread()

    value_tracker = Counter()
    timer.put_event(datetime.now(), value_tracker.increment)
    canceled_event = timer.put_event(
        datetime.now() + timedelta(seconds=0.5), value_tracker.increment
    )
    canceled_event.cancel()
    assert timer.pending_events() == 1

    timer.start_thread()
    time.sleep(1)
    timer.stop_thread()
    assert value_tracker.value == 1


@pytest.mark.timeout(5)
def test_timer_thread_survives_failed_action():
    """Make sure an action that raises does not stop the timer"""
    timer = TimerThread()
    timer.start_thread()

    def fail():
        raise RuntimeError("boom")

    value_tracker = Counter()
    timer.put_event(datetime.now(), fail)
    timer.put_event(datetime.now() + timedelta(seconds=0.1), value_tracker.increment)
    assert wait_for(lambda: value_tracker.value == 1)
    timer.stop_thread()


@pytest.mark.timeout(5)
def test_timer_thread_stopped_rejects_events():
    """Make sure events can't be added to a stopped timer"""
    timer = TimerThread()
    timer.start_thread()
    timer.stop_thread()
    timer.join()
    assert timer.put_event(datetime.now(), print) is None
