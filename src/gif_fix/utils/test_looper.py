"""Tests for the decoder thread's callback loop."""

import threading
import time

import pytest

from gif_fix.utils.looper import Looper


@pytest.fixture
def looper():
    with Looper("test-looper") as lp:
        yield lp


def test_post_runs_on_looper_thread(looper):
    seen = []
    done = threading.Event()

    def cb():
        seen.append(looper.is_current_thread())
        done.set()

    looper.post(cb)
    assert done.wait(1.0)
    assert seen == [True]
    assert not looper.is_current_thread()


def test_callbacks_run_in_deadline_order(looper):
    order = []
    done = threading.Event()
    looper.post_delayed(lambda: (order.append("late"), done.set()), 80)
    looper.post_delayed(lambda: order.append("early"), 10)
    looper.post(lambda: order.append("now"))
    assert done.wait(1.0)
    assert order == ["now", "early", "late"]


def test_remove_callbacks(looper):
    fired = []

    def cb():
        fired.append(1)

    looper.post_delayed(cb, 100)
    looper.post_delayed(cb, 120)
    assert looper.remove_callbacks(cb) == 2
    time.sleep(0.2)
    assert fired == []


def test_call_returns_result(looper):
    assert looper.call(lambda: threading.current_thread().name, timeout=1.0) == "test-looper"


def test_call_propagates_exceptions(looper):
    def boom():
        raise ValueError("bad")

    with pytest.raises(ValueError, match="bad"):
        looper.call(boom, timeout=1.0)


def test_call_times_out(looper):
    looper.post(lambda: time.sleep(0.3))
    with pytest.raises(TimeoutError):
        looper.call(lambda: None, timeout=0.05)


def test_errors_in_callbacks_do_not_stop_the_loop(looper):
    def boom():
        raise RuntimeError("ignored")

    looper.post(boom)
    assert looper.call(lambda: 42, timeout=1.0) == 42


def test_post_after_quit_raises():
    looper = Looper()
    looper.start()
    looper.quit()
    with pytest.raises(RuntimeError):
        looper.post(lambda: None)
