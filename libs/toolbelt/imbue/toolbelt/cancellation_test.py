import threading
import time

from imbue.toolbelt.cancellation import CancelToken
from imbue.toolbelt.primitives import CancelReason


def test_new_token_is_not_done() -> None:
    token = CancelToken.build()

    assert token.is_done() is False
    assert token.reason is None


def test_cancel_marks_token_done_with_reason() -> None:
    token = CancelToken.build()

    token.cancel()

    assert token.is_done() is True
    assert token.reason == CancelReason.CANCELLED


def test_cancel_keeps_the_first_reason() -> None:
    token = CancelToken.build()

    token.cancel(CancelReason.DEADLINE_EXCEEDED)
    token.cancel(CancelReason.CANCELLED)

    assert token.reason == CancelReason.DEADLINE_EXCEEDED


def test_wait_returns_false_on_timeout() -> None:
    token = CancelToken.build()

    assert token.wait(timeout=0.02) is False


def test_wait_returns_true_when_cancelled_from_another_thread() -> None:
    token = CancelToken.build()
    thread = threading.Thread(target=token.cancel)
    thread.start()

    assert token.wait(timeout=1.0) is True
    thread.join()


def test_deadline_token_becomes_done_without_anyone_calling_cancel() -> None:
    token = CancelToken.with_deadline(0.03)

    assert token.is_done() is False
    start = time.monotonic()
    assert token.wait(timeout=5.0) is True

    assert time.monotonic() - start < 1.0
    assert token.reason == CancelReason.DEADLINE_EXCEEDED


def test_child_is_done_when_parent_is_cancelled() -> None:
    parent = CancelToken.build()
    child = CancelToken.from_parent(parent)

    parent.cancel()

    assert child.is_done() is True
    assert child.reason == CancelReason.CANCELLED


def test_child_wait_wakes_up_when_parent_is_cancelled() -> None:
    parent = CancelToken.build()
    child = CancelToken.from_parent(parent)
    timer = threading.Timer(0.02, parent.cancel)
    timer.start()
    try:
        assert child.wait(timeout=5.0) is True
    finally:
        timer.cancel()


def test_child_of_cancelled_parent_starts_done() -> None:
    parent = CancelToken.build()
    parent.cancel(CancelReason.DEADLINE_EXCEEDED)

    child = CancelToken.from_parent(parent)

    assert child.is_done() is True
    assert child.reason == CancelReason.DEADLINE_EXCEEDED


def test_cancelling_child_does_not_cancel_parent() -> None:
    parent = CancelToken.build()
    child = CancelToken.from_parent(parent)

    child.cancel()

    assert parent.is_done() is False


def test_child_inherits_parent_deadline() -> None:
    parent = CancelToken.with_deadline(0.02)
    child = CancelToken.from_parent(parent, seconds=60.0)

    assert child.wait(timeout=5.0) is True
    assert child.reason == CancelReason.DEADLINE_EXCEEDED
