from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

from loguru import logger

from imbue.toolbelt.cancellation import CancelToken
from imbue.toolbelt.errors import PollCancelledError
from imbue.toolbelt.errors import PollExhaustedError
from imbue.toolbelt.errors import ProbeError
from imbue.toolbelt.errors import UsageError
from imbue.toolbelt.files import files_exist
from imbue.toolbelt.files import path_exists
from imbue.toolbelt.logging import log_span
from imbue.toolbelt.primitives import CancelReason
from imbue.toolbelt.primitives import NonNegativeFloat
from imbue.toolbelt.primitives import NonNegativeInt

T = TypeVar("T")

# A condition reports (success, error). A non-None error aborts the poll.
Condition = Callable[[], tuple[bool, Exception | None]]


def _evaluate(condition: Condition, attempt: int) -> bool:
    try:
        is_success, error = condition()
    except Exception as e:
        error = e
        is_success = False
    if error is not None:
        logger.debug("Condition failed on try {}: {}", attempt, error)
        raise ProbeError(attempt) from error
    return is_success


def wait_until(
    interval: float,
    max_tries: int,
    condition: Condition,
    cancel_token: CancelToken | None = None,
) -> int:
    """Evaluate condition now, then every interval seconds, until it succeeds.

    max_tries counts every attempt including the immediate one; 0 is treated as 1.
    Returns the number of attempts it took to succeed.

    Raises ProbeError if the condition reports an error (or raises), PollCancelledError
    if cancel_token becomes done while waiting, and PollExhaustedError once
    max_tries attempts have been made without success.
    """
    try:
        interval = NonNegativeFloat(interval)
        max_tries = NonNegativeInt(max_tries)
    except ValueError as e:
        raise UsageError(str(e)) from e
    if max_tries == 0:
        max_tries = 1

    # a private token is never cancelled, so waiting on it is a plain sleep
    token = cancel_token if cancel_token is not None else CancelToken.build()

    attempt = 1
    if _evaluate(condition, attempt):
        return attempt

    while attempt < max_tries:
        if token.wait(interval):
            reason = token.reason or CancelReason.CANCELLED
            logger.debug("Stopped waiting after {} of {} tries: {}", attempt, max_tries, reason)
            raise PollCancelledError(reason, attempt)
        attempt += 1
        if _evaluate(condition, attempt):
            return attempt
        logger.trace("Condition not met on try {} of {}", attempt, max_tries)

    logger.debug("Condition not met after {} tries", max_tries)
    raise PollExhaustedError(max_tries)


def wait_for(
    interval: float,
    max_tries: int,
    op: Callable[[], bool],
    cancel_token: CancelToken | None = None,
) -> int:
    """Wait for op to return True. Returns the number of attempts made.

    Example:
        # check every 2 seconds, up to 30 tries
        wait_for(2.0, 30, is_service_ready)
    """
    return wait_until(interval, max_tries, lambda: (op(), None), cancel_token)


def wait_for_no_error(
    interval: float,
    max_tries: int,
    op: Callable[[], object],
    cancel_token: CancelToken | None = None,
) -> int:
    """Wait for op to return without raising. Returns the number of attempts made.

    Exceptions raised by op mean "not ready yet" and are never propagated.
    """

    def condition() -> tuple[bool, Exception | None]:
        try:
            op()
        except Exception as e:
            logger.trace("Not ready yet: {}", e)
            return False, None
        return True, None

    return wait_until(interval, max_tries, condition, cancel_token)


def wait_for_value(
    interval: float,
    max_tries: int,
    op: Callable[[], T | None],
    cancel_token: CancelToken | None = None,
) -> T:
    """Wait for op to return a value other than None, and return that value.

    Like wait_for_no_error, an exception raised by op only means "keep waiting".

    Example:
        # check every 5 seconds, up to 20 tries
        resource = wait_for_value(5.0, 20, lambda: client.get_resource(resource_id))
    """
    result: list[T] = []

    def condition() -> tuple[bool, Exception | None]:
        try:
            value = op()
        except Exception as e:
            logger.trace("Not ready yet: {}", e)
            return False, None
        if value is None:
            return False, None
        result.append(value)
        return True, None

    wait_until(interval, max_tries, condition, cancel_token)
    return result[-1]


def wait_for_file(
    interval: float,
    max_tries: int,
    path: Path | str,
    cancel_token: CancelToken | None = None,
) -> int:
    """Wait for a single file to exist."""
    return wait_for(interval, max_tries, lambda: path_exists(path), cancel_token)


def wait_for_files(
    interval: float,
    max_tries: int,
    *paths: Path | str,
    cancel_token: CancelToken | None = None,
) -> int:
    """Wait until all of the given files exist at the same time.

    Each attempt checks every path; a path that existed on an earlier attempt but
    not on the current one does not count.
    """
    if len(paths) == 0:
        raise UsageError("no files specified")

    with log_span("Waiting for {} files", len(paths), max_tries=max_tries):
        return wait_for(interval, max_tries, lambda: files_exist(*paths), cancel_token)
