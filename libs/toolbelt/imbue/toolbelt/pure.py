from collections.abc import Callable
from typing import TypeVar

_F = TypeVar("_F", bound=Callable[..., object])


def pure(func: _F) -> _F:
    """Mark a function as pure: same inputs give the same output, with no side effects.

    Advisory only. Nothing is checked at runtime.
    """
    return func
