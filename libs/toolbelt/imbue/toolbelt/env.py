"""Environment variable helpers.

Every helper takes an optional lookup function so tests can supply a fake
environment instead of mutating os.environ.
"""

import os
from collections.abc import Callable

EnvLookup = Callable[[str], str | None]


def os_lookup_env(key: str) -> str | None:
    return os.environ.get(key)


def lookup_env_with_default(key: str, default: str, lookup: EnvLookup = os_lookup_env) -> str:
    """Return the value of key, or default if it is unset.

    A variable that is set to the empty string counts as set.
    """
    value = lookup(key)
    if value is None:
        return default
    return value


def lookup_env_bool(key: str, lookup: EnvLookup = os_lookup_env) -> bool:
    """Return True only when key is set to exactly "true"."""
    return lookup(key) == "true"
