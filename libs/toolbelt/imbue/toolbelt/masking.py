"""Masked strings for keeping secrets out of logs and user-facing output.

A MaskedString renders as asterisks (or a configured mask) wherever it is turned
into text for display: str(), repr(), f-strings and loguru messages. The real value
is only available through unmasked(), and is what gets written when the string is
serialized as part of a pydantic model or with to_json().

This is not secure storage. The secret still lives in a plain Python string.
"""

import hmac
import json
import secrets
from collections.abc import Callable
from typing import Any
from typing import Final
from typing import Self

from pydantic import Field
from pydantic import GetCoreSchemaHandler
from pydantic_core import CoreSchema
from pydantic_core import core_schema

from imbue.toolbelt.frozen_model import FrozenModel
from imbue.toolbelt.primitives import NonNegativeInt
from imbue.toolbelt.pure import pure

DEFAULT_MASK: Final[str] = "*"

# Upper bound for the random display length of an empty secret
_EMPTY_SECRET_LENGTH_BOUND: Final[int] = 8

# Returns a uniformly random int in [0, n)
RandomBelow = Callable[[int], int]


class MaskConfig(FrozenModel):
    """Controls how much of a secret is revealed and how long the masked form looks."""

    prefix_count: NonNegativeInt = Field(
        default=NonNegativeInt(0),
        description="Number of leading characters to reveal",
    )
    suffix_count: NonNegativeInt = Field(
        default=NonNegativeInt(0),
        description="Number of trailing characters to reveal",
    )
    mask: str = Field(
        default=DEFAULT_MASK,
        description="Text repeated for each hidden character (empty means '*')",
    )
    min_mask: NonNegativeInt = Field(
        default=NonNegativeInt(0),
        description="If fewer than this many characters would be masked, nothing is revealed",
    )
    obfuscate_length: bool = Field(
        default=False,
        description="Render with obfuscated_length instead of the real length",
    )
    obfuscated_length: NonNegativeInt = Field(
        default=NonNegativeInt(0),
        description="Displayed length when obfuscate_length is set",
    )


@pure
def mask_string(value: str, config: MaskConfig) -> str:
    """Render value according to config. See MaskedString for the user-facing wrapper."""
    true_length = len(value)
    effective_length = config.obfuscated_length if config.obfuscate_length else true_length

    prefix_count = config.prefix_count if config.prefix_count <= effective_length else 0
    suffix_count = config.suffix_count if config.suffix_count <= effective_length else 0

    unmasked_total = prefix_count + suffix_count
    chars_to_mask = effective_length - unmasked_total
    if config.min_mask > 0 and config.min_mask > chars_to_mask:
        prefix_count = 0
        suffix_count = 0

    # never reveal the whole secret, even when the displayed length is larger than the real one
    if unmasked_total >= true_length:
        prefix_count = 0
        suffix_count = 0

    prefix = value[:prefix_count] if prefix_count > 0 else ""
    suffix = value[true_length - suffix_count :] if suffix_count > 0 else ""
    padding_count = max(effective_length - (prefix_count + suffix_count), 0)
    mask = config.mask or DEFAULT_MASK
    return prefix + mask * padding_count + suffix


def random_masked_length(value: str, random_below: RandomBelow = secrets.randbelow) -> int:
    """Pick a display length in [0, 1.5 * len(value)) so the mask does not give away the real length."""
    bound = int(1.5 * len(value))
    if bound == 0:
        bound = _EMPTY_SECRET_LENGTH_BOUND
    return random_below(bound)


class MaskedString:
    """A secret string that displays masked.

    Without an explicit config the secret is fully masked and shown with a random
    length, picked once at construction time:

        password = MaskedString("sensitive-password")
        str(password)  # something like "**********"

        password.config = MaskConfig(prefix_count=1, suffix_count=1, mask="X")
        str(password)  # "sXXXXXXXXXXXXXXXXd"

        password.unmasked()  # "sensitive-password"
    """

    def __init__(
        self,
        value: str,
        config: MaskConfig | None = None,
        random_below: RandomBelow = secrets.randbelow,
    ) -> None:
        self._value = value
        if config is None:
            config = MaskConfig(
                obfuscate_length=True,
                obfuscated_length=NonNegativeInt(random_masked_length(value, random_below)),
            )
        self.config = config

    def masked(self) -> str:
        return mask_string(self._value, self.config)

    def unmasked(self) -> str:
        """Return the real value. Do not log the result."""
        return self._value

    def to_json(self) -> str:
        """Encode the real value as a JSON string."""
        return json.dumps(self._value)

    @classmethod
    def from_json(cls, data: str | bytes, config: MaskConfig | None = None) -> Self:
        decoded = json.loads(data)
        if not isinstance(decoded, str):
            raise TypeError(f"expected a JSON string, got {type(decoded).__name__}")
        return cls(decoded, config)

    def __str__(self) -> str:
        return self.masked()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.masked()!r})"

    def __format__(self, format_spec: str) -> str:
        return format(self.masked(), format_spec)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MaskedString):
            return NotImplemented
        return hmac.compare_digest(self._value.encode(), other._value.encode())

    def __hash__(self) -> int:
        return hash(self._value)

    @classmethod
    def __get_pydantic_core_schema__(
        cls,
        source_type: Any,
        handler: GetCoreSchemaHandler,
    ) -> CoreSchema:
        from_str_schema = core_schema.no_info_after_validator_function(cls, core_schema.str_schema())
        return core_schema.json_or_python_schema(
            json_schema=from_str_schema,
            python_schema=core_schema.union_schema([core_schema.is_instance_schema(cls), from_str_schema]),
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda masked_string: masked_string.unmasked(),
                return_schema=core_schema.str_schema(),
            ),
        )
