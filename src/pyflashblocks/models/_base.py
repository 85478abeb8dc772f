"""Base model and shared field types for raw wire payloads.

Every wire model inherits from :class:`WireModel`, which provides:

* ``extra="ignore"`` so new upstream fields never break parsing.
* ``populate_by_name=True`` so camelCase aliases and snake_case names both
  validate.
* A ``raw`` dict that captures the original payload.

Block numbers and timestamps arrive hex-encoded (``"0x64"``) from both
sources, except the fast-stream diff metadata which is already decimal;
:data:`HexInt` and :data:`BlockNumber` coerce both forms to ``int``.
"""

from __future__ import annotations

import re
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator

_HEX_QUANTITY = re.compile(r"0[xX][0-9a-fA-F]+")
_DECIMAL_QUANTITY = re.compile(r"[0-9]+")


def parse_hex_int(value: Any) -> int:
    """Decode a ``0x``-prefixed hex quantity to ``int``.

    Raises :class:`ValueError` for anything that is not a non-empty hex
    string; ``bool`` is rejected even though it is an ``int`` subclass.
    """
    if isinstance(value, bool) or not isinstance(value, str):
        raise ValueError(f"expected hex string, got {type(value).__name__}")
    text = value.strip()
    if _HEX_QUANTITY.fullmatch(text) is None:
        raise ValueError(f"not a 0x-prefixed hex quantity: {value!r}")
    return int(text[2:], 16)


def parse_block_number(value: Any) -> int:
    """Decode a block number given as ``int``, decimal string or hex string."""
    if isinstance(value, bool):
        raise ValueError("block number must not be a boolean")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if text[:2].lower() == "0x":
            return parse_hex_int(text)
        if _DECIMAL_QUANTITY.fullmatch(text) is None:
            raise ValueError(f"not a decimal block number: {value!r}")
        return int(text, 10)
    raise ValueError(f"unsupported block number {value!r}")


HexInt = Annotated[int, BeforeValidator(parse_hex_int)]
"""Annotated type for hex-encoded quantities (``"0x66aabbcc"``)."""

BlockNumber = Annotated[int, BeforeValidator(parse_block_number)]
"""Annotated type for block numbers in any of the observed encodings."""


class WireModel(BaseModel):
    """Base for raw payload models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    raw: dict[str, Any] = Field(default_factory=dict)
    """Original payload dict."""

    @model_validator(mode="before")
    @classmethod
    def _ensure_raw(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        merged = dict(values)
        merged.setdefault("raw", values)
        return merged
