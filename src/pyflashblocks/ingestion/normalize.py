"""Payload normalization.

Maps raw fast-stream messages and raw JSON-RPC responses onto
:class:`~pyflashblocks.state.events.NormalizedBlock`. Every entry point
either returns a record or raises a
:class:`~pyflashblocks.exceptions.FlashblocksNormalizationError`; callers
never have to inspect ad hoc field presence.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from pyflashblocks.exceptions import (
    FlashblocksNormalizationError,
    FlashblocksRpcError,
    FlashblocksSequenceError,
)
from pyflashblocks.models.flashblock import FlashblockPayload
from pyflashblocks.models.rpc import RpcResponse
from pyflashblocks.state.events import BlockVariant, NormalizedBlock, SourceKind

_SEQUENCE_FIELDS = frozenset({"block_number", "blockNumber", "number"})


def decode_message(data: str | bytes | bytearray, *, source: SourceKind = SourceKind.FAST) -> dict[str, Any]:
    """Parse a raw socket frame (text or UTF-8 bytes) into a JSON object."""
    if isinstance(data, (bytes, bytearray)):
        try:
            text = bytes(data).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise FlashblocksNormalizationError(
                f"{source.value} message is not valid UTF-8",
                source=source.value,
                reason="utf8",
            ) from exc
    else:
        text = data

    if not text.strip():
        raise FlashblocksNormalizationError(f"{source.value} message is empty", source=source.value, reason="empty")

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise FlashblocksNormalizationError(
            f"{source.value} message is not JSON: {exc.msg}",
            source=source.value,
            reason="json",
        ) from exc

    if not isinstance(parsed, dict):
        raise FlashblocksNormalizationError(
            f"{source.value} message decoded to {type(parsed).__name__}, expected object",
            source=source.value,
            reason="shape",
        )
    return parsed


def extract_transaction_id(entry: Any) -> str | None:
    """Return the identifier of a transaction list entry.

    Entries are either identifier strings or objects with a ``hash`` field.
    Anything else yields ``None``.
    """
    if isinstance(entry, str):
        return entry or None
    if isinstance(entry, Mapping):
        value = entry.get("hash")
        if isinstance(value, str) and value:
            return value
    return None


def extract_transactions(entries: Iterable[Any]) -> tuple[str, ...]:
    ids = (extract_transaction_id(entry) for entry in entries)
    return tuple(tx for tx in ids if tx is not None)


def _validation_error(exc: ValidationError, source: SourceKind) -> FlashblocksNormalizationError:
    sequence_broken = any(err.get("loc") and str(err["loc"][-1]) in _SEQUENCE_FIELDS for err in exc.errors())
    summary = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ())) or '<root>'}: {err.get('msg', '')}" for err in exc.errors()
    )
    error_cls = FlashblocksSequenceError if sequence_broken else FlashblocksNormalizationError
    return error_cls(
        f"Malformed {source.value} payload: {summary}",
        source=source.value,
        reason="validation",
    )


def normalize_fast(payload: Mapping[str, Any], *, fallback_timestamp: int | None = None) -> NormalizedBlock:
    """Normalize a fast-stream message.

    ``index == 0`` is an Initial record decoded from ``base``; any other index
    is a Diff record whose block number comes from ``metadata``. Diff records
    carry no timestamp of their own; *fallback_timestamp* (normally the
    timestamp of the stream's most recent Initial record) is used instead.
    """
    try:
        message = FlashblockPayload.model_validate(dict(payload))
    except ValidationError as exc:
        raise _validation_error(exc, SourceKind.FAST) from exc

    if message.is_initial:
        if message.base is None:
            raise FlashblocksSequenceError(
                "Initial fast message is missing 'base'",
                source=SourceKind.FAST.value,
                reason="missing_base",
            )
        sequence = message.base.block_number
        timestamp = message.base.timestamp
        variant = BlockVariant.INITIAL
    else:
        if message.metadata is None:
            raise FlashblocksSequenceError(
                f"Diff fast message (index={message.index}) is missing 'metadata'",
                source=SourceKind.FAST.value,
                reason="missing_metadata",
            )
        sequence = message.metadata.block_number
        timestamp = fallback_timestamp
        variant = BlockVariant.DIFF

    return NormalizedBlock(
        source_kind=SourceKind.FAST,
        sequence=sequence,
        timestamp=timestamp,
        transactions=extract_transactions(message.diff.transactions),
        variant=variant,
        diff_type=message.diff_type or variant.value,
        index=message.index,
        block_hash=message.diff.block_hash,
        raw=message.raw,
    )


def normalize_full(response: Mapping[str, Any]) -> NormalizedBlock | None:
    """Normalize a JSON-RPC ``eth_getBlockByNumber`` response.

    Returns ``None`` when the response has no ``result``: the node had nothing
    for this poll cycle, which is not an error.

    Raises
    ------
    FlashblocksRpcError
        If the response carries a JSON-RPC ``error`` member.
    FlashblocksNormalizationError
        If ``result`` is present but malformed.
    """
    try:
        envelope = RpcResponse.model_validate(dict(response))
    except ValidationError as exc:
        raise _validation_error(exc, SourceKind.FULL) from exc

    if envelope.error is not None:
        raise FlashblocksRpcError(
            f"JSON-RPC error {envelope.error.code}: {envelope.error.message}",
            code=envelope.error.code,
        )

    block = envelope.result
    if block is None:
        return None

    return NormalizedBlock(
        source_kind=SourceKind.FULL,
        sequence=block.number,
        timestamp=block.timestamp,
        transactions=extract_transactions(block.transactions),
        variant=BlockVariant.STANDARD,
        diff_type=BlockVariant.STANDARD.value,
        block_hash=block.hash,
        raw=block.raw,
    )


def normalize(
    raw: Mapping[str, Any],
    source_kind: SourceKind,
    *,
    fallback_timestamp: int | None = None,
) -> NormalizedBlock | None:
    """Dispatch to :func:`normalize_fast` or :func:`normalize_full`."""
    if not isinstance(raw, Mapping):
        raise FlashblocksNormalizationError(
            f"{source_kind.value} payload must be an object, got {type(raw).__name__}",
            source=source_kind.value,
            reason="shape",
        )
    if source_kind == SourceKind.FAST:
        return normalize_fast(raw, fallback_timestamp=fallback_timestamp)
    return normalize_full(raw)
