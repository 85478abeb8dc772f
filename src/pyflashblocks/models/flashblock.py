"""Fast-stream (flashblocks websocket) payload models."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field

from pyflashblocks.models._base import BlockNumber, HexInt, WireModel


class FlashblockBase(WireModel):
    """Block header fields, present only on the ``index == 0`` message."""

    block_number: HexInt = Field(..., validation_alias=AliasChoices("block_number", "blockNumber"))
    timestamp: HexInt | None = None
    parent_hash: str | None = None


class FlashblockDiff(WireModel):
    """Cumulative state diff carried by every fast-stream message."""

    transactions: list[Any] = Field(default_factory=list)
    block_hash: str | None = Field(default=None, validation_alias=AliasChoices("block_hash", "blockHash"))


class FlashblockMetadata(WireModel):
    """Diff-message metadata. ``block_number`` is already decimal here."""

    block_number: BlockNumber = Field(..., validation_alias=AliasChoices("block_number", "blockNumber"))


class FlashblockPayload(WireModel):
    """A single fast-stream message.

    Parameters
    ----------
    index : int
        Position of this flashblock within its block. ``0`` marks the
        initial message that carries ``base``.
    diff_type : str or None
        Optional label supplied by the producer (``diffType``).
    base : FlashblockBase or None
        Header fields of the initial message.
    metadata : FlashblockMetadata or None
        Block number of subsequent diff messages.
    diff : FlashblockDiff
        Transactions observed so far in the block.
    """

    index: int
    payload_id: str | None = None
    diff_type: str | None = Field(default=None, validation_alias=AliasChoices("diffType", "diff_type"))
    base: FlashblockBase | None = None
    metadata: FlashblockMetadata | None = None
    diff: FlashblockDiff = Field(default_factory=FlashblockDiff)

    @property
    def is_initial(self) -> bool:
        return self.index == 0
