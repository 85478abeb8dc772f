"""Normalized ingestion records.

Both ingestion paths (websocket fast stream, JSON-RPC poller) convert their
inputs into :class:`NormalizedBlock`. Only the state/store layer is allowed to
turn them into slot updates.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SourceKind(StrEnum):
    FAST = "fast"
    FULL = "full"


class BlockVariant(StrEnum):
    INITIAL = "Initial"
    DIFF = "Diff"
    STANDARD = "Standard"


class NormalizedBlock(BaseModel):
    """Canonical block record shared by both streams.

    ``sequence`` (the block number) is the record's identity; everything else
    is content that may be refined by later records of the same block.
    """

    model_config = ConfigDict(frozen=True)

    source_kind: SourceKind
    sequence: int = Field(..., description="Block number")
    timestamp: int | None = Field(default=None, description="Unix seconds, if known")
    transactions: tuple[str, ...] = ()
    variant: BlockVariant
    diff_type: str = Field(..., description="Display label (payload diffType wins)")
    index: int | None = Field(default=None, description="Flashblock index within the block")
    block_hash: str | None = None
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    raw: dict[str, Any] = Field(default_factory=dict, repr=False)

    @property
    def transaction_count(self) -> int:
        return len(self.transactions)


@dataclass(frozen=True, slots=True)
class Classification:
    """Outcome of comparing a record against the last accepted identity.

    ``is_new`` is true for any change of sequence, including a decrease.
    """

    is_new: bool
    sequence: int
    previous: int | None = None

    @classmethod
    def new(cls, sequence: int, previous: int | None) -> Classification:
        return cls(is_new=True, sequence=sequence, previous=previous)

    @classmethod
    def repeat(cls, sequence: int) -> Classification:
        return cls(is_new=False, sequence=sequence, previous=sequence)

    @property
    def is_rollback(self) -> bool:
        """True when the sequence moved backwards (reorg or stale poll)."""
        return self.is_new and self.previous is not None and self.sequence < self.previous
