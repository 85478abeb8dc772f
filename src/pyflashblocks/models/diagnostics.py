"""Structured diagnostic events and per-stream health."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pyflashblocks.state.events import SourceKind


class DiagnosticKind(StrEnum):
    NORMALIZATION_ERROR = "normalization_error"
    TRANSPORT_ERROR = "transport_error"
    STREAM_CONNECTED = "stream_connected"
    STREAM_DISCONNECTED = "stream_disconnected"
    OBSERVER_ERROR = "observer_error"


class DiagnosticEvent(BaseModel):
    """A single observability event emitted by the reconciler.

    Consumed by whatever collaborator the caller wires into
    ``LiveBlockReconciler(on_diagnostic=...)``; never raised.
    """

    model_config = ConfigDict(frozen=True)

    kind: DiagnosticKind
    source: SourceKind | None = None
    message: str = ""
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    detail: dict[str, Any] = Field(default_factory=dict)


class StreamHealth(BaseModel):
    """Connection and error bookkeeping for one stream.

    Slots only ever show the last good state; this is where a consumer can
    tell "quiet chain" apart from "broken transport".
    """

    model_config = ConfigDict(extra="forbid")

    kind: SourceKind
    connected: bool = False
    last_message_at: datetime | None = None
    last_error: str | None = None
    last_error_at: datetime | None = None
    error_count: int = 0
    dropped_messages: int = 0
