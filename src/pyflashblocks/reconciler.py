"""High-level async live block reconciler."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

import aiohttp

from pyflashblocks._redact import summarize_for_log
from pyflashblocks._transport import JsonRpcTransport, Transport
from pyflashblocks.config import FlashblocksConfig
from pyflashblocks.exceptions import (
    FlashblocksError,
    FlashblocksNormalizationError,
    FlashblocksTransportError,
)
from pyflashblocks.ingestion.fast import FastStreamReader
from pyflashblocks.ingestion.full import poll_latest_blocks
from pyflashblocks.ingestion.normalize import decode_message, normalize_fast, normalize_full
from pyflashblocks.models.diagnostics import DiagnosticEvent, DiagnosticKind, StreamHealth
from pyflashblocks.state.emitter import CoalescingEmitter
from pyflashblocks.state.events import BlockVariant, NormalizedBlock, SourceKind
from pyflashblocks.state.store import SlotObserver, StateStore, StreamSlot

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class LiveBlockReconciler:
    """Keeps a flicker-free "latest block" per stream.

    Usage::

        async with LiveBlockReconciler(FlashblocksConfig()) as reconciler:
            reconciler.on_change(SourceKind.FAST, lambda slot: print(slot.current))
            await asyncio.sleep(60)

    Callers that own their transports can disable both adapters in the
    config and feed raw payloads through :meth:`ingest_fast_message` and
    :meth:`ingest_full_response` instead.
    """

    def __init__(
        self,
        config: FlashblocksConfig | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        on_diagnostic: Callable[[DiagnosticEvent], None] | None = None,
    ) -> None:
        self._config = config or FlashblocksConfig()
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._on_diagnostic = on_diagnostic
        self._store = StateStore(on_observer_error=self._on_observer_error)
        self._health: dict[SourceKind, StreamHealth] = {kind: StreamHealth(kind=kind) for kind in SourceKind}
        self._emitter: CoalescingEmitter | None = None
        self._fast_reader: FastStreamReader | None = None
        self._tasks: list[asyncio.Task[None]] = []
        self._last_initial_timestamp: int | None = None
        self._closed = False

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> LiveBlockReconciler:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def start(self) -> None:
        """Bind to the running loop and start the enabled stream adapters."""
        if self._closed:
            raise FlashblocksError("Reconciler already closed; create a new instance")
        if self._emitter is not None:
            return

        loop = asyncio.get_running_loop()
        self._emitter = CoalescingEmitter(
            loop=loop,
            windows={
                SourceKind.FAST: self._config.fast_debounce_seconds,
                SourceKind.FULL: self._config.full_debounce_seconds,
            },
            on_flush=self._store.commit,
        )

        needs_http = self._config.fast_stream_enabled or (
            self._config.full_source_enabled and self._transport is None
        )
        if needs_http and self._http_session is None:
            self._http_session = aiohttp.ClientSession()

        if self._config.full_source_enabled:
            if self._transport is None:
                assert self._http_session is not None  # noqa: S101
                self._transport = JsonRpcTransport(
                    self._config.full_source_url,
                    self._http_session,
                    timeout=self._config.request_timeout_seconds,
                )
            self._spawn(
                poll_latest_blocks(
                    transport=self._transport,
                    interval=self._config.poll_interval_seconds,
                    on_response=self.ingest_full_response,
                    on_error=self._on_full_transport_error,
                ),
                name="pyflashblocks-full-poller",
            )

        if self._config.fast_stream_enabled:
            assert self._http_session is not None  # noqa: S101
            self._fast_reader = FastStreamReader(
                url=self._config.fast_stream_url,
                http_session=self._http_session,
                on_message=self.ingest_fast_message,
                on_connected=self._on_fast_connected,
                on_disconnected=self._on_fast_disconnected,
                reconnect_delay=self._config.reconnect_delay_seconds,
            )
            self._spawn(self._fast_reader.run(), name="pyflashblocks-fast-stream")

    async def close(self) -> None:
        """Tear down: cancel timers and adapters, keep last-flushed slots.

        Pending (not yet flushed) records are discarded.
        """
        if self._closed:
            return
        self._closed = True
        if self._emitter is not None:
            self._emitter.close()

        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
        self._http_session = None
        self._fast_reader = None

    def _spawn(self, coro: Any, *, name: str) -> None:
        task = asyncio.create_task(coro, name=name)
        task.add_done_callback(self._on_task_done)
        self._tasks.append(task)

    @staticmethod
    def _on_task_done(task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.error("Task %s stopped unexpectedly", task.get_name(), exc_info=exc)

    # ------------------------------------------------------------------
    # Consumer API
    # ------------------------------------------------------------------

    @property
    def config(self) -> FlashblocksConfig:
        return self._config

    @property
    def is_closed(self) -> bool:
        return self._closed

    def read(self, kind: SourceKind) -> StreamSlot:
        """Latest flushed snapshot of *kind*. Never blocks."""
        return self._store.read(kind)

    def on_change(self, kind: SourceKind, observer: SlotObserver) -> Callable[[], None]:
        """Observe identity changes (new block) of *kind*.

        The observer runs synchronously right after the flush that bumped
        ``change_counter``. Returns an unsubscribe callable.
        """
        return self._store.on_change(kind, observer)

    def on_update(self, kind: SourceKind, observer: SlotObserver) -> Callable[[], None]:
        """Observe every flush of *kind*, including same-block refinements."""
        return self._store.on_update(kind, observer)

    def health(self, kind: SourceKind) -> StreamHealth:
        return self._health[kind].model_copy()

    def pending(self, kind: SourceKind) -> NormalizedBlock | None:
        """Record waiting for the debounce window of *kind*, if any."""
        if self._emitter is None:
            return None
        return self._emitter.pending(kind)

    def flush_now(self, kind: SourceKind) -> bool:
        """Skip the debounce window for *kind*'s pending record."""
        if self._emitter is None:
            return False
        return self._emitter.flush_now(kind)

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def submit(self, kind: SourceKind, candidate: NormalizedBlock) -> None:
        """Hand an already-normalized record to the debouncer."""
        if self._closed:
            _logger.debug("Reconciler closed; ignoring %s sequence=%s", kind.value, candidate.sequence)
            return
        if self._emitter is None:
            raise FlashblocksError("Reconciler not started. Use 'async with LiveBlockReconciler(...)'")
        self._emitter.submit(kind, candidate)

    def ingest_fast_message(self, data: str | bytes | bytearray | None) -> NormalizedBlock | None:
        """Decode, normalize and submit one raw fast-stream frame.

        Malformed frames are logged, reported as diagnostics and dropped.
        """
        if self._closed:
            return None
        if not data:
            _logger.warning("Fast stream message with empty data; ignoring")
            return None
        self._mark_message(SourceKind.FAST)
        try:
            payload = decode_message(data, source=SourceKind.FAST)
        except FlashblocksNormalizationError as exc:
            self._drop(SourceKind.FAST, exc, data)
            return None
        return self.ingest_fast_payload(payload)

    def ingest_fast_payload(self, payload: Mapping[str, Any]) -> NormalizedBlock | None:
        """Normalize and submit an already-decoded fast-stream message."""
        if self._closed:
            return None
        try:
            block = normalize_fast(payload, fallback_timestamp=self._last_initial_timestamp)
        except FlashblocksNormalizationError as exc:
            self._drop(SourceKind.FAST, exc, payload)
            return None

        if block.variant == BlockVariant.INITIAL:
            self._last_initial_timestamp = block.timestamp
        self.submit(SourceKind.FAST, block)
        return block

    def ingest_full_response(self, body: Mapping[str, Any]) -> NormalizedBlock | None:
        """Normalize and submit one JSON-RPC poll response.

        A response without ``result`` is a no-op for this cycle.
        """
        if self._closed:
            return None
        self._mark_message(SourceKind.FULL)
        self._health[SourceKind.FULL].connected = True
        try:
            block = normalize_full(body)
        except FlashblocksTransportError as exc:
            self._on_full_transport_error(exc)
            return None
        except FlashblocksNormalizationError as exc:
            self._drop(SourceKind.FULL, exc, body)
            return None

        if block is None:
            _logger.debug("Full block response without result; no update this cycle")
            return None
        self.submit(SourceKind.FULL, block)
        return block

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def _mark_message(self, kind: SourceKind) -> None:
        self._health[kind].last_message_at = _utcnow()

    def _record_error(self, kind: SourceKind, exc: BaseException) -> None:
        health = self._health[kind]
        health.error_count += 1
        health.last_error = str(exc)
        health.last_error_at = _utcnow()

    def _drop(self, kind: SourceKind, exc: FlashblocksNormalizationError, raw: Any) -> None:
        _logger.warning("Dropping malformed %s message: %s", kind.value, exc)
        _logger.debug("Malformed %s payload: %s", kind.value, summarize_for_log(raw))
        self._record_error(kind, exc)
        self._health[kind].dropped_messages += 1
        self._emit(
            DiagnosticKind.NORMALIZATION_ERROR,
            kind,
            str(exc),
            {"reason": exc.reason, "error": type(exc).__name__},
        )

    def _on_full_transport_error(self, exc: FlashblocksTransportError) -> None:
        _logger.warning("Full block poll failed: %s", exc)
        self._record_error(SourceKind.FULL, exc)
        self._health[SourceKind.FULL].connected = False
        self._emit(
            DiagnosticKind.TRANSPORT_ERROR,
            SourceKind.FULL,
            str(exc),
            {"status_code": exc.status_code, "error": type(exc).__name__},
        )

    def _on_fast_connected(self) -> None:
        self._health[SourceKind.FAST].connected = True
        self._emit(DiagnosticKind.STREAM_CONNECTED, SourceKind.FAST, "Fast stream connected")

    def _on_fast_disconnected(self, exc: FlashblocksTransportError) -> None:
        health = self._health[SourceKind.FAST]
        health.connected = False
        self._record_error(SourceKind.FAST, exc)
        self._emit(
            DiagnosticKind.STREAM_DISCONNECTED,
            SourceKind.FAST,
            str(exc),
            {"status_code": exc.status_code},
        )

    def _on_observer_error(self, kind: SourceKind, exc: BaseException) -> None:
        self._emit(DiagnosticKind.OBSERVER_ERROR, kind, repr(exc), {"error": type(exc).__name__})

    def _emit(
        self,
        kind: DiagnosticKind,
        source: SourceKind | None,
        message: str,
        detail: dict[str, Any] | None = None,
    ) -> None:
        if self._on_diagnostic is None:
            return
        event = DiagnosticEvent(kind=kind, source=source, message=message, detail=detail or {})
        try:
            self._on_diagnostic(event)
        except Exception:
            _logger.warning("Diagnostic callback failed for %s", kind.value, exc_info=True)
