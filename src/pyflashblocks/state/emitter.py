"""Per-stream trailing-edge debouncing.

Fast-stream messages arrive in sub-20ms bursts (several diffs for the same
block). The emitter absorbs a burst and flushes only its last record, once
the stream has been quiet for the configured window.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any

from pyflashblocks.state.events import NormalizedBlock, SourceKind

_logger = logging.getLogger(__name__)


class CoalescingEmitter:
    """Owns one pending record and one timer handle per stream.

    Every :meth:`submit` replaces the pending record and re-arms that
    stream's timer ``window`` seconds ahead; the flush callback receives the
    most recent record only. After :meth:`close` nothing is flushed again.
    """

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        windows: Mapping[SourceKind, float],
        on_flush: Callable[[NormalizedBlock], Any],
    ) -> None:
        self._loop = loop
        self._windows = dict(windows)
        self._on_flush = on_flush
        self._pending: dict[SourceKind, NormalizedBlock] = {}
        self._timers: dict[SourceKind, asyncio.TimerHandle] = {}
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    def pending(self, kind: SourceKind) -> NormalizedBlock | None:
        """The record waiting for *kind*'s window to elapse, if any."""
        return self._pending.get(kind)

    def submit(self, kind: SourceKind, candidate: NormalizedBlock) -> None:
        if self._closed:
            _logger.debug("Emitter closed; dropping %s sequence=%s", kind.value, candidate.sequence)
            return

        replaced = kind in self._pending
        self._pending[kind] = candidate
        timer = self._timers.pop(kind, None)
        if timer is not None:
            timer.cancel()
        self._timers[kind] = self._loop.call_later(self._windows[kind], self._fire, kind)

        if replaced:
            _logger.debug("%s candidate coalesced sequence=%s", kind.value, candidate.sequence)

    def flush_now(self, kind: SourceKind) -> bool:
        """Flush *kind*'s pending record immediately. Returns False if none."""
        if self._closed or kind not in self._pending:
            return False
        timer = self._timers.pop(kind, None)
        if timer is not None:
            timer.cancel()
        self._flush(kind)
        return True

    def cancel(self, kind: SourceKind | None = None) -> None:
        """Cancel pending timers and discard pending records.

        With no *kind*, both streams are cancelled.
        """
        kinds = list(SourceKind) if kind is None else [kind]
        for k in kinds:
            timer = self._timers.pop(k, None)
            if timer is not None:
                timer.cancel()
            dropped = self._pending.pop(k, None)
            if dropped is not None:
                _logger.debug("%s pending candidate discarded sequence=%s", k.value, dropped.sequence)

    def close(self) -> None:
        """Cancel everything and refuse further submissions. No final flush."""
        self._closed = True
        self.cancel()

    def _fire(self, kind: SourceKind) -> None:
        self._timers.pop(kind, None)
        if self._closed:
            return
        self._flush(kind)

    def _flush(self, kind: SourceKind) -> None:
        candidate = self._pending.pop(kind, None)
        if candidate is None:
            return
        self._on_flush(candidate)
