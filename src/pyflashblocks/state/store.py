"""Two-slot reconciler state store.

This is the only component allowed to turn normalized records into slot
updates. Consumers read frozen snapshots and subscribe to changes; they can
never write a slot.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict

from pyflashblocks.state.events import Classification, NormalizedBlock, SourceKind
from pyflashblocks.state.identity import IdentityTracker

_logger = logging.getLogger(__name__)

SlotObserver = Callable[["StreamSlot"], None]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class StreamSlot(BaseModel):
    """Latest known state of one stream.

    ``change_counter`` increments exactly once per identity change and is
    meant as a re-render/animation key; it is never reset and never used as
    identity itself.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: SourceKind
    current: NormalizedBlock | None = None
    last_accepted_sequence: int | None = None
    change_counter: int = 0
    updated_at: datetime | None = None

    @property
    def is_waiting(self) -> bool:
        """True until the first record has been flushed."""
        return self.current is None


class StateStore:
    """In-memory store holding exactly one :class:`StreamSlot` per stream.

    Given the same sequence of :meth:`commit` calls it produces the same
    slots and the same observer invocations.
    """

    def __init__(
        self,
        *,
        tracker: IdentityTracker | None = None,
        clock: Callable[[], datetime] = _utcnow,
        on_observer_error: Callable[[SourceKind, BaseException], None] | None = None,
    ) -> None:
        self._tracker = tracker or IdentityTracker()
        self._clock = clock
        self._on_observer_error = on_observer_error
        self._slots: dict[SourceKind, StreamSlot] = {kind: StreamSlot(kind=kind) for kind in SourceKind}
        self._change_observers: dict[SourceKind, list[SlotObserver]] = {kind: [] for kind in SourceKind}
        self._update_observers: dict[SourceKind, list[SlotObserver]] = {kind: [] for kind in SourceKind}

    def read(self, kind: SourceKind) -> StreamSlot:
        """Return the latest flushed snapshot for *kind*."""
        return self._slots[kind]

    def on_change(self, kind: SourceKind, observer: SlotObserver) -> Callable[[], None]:
        """Call *observer* after every ``change_counter`` increment.

        Returns a callable that unregisters the observer.
        """
        return self._register(self._change_observers[kind], observer)

    def on_update(self, kind: SourceKind, observer: SlotObserver) -> Callable[[], None]:
        """Call *observer* after every flush, including same-block refinements."""
        return self._register(self._update_observers[kind], observer)

    @staticmethod
    def _register(observers: list[SlotObserver], observer: SlotObserver) -> Callable[[], None]:
        observers.append(observer)

        def _unsubscribe() -> None:
            if observer in observers:
                observers.remove(observer)

        return _unsubscribe

    def commit(self, candidate: NormalizedBlock) -> Classification:
        """Apply a flushed record to its slot.

        New identities replace content, record the sequence and bump the
        counter; repeats replace content only.
        """
        kind = candidate.source_kind
        classification = self._tracker.classify(kind, candidate)
        slot = self._slots[kind]

        if classification.is_new:
            slot = slot.model_copy(
                update={
                    "current": candidate,
                    "last_accepted_sequence": classification.sequence,
                    "change_counter": slot.change_counter + 1,
                    "updated_at": self._clock(),
                }
            )
        else:
            slot = slot.model_copy(update={"current": candidate, "updated_at": self._clock()})
        self._slots[kind] = slot

        _logger.debug(
            "%s slot flushed sequence=%s txs=%s new=%s counter=%s",
            kind.value,
            candidate.sequence,
            candidate.transaction_count,
            classification.is_new,
            slot.change_counter,
        )

        self._notify(kind, self._update_observers[kind], slot)
        if classification.is_new:
            self._notify(kind, self._change_observers[kind], slot)
        return classification

    def _notify(self, kind: SourceKind, observers: list[SlotObserver], slot: StreamSlot) -> None:
        for observer in list(observers):
            try:
                observer(slot)
            except Exception as exc:
                _logger.warning("%s slot observer %r failed", kind.value, observer, exc_info=True)
                if self._on_observer_error is not None:
                    self._on_observer_error(kind, exc)
