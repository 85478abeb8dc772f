"""Per-stream identity tracking."""

from __future__ import annotations

import logging

from pyflashblocks.state.events import Classification, NormalizedBlock, SourceKind
from pyflashblocks.state.policy import classify_sequence

_logger = logging.getLogger(__name__)


class IdentityTracker:
    """Holds the last accepted sequence per stream.

    :meth:`classify` compares and records in one step. The reconciler runs on
    a single event loop, so nothing can interleave between the two; a port to
    threads would need a lock around it.
    """

    def __init__(self) -> None:
        self._last: dict[SourceKind, int | None] = {kind: None for kind in SourceKind}

    def peek(self, kind: SourceKind) -> int | None:
        """Last accepted sequence for *kind*, without classifying anything."""
        return self._last[kind]

    def classify(self, kind: SourceKind, candidate: NormalizedBlock) -> Classification:
        """Classify *candidate* and record its sequence if it is new."""
        result = classify_sequence(last_accepted=self._last[kind], incoming=candidate.sequence)
        if result.is_new:
            self._last[kind] = result.sequence
            if result.is_rollback:
                _logger.info(
                    "%s stream sequence moved backwards %s -> %s",
                    kind.value,
                    result.previous,
                    result.sequence,
                )
        return result

    def reset(self) -> None:
        for kind in SourceKind:
            self._last[kind] = None
