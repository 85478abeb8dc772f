"""Identity classification policy.

This module intentionally contains *no* payload parsing. The ingestion
boundary produces normalized records; this only compares block numbers.
"""

from __future__ import annotations

from pyflashblocks.state.events import Classification


def classify_sequence(*, last_accepted: int | None, incoming: int) -> Classification:
    """Decide whether *incoming* is a new identity.

    Policy:
    - No previous sequence: new.
    - Any difference, including a decrease: new. Rollbacks are surfaced via
      :attr:`Classification.is_rollback` but never suppressed.
    - Exact match: repeat (content refinement of the same block).
    """
    if last_accepted is None or incoming != last_accepted:
        return Classification.new(incoming, last_accepted)
    return Classification.repeat(incoming)
