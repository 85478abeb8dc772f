"""Full block polling ingestion.

This module owns the fixed-interval JSON-RPC poll loop for the full block
source. It only fetches; normalization and merging happen in the reconciler
so the loop stays free of state.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Callable
from typing import Any

from pyflashblocks._transport import Transport
from pyflashblocks.exceptions import FlashblocksTransportError
from pyflashblocks.models.rpc import JsonRpcRequest

_logger = logging.getLogger(__name__)


async def poll_latest_blocks(
    *,
    transport: Transport,
    interval: float,
    on_response: Callable[[dict[str, Any]], Any],
    on_error: Callable[[FlashblocksTransportError], None] | None = None,
    max_polls: int | None = None,
) -> None:
    """Request the latest block every *interval* seconds until cancelled.

    The first request fires immediately. Only one request is in flight at a
    time; a response slower than *interval* pushes the next tick back rather
    than overlapping it.

    Parameters
    ----------
    on_response
        Receives every decoded JSON-RPC response body, including ones without
        a ``result``.
    on_error
        Receives transport failures. The loop keeps polling afterwards.
    max_polls
        Stop after this many requests (``None`` polls forever).
    """
    loop = asyncio.get_running_loop()
    next_tick = loop.time()
    counter = itertools.count(1) if max_polls is None else range(1, max_polls + 1)

    for request_id in counter:
        request = JsonRpcRequest.latest_block(request_id)
        try:
            body = await transport.post_json(request.model_dump())
        except FlashblocksTransportError as exc:
            _logger.debug("Full block poll %s failed", request_id, exc_info=True)
            if on_error is not None:
                on_error(exc)
        else:
            on_response(body)

        if max_polls is not None and request_id >= max_polls:
            return

        next_tick += interval
        delay = next_tick - loop.time()
        if delay < 0:
            _logger.debug("Full block poll %s overran interval by %.3fs", request_id, -delay)
            next_tick = loop.time()
            delay = 0.0
        await asyncio.sleep(delay)
