"""Fast stream (websocket) ingestion.

Reads raw frames from the flashblocks websocket and hands them, undecoded,
to a callback. Connection failures are reported and optionally retried;
nothing here knows about blocks or slots.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

import aiohttp

from pyflashblocks._redact import redact_url
from pyflashblocks.exceptions import FlashblocksTransportError

_logger = logging.getLogger(__name__)


class FastStreamReader:
    """aiohttp websocket reader with a fixed-delay reconnect loop."""

    def __init__(
        self,
        *,
        url: str,
        http_session: aiohttp.ClientSession,
        on_message: Callable[[str | bytes], Any],
        on_connected: Callable[[], None] | None = None,
        on_disconnected: Callable[[FlashblocksTransportError], None] | None = None,
        reconnect_delay: float = 5.0,
        heartbeat: float | None = 30.0,
    ) -> None:
        self._url = url
        self._log_url = redact_url(url)
        self._http = http_session
        self._on_message = on_message
        self._on_connected = on_connected
        self._on_disconnected = on_disconnected
        self._reconnect_delay = reconnect_delay
        self._heartbeat = heartbeat
        self._connected = False

    @property
    def is_connected(self) -> bool:
        """Whether the websocket is currently open."""
        return self._connected

    async def run(self) -> None:
        """Read until cancelled, reconnecting after each failure.

        Returns after the first failure when ``reconnect_delay`` is ``0``.
        """
        while True:
            try:
                await self._consume_once()
            except FlashblocksTransportError as exc:
                _logger.warning("Fast stream %s disconnected: %s", self._log_url, exc)
                if self._on_disconnected is not None:
                    self._on_disconnected(exc)

            if self._reconnect_delay <= 0:
                return
            await asyncio.sleep(self._reconnect_delay)
            _logger.debug("Fast stream reconnecting to %s", self._log_url)

    async def _consume_once(self) -> None:
        try:
            async with self._http.ws_connect(self._url, heartbeat=self._heartbeat) as ws:
                self._connected = True
                _logger.debug("Fast stream connected to %s", self._log_url)
                if self._on_connected is not None:
                    self._on_connected()

                async for msg in ws:
                    if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                        self._on_message(msg.data)
                    elif msg.type == aiohttp.WSMsgType.ERROR:
                        raise FlashblocksTransportError(
                            f"Websocket error: {ws.exception()!r}",
                            endpoint=self._log_url,
                        )
                    else:
                        _logger.debug("Ignoring websocket frame type=%s", msg.type)

                raise FlashblocksTransportError(
                    f"Websocket closed (code={ws.close_code})",
                    status_code=ws.close_code,
                    endpoint=self._log_url,
                )
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise FlashblocksTransportError(
                f"Websocket connection to {self._log_url} failed: {exc!r}",
                endpoint=self._log_url,
            ) from exc
        finally:
            self._connected = False
