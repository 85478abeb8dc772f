"""HTTP JSON-RPC transport for the full block source."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pyflashblocks._constants import USER_AGENT
from pyflashblocks._redact import redact_url
from pyflashblocks.exceptions import FlashblocksTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by the poller.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`JsonRpcTransport`) concrete.
    """

    async def post_json(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        ...


class JsonRpcTransport:
    """POSTs JSON-RPC bodies and returns the decoded JSON object."""

    def __init__(
        self,
        url: str,
        http_session: aiohttp.ClientSession,
        *,
        timeout: float = 10.0,
    ) -> None:
        self._url = url
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._log_url = redact_url(url)

    async def post_json(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Send *payload* and return the decoded response object.

        Raises
        ------
        FlashblocksTransportError
            On network failure, timeout, non-200 status, or a body that is
            not a JSON object.
        """
        headers: dict[str, str] = {
            "content-type": "application/json",
            "user-agent": USER_AGENT,
        }
        body = json.dumps(payload, separators=(",", ":"))

        _logger.debug("POST %s method=%s", self._log_url, payload.get("method"))

        try:
            async with self._http.post(self._url, data=body, headers=headers, timeout=self._timeout) as resp:
                raw = await resp.read()
                charset = resp.charset or "utf-8"
                if resp.status != 200:
                    raise FlashblocksTransportError(
                        f"HTTP {resp.status} from {self._log_url}: {raw[:200].decode('utf-8', 'replace')}",
                        status_code=resp.status,
                        endpoint=self._log_url,
                    )
        except FlashblocksTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise FlashblocksTransportError(
                f"Request to {self._log_url} failed: {exc!r}",
                endpoint=self._log_url,
            ) from exc

        try:
            text = raw.decode(charset)
        except (UnicodeDecodeError, LookupError) as exc:
            raise FlashblocksTransportError(
                f"Undecodable body from {self._log_url} (charset={charset}): {exc}",
                endpoint=self._log_url,
            ) from exc

        try:
            result = json.loads(text)
        except json.JSONDecodeError as exc:
            raise FlashblocksTransportError(
                f"Invalid JSON from {self._log_url}: {text[:200]}",
                endpoint=self._log_url,
            ) from exc

        if not isinstance(result, dict):
            raise FlashblocksTransportError(
                f"Expected JSON object from {self._log_url}, got {type(result).__name__}",
                endpoint=self._log_url,
            )
        return result
