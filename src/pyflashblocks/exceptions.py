"""Custom exception hierarchy for pyflashblocks."""

from __future__ import annotations


class FlashblocksError(Exception):
    """Base exception for all pyflashblocks errors."""


class FlashblocksConfigError(FlashblocksError):
    """Invalid configuration value."""


class FlashblocksTransportError(FlashblocksError):
    """Transport-level failure (connection lost, non-200, invalid JSON body).

    Always recoverable: the reconciler logs it, records it in stream health
    and keeps serving the last flushed state.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class FlashblocksRpcError(FlashblocksTransportError):
    """JSON-RPC response carried an ``error`` member instead of a result."""

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.code = code
        super().__init__(message, endpoint=endpoint)


class FlashblocksNormalizationError(FlashblocksError):
    """A raw payload could not be mapped onto a :class:`NormalizedBlock`.

    The offending message is dropped; it never advances a stream's sequence
    and never triggers a change signal.
    """

    def __init__(
        self,
        message: str,
        *,
        source: str = "",
        reason: str = "",
    ) -> None:
        self.source = source
        self.reason = reason
        super().__init__(message)


class FlashblocksSequenceError(FlashblocksNormalizationError):
    """The block number of a payload is missing or unparseable.

    Without a sequence the record has no identity, so it is treated like any
    other malformed payload.
    """
