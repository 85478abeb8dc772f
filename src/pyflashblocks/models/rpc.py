"""JSON-RPC request/response models for the full block source."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pyflashblocks._constants import JSONRPC_VERSION, LATEST_BLOCK_METHOD
from pyflashblocks.models._base import HexInt, WireModel


class JsonRpcRequest(BaseModel):
    """Outbound JSON-RPC request body."""

    model_config = ConfigDict(frozen=True)

    jsonrpc: str = JSONRPC_VERSION
    method: str = LATEST_BLOCK_METHOD
    params: list[Any] = Field(default_factory=lambda: ["latest", True])
    id: int = 1

    @classmethod
    def latest_block(cls, request_id: int) -> JsonRpcRequest:
        """``eth_getBlockByNumber("latest", true)`` with full transaction objects."""
        return cls(id=request_id)


class RpcBlock(WireModel):
    """The ``result`` object of ``eth_getBlockByNumber``."""

    number: HexInt
    timestamp: HexInt
    hash: str | None = None
    transactions: list[Any] = Field(default_factory=list)


class RpcErrorBody(WireModel):
    code: int | None = None
    message: str = ""


class RpcResponse(WireModel):
    """JSON-RPC response envelope.

    ``result`` is ``None`` both when the node has nothing to report and when
    the response carries an ``error`` member instead.
    """

    jsonrpc: str | None = None
    id: int | str | None = None
    result: RpcBlock | None = None
    error: RpcErrorBody | None = None
