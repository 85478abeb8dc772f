"""Wire and diagnostic models."""

from pyflashblocks.models._base import BlockNumber, HexInt, WireModel, parse_block_number, parse_hex_int
from pyflashblocks.models.diagnostics import DiagnosticEvent, DiagnosticKind, StreamHealth
from pyflashblocks.models.flashblock import FlashblockBase, FlashblockDiff, FlashblockMetadata, FlashblockPayload
from pyflashblocks.models.rpc import JsonRpcRequest, RpcBlock, RpcErrorBody, RpcResponse

__all__ = [
    "BlockNumber",
    "DiagnosticEvent",
    "DiagnosticKind",
    "FlashblockBase",
    "FlashblockDiff",
    "FlashblockMetadata",
    "FlashblockPayload",
    "HexInt",
    "JsonRpcRequest",
    "RpcBlock",
    "RpcErrorBody",
    "RpcResponse",
    "StreamHealth",
    "WireModel",
    "parse_block_number",
    "parse_hex_int",
]
