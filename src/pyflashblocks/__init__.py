"""pyflashblocks - Async live block reconciler for flashblocks and full block sources."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyflashblocks")
except PackageNotFoundError:
    __version__ = "0+local"
from pyflashblocks.config import FlashblocksConfig
from pyflashblocks.exceptions import (
    FlashblocksConfigError,
    FlashblocksError,
    FlashblocksNormalizationError,
    FlashblocksRpcError,
    FlashblocksSequenceError,
    FlashblocksTransportError,
)
from pyflashblocks.ingestion.normalize import normalize, normalize_fast, normalize_full
from pyflashblocks.models import DiagnosticEvent, DiagnosticKind, StreamHealth
from pyflashblocks.reconciler import LiveBlockReconciler
from pyflashblocks.state.events import BlockVariant, Classification, NormalizedBlock, SourceKind
from pyflashblocks.state.store import StreamSlot

__all__ = [
    "__version__",
    "BlockVariant",
    "Classification",
    "DiagnosticEvent",
    "DiagnosticKind",
    "FlashblocksConfig",
    "FlashblocksConfigError",
    "FlashblocksError",
    "FlashblocksNormalizationError",
    "FlashblocksRpcError",
    "FlashblocksSequenceError",
    "FlashblocksTransportError",
    "LiveBlockReconciler",
    "NormalizedBlock",
    "SourceKind",
    "StreamHealth",
    "StreamSlot",
    "normalize",
    "normalize_fast",
    "normalize_full",
]
