"""Ingestion layer.

This package contains the adapters that receive data from the fast stream
(websocket) and the full block source (JSON-RPC polling), and the pure
normalizer that turns their payloads into normalized records.
"""

__all__: list[str] = []
