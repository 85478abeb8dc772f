from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Mapping
from typing import Any

import aiohttp
import pytest
import pytest_asyncio
from aiohttp import test_utils, web

from pyflashblocks._transport import JsonRpcTransport
from pyflashblocks.config import FlashblocksConfig
from pyflashblocks.exceptions import FlashblocksTransportError
from pyflashblocks.ingestion.fast import FastStreamReader
from pyflashblocks.ingestion.full import poll_latest_blocks
from pyflashblocks.models.diagnostics import DiagnosticEvent, DiagnosticKind
from pyflashblocks.reconciler import LiveBlockReconciler
from pyflashblocks.state.events import SourceKind

RECEIVED = web.AppKey("received", list)
BLOCK_RESPONSE = {"jsonrpc": "2.0", "id": 1, "result": {"number": "0x10", "timestamp": "0x1", "transactions": []}}


async def _rpc_ok(request: web.Request) -> web.Response:
    body = await request.json()
    request.app[RECEIVED].append(body)
    return web.json_response({**BLOCK_RESPONSE, "id": body["id"]})


async def _rpc_unavailable(_request: web.Request) -> web.Response:
    return web.Response(status=503, text="upstream busy")


async def _rpc_html(_request: web.Request) -> web.Response:
    return web.Response(status=200, text="<html>maintenance</html>")


async def _rpc_list(_request: web.Request) -> web.Response:
    return web.json_response([BLOCK_RESPONSE])


async def _rpc_bad_bytes(request: web.Request) -> web.Response:
    request.app[RECEIVED].append("badbytes")
    return web.Response(status=200, body=b'{"result": "\xff"}', content_type="application/json")


async def _rpc_unknown_charset(_request: web.Request) -> web.Response:
    headers = {"Content-Type": "application/json; charset=x-no-such-codec"}
    return web.Response(status=200, body=b"{}", headers=headers)


async def _ws_two_frames(request: web.Request) -> web.WebSocketResponse:
    ws = web.WebSocketResponse()
    await ws.prepare(request)
    await ws.send_str('{"index": 0}')
    await ws.send_bytes(b'{"index": 1}')
    await ws.close()
    return ws


@pytest_asyncio.fixture
async def server() -> AsyncIterator[test_utils.TestServer]:
    app = web.Application()
    app[RECEIVED] = []
    app.router.add_post("/rpc", _rpc_ok)
    app.router.add_post("/busy", _rpc_unavailable)
    app.router.add_post("/html", _rpc_html)
    app.router.add_post("/list", _rpc_list)
    app.router.add_post("/badbytes", _rpc_bad_bytes)
    app.router.add_post("/badcharset", _rpc_unknown_charset)
    app.router.add_get("/ws", _ws_two_frames)
    test_server = test_utils.TestServer(app)
    await test_server.start_server()
    yield test_server
    await test_server.close()


@pytest_asyncio.fixture
async def http_session() -> AsyncIterator[aiohttp.ClientSession]:
    async with aiohttp.ClientSession() as session:
        yield session


# ------------------------------------------------------------------
# JSON-RPC transport
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_post_json_returns_decoded_object(
    server: test_utils.TestServer, http_session: aiohttp.ClientSession
) -> None:
    transport = JsonRpcTransport(str(server.make_url("/rpc")), http_session, timeout=5)

    body = await transport.post_json({"jsonrpc": "2.0", "method": "eth_getBlockByNumber", "params": [], "id": 4})

    assert body["id"] == 4
    assert body["result"]["number"] == "0x10"
    assert server.app[RECEIVED][0]["method"] == "eth_getBlockByNumber"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("path", "status_code"),
    [("/busy", 503), ("/html", None), ("/list", None), ("/badbytes", None), ("/badcharset", None)],
)
async def test_post_json_failures_raise_transport_error(
    server: test_utils.TestServer,
    http_session: aiohttp.ClientSession,
    path: str,
    status_code: int | None,
) -> None:
    transport = JsonRpcTransport(str(server.make_url(path)), http_session, timeout=5)

    with pytest.raises(FlashblocksTransportError) as exc_info:
        await transport.post_json({"id": 1})
    assert exc_info.value.status_code == status_code


@pytest.mark.asyncio
async def test_post_json_connection_failure(http_session: aiohttp.ClientSession) -> None:
    # Bind and release a port so nothing is listening on it.
    port = test_utils.unused_port()
    transport = JsonRpcTransport(f"http://127.0.0.1:{port}/rpc", http_session, timeout=2)

    with pytest.raises(FlashblocksTransportError, match="failed"):
        await transport.post_json({"id": 1})


# ------------------------------------------------------------------
# Poll loop
# ------------------------------------------------------------------


class _ScriptedTransport:
    def __init__(self, *outcomes: dict[str, Any] | Exception) -> None:
        self._outcomes = list(outcomes)
        self.requests: list[Mapping[str, Any]] = []

    async def post_json(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        self.requests.append(payload)
        outcome = self._outcomes[(len(self.requests) - 1) % len(self._outcomes)]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.mark.asyncio
async def test_poll_loop_increments_request_ids_and_stops_after_max_polls() -> None:
    transport = _ScriptedTransport(BLOCK_RESPONSE)
    responses: list[dict[str, Any]] = []

    await poll_latest_blocks(transport=transport, interval=0.01, on_response=responses.append, max_polls=3)

    assert [r["id"] for r in transport.requests] == [1, 2, 3]
    assert all(r["params"] == ["latest", True] for r in transport.requests)
    assert len(responses) == 3


@pytest.mark.asyncio
async def test_poll_loop_reports_errors_and_keeps_going() -> None:
    transport = _ScriptedTransport(FlashblocksTransportError("boom"), BLOCK_RESPONSE)
    responses: list[dict[str, Any]] = []
    errors: list[FlashblocksTransportError] = []

    await poll_latest_blocks(
        transport=transport,
        interval=0.01,
        on_response=responses.append,
        on_error=errors.append,
        max_polls=4,
    )

    assert len(errors) == 2
    assert len(responses) == 2


@pytest.mark.asyncio
async def test_poll_loop_survives_undecodable_bodies(
    server: test_utils.TestServer, http_session: aiohttp.ClientSession
) -> None:
    transport = JsonRpcTransport(str(server.make_url("/badbytes")), http_session, timeout=5)
    responses: list[dict[str, Any]] = []
    errors: list[FlashblocksTransportError] = []

    await poll_latest_blocks(
        transport=transport,
        interval=0.01,
        on_response=responses.append,
        on_error=errors.append,
        max_polls=3,
    )

    assert server.app[RECEIVED] == ["badbytes"] * 3
    assert responses == []
    assert len(errors) == 3
    assert isinstance(errors[0].__cause__, UnicodeDecodeError)


@pytest.mark.asyncio
async def test_reconciler_keeps_polling_after_undecodable_body(
    server: test_utils.TestServer, http_session: aiohttp.ClientSession
) -> None:
    diagnostics: list[DiagnosticEvent] = []
    config = FlashblocksConfig(
        fast_stream_enabled=False,
        full_source_url=str(server.make_url("/badbytes")),
        poll_interval_seconds=0.05,
    )

    async with LiveBlockReconciler(config, session=http_session, on_diagnostic=diagnostics.append) as reconciler:
        await asyncio.sleep(0.3)
        health = reconciler.health(SourceKind.FULL)

    assert len(server.app[RECEIVED]) >= 3
    assert health.error_count >= 3
    assert health.connected is False
    assert diagnostics
    assert all(d.kind == DiagnosticKind.TRANSPORT_ERROR for d in diagnostics)
    assert reconciler.read(SourceKind.FULL).change_counter == 0


# ------------------------------------------------------------------
# Websocket reader
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_fast_reader_forwards_text_and_binary_frames(
    server: test_utils.TestServer, http_session: aiohttp.ClientSession
) -> None:
    frames: list[str | bytes] = []
    events: list[str] = []
    disconnects: list[FlashblocksTransportError] = []

    reader = FastStreamReader(
        url=str(server.make_url("/ws")),
        http_session=http_session,
        on_message=frames.append,
        on_connected=lambda: events.append("connected"),
        on_disconnected=disconnects.append,
        reconnect_delay=0,
    )
    await reader.run()

    assert frames == ['{"index": 0}', b'{"index": 1}']
    assert events == ["connected"]
    assert len(disconnects) == 1
    assert "closed" in str(disconnects[0])
    assert not reader.is_connected


@pytest.mark.asyncio
async def test_fast_reader_handshake_failure_is_reported(
    server: test_utils.TestServer, http_session: aiohttp.ClientSession
) -> None:
    disconnects: list[FlashblocksTransportError] = []
    reader = FastStreamReader(
        url=str(server.make_url("/missing")),
        http_session=http_session,
        on_message=lambda _data: None,
        on_disconnected=disconnects.append,
        reconnect_delay=0,
    )

    await reader.run()

    assert len(disconnects) == 1
    assert isinstance(disconnects[0].__cause__, aiohttp.ClientError)
