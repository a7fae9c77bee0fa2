"""Tests for the client-side cache and the reconnecting session."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timedelta
from typing import Callable

import httpx
import pytest

from helpdesk.client import ConnectionState, NotificationCache, NotificationClientSession
from helpdesk.interfaces.api.schemas import NotificationRead

BASE_TIME = datetime(2024, 5, 1, 9, 0, 0)


def _payload(notification_id: int, *, minutes: int = 0, is_read: bool = False) -> dict:
    return {
        "id": notification_id,
        "user_id": 42,
        "type": "info",
        "message": f"Ticket #{notification_id} actualizado|||Cambió a en progreso",
        "title": f"Ticket #{notification_id} actualizado",
        "body": "Cambió a en progreso",
        "related_type": "ticket",
        "related_id": notification_id,
        "is_read": is_read,
        "created_at": (BASE_TIME + timedelta(minutes=minutes)).isoformat(),
    }


def _read(notification_id: int, **kwargs) -> NotificationRead:
    return NotificationRead.model_validate(_payload(notification_id, **kwargs))


def _frame(event_name: str, data: dict) -> str:
    return json.dumps({"type": event_name, "data": data})


class FakeServer:
    """In-memory REST backend served through :class:`httpx.MockTransport`."""

    def __init__(self) -> None:
        self.rows: list[dict] = []
        self.fail = False
        self.gate: asyncio.Event | None = None
        self.before_list: Callable[[], None] | None = None
        self.requests: list[httpx.Request] = []

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail:
            return httpx.Response(500, json={"detail": "Error interno"})
        if request.method == "GET" and request.url.path == "/api/notifications":
            if self.before_list is not None:
                self.before_list()
            snapshot = [dict(row) for row in self.rows]
            if self.gate is not None:
                await self.gate.wait()
            return httpx.Response(200, json={"success": True, "data": snapshot})
        if request.url.path == "/api/notifications/unread-count":
            unread = sum(1 for row in self.rows if not row["is_read"])
            return httpx.Response(200, json={"success": True, "count": unread})
        return httpx.Response(200, json={"success": True, "message": "ok"})


class FakeStream:
    """Websocket stand-in yielding queued frames; ``None`` closes it."""

    def __init__(self) -> None:
        self.frames: asyncio.Queue[str | None] = asyncio.Queue()

    async def __aenter__(self) -> "FakeStream":
        return self

    async def __aexit__(self, *exc_info) -> bool:
        return False

    def __aiter__(self) -> "FakeStream":
        return self

    async def __anext__(self) -> str:
        frame = await self.frames.get()
        if frame is None:
            raise StopAsyncIteration
        return frame


async def _eventually(condition, attempts: int = 200) -> None:
    for _ in range(attempts):
        if condition():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not met")


@pytest.fixture()
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture()
def stream() -> FakeStream:
    return FakeStream()


@pytest.fixture()
def connections() -> list[str]:
    return []


@pytest.fixture()
def make_session(server, stream, connections):
    def _connector(url: str) -> FakeStream:
        connections.append(url)
        return stream

    def _make(**kwargs) -> NotificationClientSession:
        http_client = httpx.AsyncClient(
            base_url="http://testserver", transport=httpx.MockTransport(server.handle)
        )
        return NotificationClientSession(
            "http://testserver",
            http_client=http_client,
            connector=kwargs.pop("connector", _connector),
            reconnect_delay=0,
            **kwargs,
        )

    return _make


async def _connected(make_session, server, **kwargs) -> NotificationClientSession:
    session = make_session(**kwargs)
    await session.login("tok")
    await _eventually(lambda: session.state is ConnectionState.CONNECTED)
    await _eventually(lambda: len(server.requests) >= 2)
    return session


def test_cache_orders_newest_first_and_dedupes():
    cache = NotificationCache()

    cache.replace([_read(1), _read(3, minutes=5), _read(1), _read(2, minutes=2)], 3)

    assert [item.id for item in cache.items] == [3, 2, 1]
    assert cache.unread_count == 3


def test_cache_push_is_counted_once():
    cache = NotificationCache()
    cache.replace([_read(1)], 1)

    assert cache.apply_push(_read(2, minutes=1)) is True
    assert cache.apply_push(_read(2, minutes=1)) is False

    assert [item.id for item in cache.items] == [2, 1]
    assert cache.unread_count == 2


def test_cache_read_state_changes():
    cache = NotificationCache()
    cache.replace([_read(1), _read(2, minutes=1), _read(3, minutes=2, is_read=True)], 2)

    cache.mark_read(1)
    cache.mark_read(1)
    assert cache.unread_count == 1
    assert cache.get(1).is_read is True

    cache.remove(2)
    assert cache.unread_count == 0
    assert cache.get(2) is None

    cache.replace([_read(4), _read(5)], 2)
    cache.mark_all_read()
    assert cache.unread_count == 0
    assert all(item.is_read for item in cache.items)


def test_cache_failure_keeps_last_state():
    cache = NotificationCache()
    cache.replace([_read(1)], 1)

    cache.fail("No se pudieron obtener las notificaciones")

    assert [item.id for item in cache.items] == [1]
    assert cache.unread_count == 1
    assert cache.error is not None
    cache.replace([], 0)
    assert cache.error is None


def test_channel_url_uses_secure_scheme_for_https():
    session = NotificationClientSession("https://helpdesk.example.com")

    assert session.channel_url().startswith("wss://helpdesk.example.com/api/notifications/ws?token=")


@pytest.mark.anyio
async def test_login_connects_and_pulls_baseline(make_session, server, connections):
    server.rows = [_payload(1), _payload(2, minutes=1, is_read=True)]

    session = await _connected(make_session, server)

    assert connections == ["ws://testserver/api/notifications/ws?token=tok"]
    assert [item.id for item in session.cache.items] == [2, 1]
    assert session.cache.unread_count == 1
    assert server.requests[0].headers["Authorization"] == "Bearer tok"
    await session.aclose()


@pytest.mark.anyio
async def test_push_is_applied_and_deduplicated(make_session, server, stream):
    server.rows = [_payload(1)]
    session = await _connected(make_session, server)

    await stream.frames.put(_frame("notification", _payload(2, minutes=1)))
    await stream.frames.put(_frame("notification", _payload(2, minutes=1)))
    await _eventually(lambda: stream.frames.empty() and session.cache.get(2) is not None)
    await asyncio.sleep(0)

    assert [item.id for item in session.cache.items] == [2, 1]
    assert session.cache.unread_count == 2
    await session.aclose()


@pytest.mark.anyio
async def test_malformed_frames_are_skipped(make_session, server, stream):
    session = await _connected(make_session, server)

    await stream.frames.put("no es json")
    await stream.frames.put("[1, 2]")
    await stream.frames.put(_frame("notification", {"id": "x"}))
    await stream.frames.put(_frame("notification", _payload(9)))
    await _eventually(lambda: session.cache.get(9) is not None)

    assert [item.id for item in session.cache.items] == [9]
    assert session.state is ConnectionState.CONNECTED
    await session.aclose()


@pytest.mark.anyio
async def test_announcement_triggers_reconciliation_pull(make_session, server, stream):
    session = await _connected(make_session, server)
    assert session.cache.items == []

    server.rows = [_payload(5)]
    await stream.frames.put(_frame("announcement", {"role": "client", "count": 3}))
    await _eventually(lambda: session.cache.get(5) is not None)

    assert session.cache.unread_count == 1
    await session.aclose()


@pytest.mark.anyio
async def test_listeners_receive_event_payloads(make_session, server, stream):
    session = await _connected(make_session, server)
    alerts: list[dict] = []

    async def on_alert(data: dict) -> None:
        alerts.append(data)

    session.add_listener("promotion_alert", on_alert)
    await stream.frames.put(
        _frame("promotion_alert", {"title": "Oferta", "message": "2x1", "type": "info"})
    )
    await _eventually(lambda: bool(alerts))

    assert alerts == [{"title": "Oferta", "message": "2x1", "type": "info"}]
    await session.aclose()


@pytest.mark.anyio
async def test_push_during_pull_survives_stale_baseline(make_session, server, stream):
    server.rows = [_payload(1)]
    session = await _connected(make_session, server)

    server.gate = asyncio.Event()
    pull = asyncio.create_task(session.refresh())
    await _eventually(lambda: len(server.requests) >= 4)
    await stream.frames.put(_frame("notification", _payload(2, minutes=1)))
    await _eventually(lambda: session.cache.get(2) is not None)
    server.gate.set()

    assert await pull is True
    assert [item.id for item in session.cache.items] == [2, 1]
    assert session.cache.unread_count == 2
    await session.aclose()


@pytest.mark.anyio
async def test_row_written_during_pull_is_counted_once(make_session, server, stream):
    server.rows = [_payload(1)]
    session = await _connected(make_session, server)

    server.gate = asyncio.Event()
    pull = asyncio.create_task(session.refresh())
    await _eventually(lambda: len(server.requests) >= 4)
    server.rows.append(_payload(2, minutes=1))
    await stream.frames.put(_frame("notification", _payload(2, minutes=1)))
    await _eventually(lambda: session.cache.get(2) is not None)
    server.gate.set()

    assert await pull is True
    unread_items = [item for item in session.cache.items if not item.is_read]
    assert session.cache.unread_count == len(unread_items) == 2
    await session.aclose()


@pytest.mark.anyio
async def test_row_committed_between_count_and_list_is_counted(make_session, server):
    server.rows = [_payload(1)]
    session = await _connected(make_session, server)

    server.before_list = lambda: server.rows.append(_payload(2, minutes=1))
    assert await session.refresh() is True

    assert [item.id for item in session.cache.items] == [2, 1]
    assert session.cache.unread_count == 2
    await session.aclose()


@pytest.mark.anyio
async def test_failed_pull_keeps_cache(make_session, server):
    server.rows = [_payload(1)]
    session = await _connected(make_session, server)

    server.fail = True
    assert await session.refresh() is False

    assert [item.id for item in session.cache.items] == [1]
    assert session.cache.unread_count == 1
    assert session.cache.error == "No se pudieron obtener las notificaciones"
    await session.aclose()


@pytest.mark.anyio
async def test_read_state_calls_update_cache(make_session, server):
    server.rows = [_payload(1), _payload(2, minutes=1), _payload(3, minutes=2)]
    session = await _connected(make_session, server)

    await session.mark_read(1)
    assert session.cache.unread_count == 2
    await session.delete(2)
    assert session.cache.get(2) is None
    await session.mark_all_read()
    assert session.cache.unread_count == 0

    paths = [(r.method, r.url.path) for r in server.requests[2:]]
    assert paths == [
        ("PUT", "/api/notifications/1/read"),
        ("DELETE", "/api/notifications/2"),
        ("PUT", "/api/notifications/read-all"),
    ]
    await session.aclose()


@pytest.mark.anyio
async def test_gives_up_after_retry_budget(make_session):
    attempts: list[str] = []

    def refusing_connector(url: str):
        attempts.append(url)
        raise OSError("conexión rechazada")

    session = make_session(connector=refusing_connector)
    await session.login("tok")
    await session.wait_closed()

    assert len(attempts) == 6
    assert session.state is ConnectionState.DISCONNECTED
    await session.aclose()


@pytest.mark.anyio
async def test_closed_channel_reconnects_and_pulls_again(make_session, server, stream, connections):
    session = await _connected(make_session, server)
    server.rows = [_payload(7)]

    await stream.frames.put(None)
    await _eventually(lambda: session.cache.get(7) is not None)

    assert len(connections) == 2
    assert session.state is ConnectionState.CONNECTED
    await session.aclose()


@pytest.mark.anyio
async def test_logout_clears_state(make_session, server):
    server.rows = [_payload(1)]
    session = await _connected(make_session, server)

    await session.logout()

    assert session.token is None
    assert session.state is ConnectionState.DISCONNECTED
    assert session.cache.items == []
    assert session.cache.unread_count == 0
    await session.aclose()


@pytest.mark.anyio
async def test_failing_listener_keeps_the_channel_alive(make_session, server, stream, caplog):
    session = await _connected(make_session, server)

    def broken_listener(data: dict) -> None:
        raise RuntimeError("fallo del manejador")

    session.add_listener("promotion_alert", broken_listener)
    with caplog.at_level(logging.ERROR):
        await stream.frames.put(_frame("promotion_alert", {"title": "Oferta"}))
        await stream.frames.put(_frame("notification", _payload(3)))
        await _eventually(lambda: session.cache.get(3) is not None)

    assert session.state is ConnectionState.CONNECTED
    assert "Error en el manejador del evento promotion_alert" in caplog.text
    await session.aclose()


@pytest.mark.anyio
async def test_open_timeout_counts_as_a_retry(make_session, server, stream):
    attempts: list[str] = []

    def slow_then_ready(url: str) -> FakeStream:
        attempts.append(url)
        if len(attempts) == 1:
            raise asyncio.TimeoutError()
        return stream

    session = make_session(connector=slow_then_ready)
    await session.login("tok")
    await _eventually(lambda: session.state is ConnectionState.CONNECTED)

    assert len(attempts) == 2
    await session.aclose()


@pytest.mark.anyio
async def test_unexpected_error_ends_disconnected(make_session):
    attempts: list[str] = []

    def broken_connector(url: str):
        attempts.append(url)
        raise RuntimeError("error de programación")

    session = make_session(connector=broken_connector)
    await session.login("tok")
    await session.wait_closed()

    assert len(attempts) == 6
    assert session.state is ConnectionState.DISCONNECTED
    await session.aclose()
