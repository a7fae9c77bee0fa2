"""Client session keeping a :class:`NotificationCache` in sync with the server."""

from __future__ import annotations

import asyncio
import json
import logging
from enum import Enum
from typing import Any, AsyncContextManager, AsyncIterator, Awaitable, Callable

import httpx
import websockets
from pydantic import ValidationError as SchemaValidationError
from websockets.exceptions import WebSocketException

from helpdesk.interfaces.api.schemas import NotificationRead

from .cache import NotificationCache

logger = logging.getLogger(__name__)

NOTIFICATIONS_PATH = "/api/notifications"
CHANNEL_PATH = "/api/notifications/ws"
DEFAULT_MAX_RECONNECT_ATTEMPTS = 5
DEFAULT_RECONNECT_DELAY = 2.0

Connector = Callable[[str], AsyncContextManager[AsyncIterator[str | bytes]]]
EventListener = Callable[[dict[str, Any]], Awaitable[None] | None]


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


def websocket_connector(url: str) -> AsyncContextManager[AsyncIterator[str | bytes]]:
    """Open the realtime channel with the ``websockets`` client."""

    return websockets.connect(url)


class NotificationClientSession:
    """Drive the Disconnected → Connecting → Connected lifecycle for one user.

    Every successful handshake is followed by a full pull that heals events
    missed while disconnected. Transport failures trigger up to
    ``max_reconnect_attempts`` retries spaced by a fixed ``reconnect_delay``;
    after that the session stays disconnected until :meth:`reconnect`.
    """

    def __init__(
        self,
        base_url: str,
        *,
        http_client: httpx.AsyncClient | None = None,
        connector: Connector | None = None,
        max_reconnect_attempts: int = DEFAULT_MAX_RECONNECT_ATTEMPTS,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
    ) -> None:
        self._base_url = httpx.URL(base_url)
        self._http = http_client or httpx.AsyncClient(base_url=base_url, timeout=10.0)
        self._connector = connector or websocket_connector
        self._max_reconnect_attempts = max_reconnect_attempts
        self._reconnect_delay = reconnect_delay
        self._token: str | None = None
        self._task: asyncio.Task[None] | None = None
        self._listeners: dict[str, list[EventListener]] = {}
        self._pulls_in_flight = 0
        self._pushed_during_pull: list[NotificationRead] = []
        self.cache = NotificationCache()
        self.state = ConnectionState.DISCONNECTED

    @property
    def token(self) -> str | None:
        return self._token

    def add_listener(self, event_name: str, listener: EventListener) -> None:
        """Call ``listener`` with the payload of every ``event_name`` frame."""

        self._listeners.setdefault(event_name, []).append(listener)

    async def login(self, token: str) -> None:
        """Store ``token`` and start connecting to the realtime channel."""

        await self._stop()
        self._token = token
        self._start()

    async def logout(self) -> None:
        await self._stop()
        self._token = None
        self.cache.clear()
        self.state = ConnectionState.DISCONNECTED

    async def reconnect(self) -> None:
        """Restart the connection loop after the retry budget was exhausted."""

        if self._token is None:
            return
        await self._stop()
        self._start()

    async def wait_closed(self) -> None:
        """Wait until the connection loop gives up or is cancelled."""

        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    async def aclose(self) -> None:
        await self.logout()
        await self._http.aclose()

    async def refresh(self) -> bool:
        """Pull the list and unread counter; return ``False`` when the pull failed."""

        if self._token is None:
            self.cache.clear()
            return False

        self._pulls_in_flight += 1
        try:
            # Count first: rows committed after it are either in the list or replayed.
            counter = await self._http.get(
                f"{NOTIFICATIONS_PATH}/unread-count", headers=self._headers()
            )
            counter.raise_for_status()
            listing = await self._http.get(NOTIFICATIONS_PATH, headers=self._headers())
            listing.raise_for_status()
            items = [NotificationRead.model_validate(item) for item in listing.json()["data"]]
            unread = int(counter.json()["count"])
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as exc:
            logger.warning("No se pudieron obtener las notificaciones: %s", exc)
            self.cache.fail("No se pudieron obtener las notificaciones")
            return False
        finally:
            self._pulls_in_flight -= 1

        self.cache.replace(items, unread)
        if self._pulls_in_flight == 0:
            replay, self._pushed_during_pull = self._pushed_during_pull, []
            for notification in replay:
                self.cache.apply_push(notification)
        return True

    async def mark_read(self, notification_id: int) -> None:
        response = await self._http.put(
            f"{NOTIFICATIONS_PATH}/{notification_id}/read", headers=self._headers()
        )
        response.raise_for_status()
        self.cache.mark_read(notification_id)

    async def mark_all_read(self) -> None:
        response = await self._http.put(
            f"{NOTIFICATIONS_PATH}/read-all", headers=self._headers()
        )
        response.raise_for_status()
        self.cache.mark_all_read()

    async def delete(self, notification_id: int) -> None:
        response = await self._http.delete(
            f"{NOTIFICATIONS_PATH}/{notification_id}", headers=self._headers()
        )
        response.raise_for_status()
        self.cache.remove(notification_id)

    def channel_url(self) -> str:
        scheme = "wss" if self._base_url.scheme == "https" else "ws"
        url = self._base_url.copy_with(scheme=scheme, path=CHANNEL_PATH)
        return str(url.copy_set_param("token", self._token or ""))

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._token}"} if self._token else {}

    def _start(self) -> None:
        self.state = ConnectionState.CONNECTING
        self._task = asyncio.create_task(self._run())

    async def _stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        failures = 0
        try:
            while True:
                self.state = ConnectionState.CONNECTING
                try:
                    async with self._connector(self.channel_url()) as stream:
                        self.state = ConnectionState.CONNECTED
                        failures = 0
                        await self.refresh()
                        async for frame in stream:
                            await self._handle_frame(frame)
                    logger.info("El canal de notificaciones se cerró")
                except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
                    logger.warning("Fallo en el canal de notificaciones: %s", exc)
                except Exception:
                    logger.exception("Error inesperado en el canal de notificaciones")

                self.state = ConnectionState.DISCONNECTED
                failures += 1
                if failures > self._max_reconnect_attempts:
                    logger.warning(
                        "Se agotaron %s intentos de reconexión; se requiere reconexión manual",
                        self._max_reconnect_attempts,
                    )
                    return
                await asyncio.sleep(self._reconnect_delay)
        finally:
            self.state = ConnectionState.DISCONNECTED

    async def _handle_frame(self, frame: str | bytes) -> None:
        try:
            message = json.loads(frame)
        except ValueError:
            logger.warning("Mensaje de notificación inválido descartado")
            return
        if not isinstance(message, dict):
            return

        event_name = message.get("type")
        data = message.get("data")
        if event_name == "notification":
            try:
                notification = NotificationRead.model_validate(data)
            except SchemaValidationError as exc:
                logger.warning("Notificación con formato inválido descartada: %s", exc)
                return
            self.cache.apply_push(notification)
            if self._pulls_in_flight:
                self._pushed_during_pull.append(notification)
        elif event_name == "announcement":
            await self.refresh()

        for listener in self._listeners.get(event_name, []):
            try:
                result = listener(data if isinstance(data, dict) else {})
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.exception("Error en el manejador del evento %s", event_name)


__all__ = [
    "ConnectionState",
    "NotificationClientSession",
    "websocket_connector",
]
