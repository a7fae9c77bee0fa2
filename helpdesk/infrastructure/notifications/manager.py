"""Connection management for the notification websocket channel."""

from __future__ import annotations

import asyncio
import copy
import logging
from collections import defaultdict
from typing import Any, DefaultDict, Set

from anyio import from_thread
from fastapi import WebSocket

from helpdesk.domain.entities import Role
from helpdesk.domain.errors import DeliveryError

from .payloads import recipient_group, role_group

logger = logging.getLogger(__name__)


class NotificationChannel:
    """Manage active websocket sessions grouped by recipient and by role.

    Delivery is best effort while connected: nothing is queued for sessions
    that are not in a group at push time.
    """

    def __init__(self) -> None:
        self._groups: DefaultDict[str, Set[WebSocket]] = defaultdict(set)
        self._memberships: dict[WebSocket, set[str]] = {}
        self._pending: set[asyncio.Task[None]] = set()

    async def connect(self, websocket: WebSocket) -> None:
        """Accept the websocket; it receives nothing until :meth:`join`."""

        await websocket.accept()
        self._memberships.setdefault(websocket, set())

    def join(self, websocket: WebSocket, recipient_id: int, role: Role) -> None:
        """Add ``websocket`` to the ``recipient:{id}`` and ``role:{role}`` groups."""

        memberships = self._memberships.setdefault(websocket, set())
        for group in (recipient_group(recipient_id), role_group(role)):
            self._groups[group].add(websocket)
            memberships.add(group)

    def disconnect(self, websocket: WebSocket) -> None:
        """Drop ``websocket`` from every group it belonged to."""

        for group in self._memberships.pop(websocket, set()):
            sessions = self._groups.get(group)
            if sessions is None:
                continue
            sessions.discard(websocket)
            if not sessions:
                self._groups.pop(group, None)

    def group_size(self, group: str) -> int:
        return len(self._groups.get(group, ()))

    async def send_to_group(self, group: str, message: dict[str, Any]) -> None:
        """Send ``message`` to every session currently in ``group``."""

        for websocket in list(self._groups.get(group, ())):
            try:
                await websocket.send_json(message)
            except Exception as exc:
                logger.warning(
                    "No se pudo entregar el evento %s al grupo %s: %s",
                    message.get("type"),
                    group,
                    exc,
                )
                self.disconnect(websocket)

    def push(self, group: str, event_name: str, payload: Any) -> None:
        """Fire-and-forget ``event_name`` to ``group``.

        Works from the event loop (a task is scheduled) and from AnyIO worker
        threads such as the ones running sync FastAPI routes. Raises
        :class:`DeliveryError` when neither context is available.
        """

        if not self._groups.get(group):
            return

        message = {"type": event_name, "data": copy.deepcopy(payload)}
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            try:
                from_thread.run(self.send_to_group, group, message)
            except RuntimeError as exc:
                raise DeliveryError(
                    f"No hay un bucle de eventos disponible para el grupo {group}"
                ) from exc
        else:
            task = loop.create_task(self.send_to_group(group, message))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)


__all__ = ["NotificationChannel"]
