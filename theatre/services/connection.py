"""
theatre.services.connection
~~~~~~~~~~~~~~~~~~~~~~~~~~~

WebSocket 连接管理 —— 维护在线连接、连接与 (房间, 参与者) 的绑定，以及消息投递。

``ConnectionHub`` 同时实现 ``ConnectionLookup`` 协议，供信令转发按
(房间, 参与者) 查找目标连接。当前实现是对房间订阅者的线性扫描，
房间规模为几十人时足够；需要时可替换为索引实现而不影响转发逻辑。
"""
from __future__ import annotations

import asyncio
import uuid
from collections import defaultdict
from typing import Protocol

from fastapi import WebSocket

from theatre.core.logging import get_logger

logger = get_logger(__name__)


class Connection:
    """一条客户端连接。

    同一时刻最多绑定一个 (房间, 参与者)。

    Attributes:
        id: 连接 ID，用于日志追踪。
        websocket: 底层 WebSocket。
        room_id: 当前绑定的房间。
        participant_id: 当前绑定的参与者。
    """

    def __init__(self, websocket: WebSocket, connection_id: str | None = None) -> None:
        self.id = connection_id or f"ws-{uuid.uuid4().hex[:8]}"
        self.websocket = websocket
        self.room_id: str | None = None
        self.participant_id: str | None = None

    @property
    def is_bound(self) -> bool:
        return self.room_id is not None and self.participant_id is not None

    def is_bound_to(self, room_id: str) -> bool:
        return self.is_bound and self.room_id == room_id

    async def send(self, message: dict) -> None:
        await self.websocket.send_json(message)

    def __repr__(self) -> str:
        return f"Connection(id={self.id!r}, room={self.room_id!r}, participant={self.participant_id!r})"


Outgoing = tuple[Connection, dict]


class ConnectionLookup(Protocol):
    """按 (房间, 参与者) 查找在线连接。"""

    def find(self, room_id: str, participant_id: str) -> Connection | None: ...


class ConnectionHub:
    """在线连接集合与房间订阅关系。

    Attributes:
        connections: 所有在线连接。
    """

    def __init__(self) -> None:
        self.connections: set[Connection] = set()
        self._subscribers: dict[str, list[Connection]] = defaultdict(list)

    @property
    def online_count(self) -> int:
        return len(self.connections)

    def add(self, connection: Connection) -> None:
        self.connections.add(connection)

    def remove(self, connection: Connection) -> None:
        """从在线集合移除连接（同时取消房间订阅）。"""
        self.unbind(connection)
        self.connections.discard(connection)

    # ── 绑定 ──────────────────────────────────────────────────────────

    def bind(self, connection: Connection, room_id: str, participant_id: str) -> None:
        """将连接绑定到 (房间, 参与者)，并订阅该房间的广播。"""
        if connection.room_id != room_id:
            self.unbind(connection)
            self._subscribers[room_id].append(connection)
        connection.room_id = room_id
        connection.participant_id = participant_id

    def unbind(self, connection: Connection) -> None:
        """解除连接的绑定并取消订阅（幂等）。"""
        room_id = connection.room_id
        if room_id is not None:
            subscribers = self._subscribers.get(room_id)
            if subscribers is not None:
                if connection in subscribers:
                    subscribers.remove(connection)
                if not subscribers:
                    del self._subscribers[room_id]
        connection.room_id = None
        connection.participant_id = None

    # ── 查询 ──────────────────────────────────────────────────────────

    def subscribers(self, room_id: str, exclude: Connection | None = None) -> list[Connection]:
        """返回订阅了某房间的连接（可排除发起者自身）。"""
        return [conn for conn in self._subscribers.get(room_id, ()) if conn is not exclude]

    def find(self, room_id: str, participant_id: str) -> Connection | None:
        for conn in self._subscribers.get(room_id, ()):
            if conn.participant_id == participant_id:
                return conn
        return None

    # ── 投递 ──────────────────────────────────────────────────────────

    async def deliver(self, outbox: list[Outgoing]) -> None:
        """投递一批出站消息。

        同一连接的消息按顺序发送，不同连接之间并发发送。
        单个连接发送失败只记录日志，断开由该连接自己的接收循环处理。
        """
        if not outbox:
            return
        per_connection: dict[Connection, list[dict]] = {}
        for conn, message in outbox:
            per_connection.setdefault(conn, []).append(message)

        conns = list(per_connection)
        results = await asyncio.gather(
            *(self._send_all(conn, per_connection[conn]) for conn in conns),
            return_exceptions=True,
        )
        for conn, result in zip(conns, results):
            if isinstance(result, Exception):
                logger.warning("消息投递失败 | conn=%s | error=%s", conn.id, result)

    @staticmethod
    async def _send_all(connection: Connection, messages: list[dict]) -> None:
        for message in messages:
            await connection.send(message)
