"""
tests.conftest
~~~~~~~~~~~~~~

共享 pytest fixtures —— 用内存中的假 WebSocket 记录发出的帧，
使网关与信令测试无需真实网络连接。
"""
from __future__ import annotations

import os
from collections.abc import Callable
from typing import Any

import pytest

# ── 在所有测试导入前设置环境变量 ─────────────────────────────────────
os.environ.setdefault("ENVIRONMENT", "test")  # 激活 .env.test 配置

from theatre.services.connection import Connection, ConnectionHub  # noqa: E402
from theatre.services.gateway import SessionGateway  # noqa: E402
from theatre.services.registry import RoomRegistry  # noqa: E402

FIXED_NOW: float = 1_700_000_000.123


class FakeWebSocket:
    """记录 ``send_json`` 调用的假 WebSocket。"""

    def __init__(self) -> None:
        self.sent: list[dict] = []

    async def send_json(self, data: Any) -> None:
        self.sent.append(data)

    def events(self) -> list[str]:
        return [frame["event"] for frame in self.sent]

    def data_of(self, event: str) -> list[dict]:
        return [frame["data"] for frame in self.sent if frame["event"] == event]

    def clear(self) -> None:
        self.sent.clear()


class BrokenWebSocket(FakeWebSocket):
    """发送时总是失败的 WebSocket（模拟已断开的客户端）。"""

    async def send_json(self, data: Any) -> None:
        raise RuntimeError("socket closed")


def frame(event: str, **data: Any) -> dict:
    """组装一条入站事件帧。"""
    return {"event": event, "data": data}


def participant(pid: str, name: str | None = None) -> dict:
    return {
        "id": pid,
        "name": name or pid.upper(),
        "color": "#00ffff",
        "position": {"x": 0.0, "y": 1.6, "z": 5.0},
    }


@pytest.fixture()
def registry() -> RoomRegistry:
    return RoomRegistry(seat_capacity=96)


@pytest.fixture()
def hub() -> ConnectionHub:
    return ConnectionHub()


@pytest.fixture()
def gateway(registry: RoomRegistry, hub: ConnectionHub) -> SessionGateway:
    return SessionGateway(registry, hub, clock=lambda: FIXED_NOW)


@pytest.fixture()
def make_conn(gateway: SessionGateway) -> Callable[[str], Connection]:
    """创建并注册一条假连接，``conn.websocket`` 为 ``FakeWebSocket``。"""

    def _make(name: str) -> Connection:
        conn = Connection(FakeWebSocket(), connection_id=f"ws-{name}")
        gateway.connect(conn)
        return conn

    return _make
