"""
theatre.services.signaling
~~~~~~~~~~~~~~~~~~~~~~~~~~

语音信令转发 —— 在同一房间的两个参与者之间转发 offer / answer / ICE candidate。

转发是尽力而为的：找不到目标连接时直接丢弃，不重试、不排队，
上层的协商协议会自行超时重试。本模块不持有任何状态。
"""
from __future__ import annotations

from typing import Any

from theatre.core.logging import get_logger
from theatre.schemas.events import SIGNALING_EVENTS, SignalData, make_event
from theatre.services.connection import ConnectionLookup, Outgoing

logger = get_logger(__name__)


class SignalingRelay:
    """信令转发器。

    Attributes:
        lookup: 按 (房间, 参与者) 查找在线连接的实现。
    """

    def __init__(self, lookup: ConnectionLookup) -> None:
        self.lookup = lookup

    def route(
        self,
        event: str,
        room_id: str,
        sender_id: str,
        target_participant_id: str,
        payload: Any,
    ) -> Outgoing | None:
        """解析目标连接并组装转发消息。

        Returns:
            ``(目标连接, 消息)``；目标不在线时返回 ``None``。
        """
        if event not in SIGNALING_EVENTS:
            raise ValueError(f"不支持的信令事件: {event}")

        target = self.lookup.find(room_id, target_participant_id)
        if target is None:
            logger.debug(
                "信令目标不在线，丢弃 | event=%s | room=%s | from=%s | to=%s",
                event, room_id, sender_id, target_participant_id,
            )
            return None

        message = make_event(
            event, SignalData(from_participant_id=sender_id, payload=payload),
        )
        return target, message
