"""
theatre.schemas.events
~~~~~~~~~~~~~~~~~~~~~~

WebSocket 事件协议 —— 入站/出站事件名与对应的 Pydantic 数据模型。

每一帧都是 JSON 文本，外层信封为::

    {"event": "<事件名>", "data": {...}}
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, StrictInt

from theatre.core.config import settings
from theatre.schemas.rooms import CamelModel, Position

# ── 入站事件（客户端 → 服务端）────────────────────────────────────────
JOIN_ROOM = "join-room"
LEAVE_ROOM = "leave-room"
POSITION_UPDATE = "position-update"
REQUEST_SEAT = "request-seat"
LEAVE_SEAT = "leave-seat"
REQUEST_HOST = "request-host"
START_SCREEN_SHARE = "start-screen-share"
STOP_SCREEN_SHARE = "stop-screen-share"
AVATAR_CHANGED = "avatar-changed"
CHAT_MESSAGE = "chat-message"
VOICE_STATUS = "voice-status"
VOICE_OFFER = "voice-offer"
VOICE_ANSWER = "voice-answer"
VOICE_ICE_CANDIDATE = "voice-ice-candidate"

SIGNALING_EVENTS: frozenset[str] = frozenset({VOICE_OFFER, VOICE_ANSWER, VOICE_ICE_CANDIDATE})

# ── 出站事件（服务端 → 客户端）────────────────────────────────────────
# position-update / avatar-changed / chat-message / voice-* 与入站同名
ROOM_JOINED = "room-joined"
PARTICIPANT_JOINED = "participant-joined"
PARTICIPANT_LEFT = "participant-left"
PARTICIPANT_COUNT_UPDATE = "participant-count-update"
SEAT_ASSIGNED = "seat-assigned"
SEAT_RELEASED = "seat-released"
SEAT_REQUEST_DENIED = "seat-request-denied"
HOST_CHANGED = "host-changed"
SCREEN_SHARE_STARTED = "screen-share-started"
SCREEN_SHARE_STOPPED = "screen-share-stopped"


class Envelope(BaseModel):
    """事件信封。"""

    event: str = Field(..., min_length=1, max_length=64)
    data: dict[str, Any] = Field(default_factory=dict)


# ── 入站数据 ──────────────────────────────────────────────────────────

class RoomEvent(CamelModel):
    """所有入站事件都携带目标房间 ID。"""

    room_id: str = Field(..., min_length=1, max_length=settings.ROOM_ID_MAX_LENGTH)


class ParticipantPayload(CamelModel):
    id: str = Field(..., min_length=1, max_length=128)
    name: str = Field(default="", max_length=64)
    color: str = Field(default="", max_length=32)
    position: Position = Field(default_factory=Position)


class JoinRoomPayload(RoomEvent):
    participant: ParticipantPayload


class PositionUpdatePayload(RoomEvent):
    position: Position


class SeatRequestPayload(RoomEvent):
    seat_index: StrictInt


class AvatarChangedPayload(RoomEvent):
    participant_id: str


class ChatMessagePayload(RoomEvent):
    message: str = Field(..., min_length=1, max_length=settings.CHAT_MESSAGE_MAX_LENGTH)
    display_name: str = Field(default="", max_length=64)


class VoiceStatusPayload(RoomEvent):
    enabled: bool


class SignalPayload(RoomEvent):
    """voice-offer / voice-answer / voice-ice-candidate 共用，``payload`` 原样转发。"""

    target_participant_id: str = Field(..., min_length=1)
    payload: Any = None


# ── 出站数据 ──────────────────────────────────────────────────────────

class ParticipantRef(CamelModel):
    participant_id: str


class CountData(CamelModel):
    count: int


class PositionData(CamelModel):
    participant_id: str
    position: Position


class SeatData(CamelModel):
    participant_id: str
    seat_index: int


class SeatDeniedData(CamelModel):
    seat_index: Any
    reason: str


class HostData(CamelModel):
    host_id: str | None


class ChatData(CamelModel):
    participant_id: str
    message: str
    display_name: str
    timestamp: int = Field(..., description="服务端时间戳（毫秒）")


class VoiceStatusData(CamelModel):
    participant_id: str
    enabled: bool


class SignalData(CamelModel):
    from_participant_id: str
    payload: Any = None


def make_event(event: str, data: CamelModel | None = None) -> dict:
    """组装一条出站事件帧。"""
    return {"event": event, "data": data.to_wire() if data is not None else {}}
