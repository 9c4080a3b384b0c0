"""
theatre.services.gateway
~~~~~~~~~~~~~~~~~~~~~~~~

会话网关 —— 将每条连接绑定到唯一的 (参与者, 房间)，分发入站事件并扇出状态变更。

处理流程:
  1. 校验事件信封与数据（Pydantic），非法或未知事件记录日志后忽略；
  2. 持有注册表锁，同步执行房间操作，收集出站消息（不在锁内做任何网络 I/O）；
  3. 释放锁后统一投递出站消息。

广播范围:
  - ``room-joined`` / ``seat-request-denied`` 只发给发起者；
  - ``seat-assigned`` / ``seat-released`` / ``request-host`` 引起的 ``host-changed`` 发给全房间；
  - 其余通知只发给同房间的其他连接。
"""
from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ValidationError

from theatre.core.logging import get_logger
from theatre.schemas import events as ev
from theatre.schemas.events import (
    AvatarChangedPayload,
    ChatData,
    ChatMessagePayload,
    CountData,
    Envelope,
    HostData,
    JoinRoomPayload,
    ParticipantRef,
    PositionData,
    PositionUpdatePayload,
    RoomEvent,
    SeatData,
    SeatDeniedData,
    SeatRequestPayload,
    SignalPayload,
    VoiceStatusData,
    VoiceStatusPayload,
    make_event,
)
from theatre.schemas.rooms import RoomJoinedData
from theatre.services.connection import Connection, ConnectionHub, Outgoing
from theatre.services.registry import RoomRegistry
from theatre.services.room import Room
from theatre.services.seat_map import SeatAssignmentError
from theatre.services.signaling import SignalingRelay

logger = get_logger(__name__)

Handler = Callable[[Connection, Any], list[Outgoing]]


class SessionGateway:
    """会话网关。

    Attributes:
        registry: 房间注册表（与清理任务共享同一把锁）。
        hub: 在线连接与房间订阅关系。
        relay: 语音信令转发器。
    """

    def __init__(
        self,
        registry: RoomRegistry,
        hub: ConnectionHub,
        relay: SignalingRelay | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.registry = registry
        self.hub = hub
        self.relay = relay or SignalingRelay(hub)
        self._clock = clock
        self._handlers: dict[str, tuple[type[BaseModel], Handler]] = {
            ev.JOIN_ROOM: (JoinRoomPayload, self._on_join_room),
            ev.LEAVE_ROOM: (RoomEvent, self._on_leave_room),
            ev.POSITION_UPDATE: (PositionUpdatePayload, self._on_position_update),
            ev.REQUEST_SEAT: (SeatRequestPayload, self._on_request_seat),
            ev.LEAVE_SEAT: (RoomEvent, self._on_leave_seat),
            ev.REQUEST_HOST: (RoomEvent, self._on_request_host),
            ev.START_SCREEN_SHARE: (RoomEvent, self._on_start_screen_share),
            ev.STOP_SCREEN_SHARE: (RoomEvent, self._on_stop_screen_share),
            ev.AVATAR_CHANGED: (AvatarChangedPayload, self._on_avatar_changed),
            ev.CHAT_MESSAGE: (ChatMessagePayload, self._on_chat_message),
            ev.VOICE_STATUS: (VoiceStatusPayload, self._on_voice_status),
            ev.VOICE_OFFER: (SignalPayload, self._on_signal(ev.VOICE_OFFER)),
            ev.VOICE_ANSWER: (SignalPayload, self._on_signal(ev.VOICE_ANSWER)),
            ev.VOICE_ICE_CANDIDATE: (SignalPayload, self._on_signal(ev.VOICE_ICE_CANDIDATE)),
        }

    @property
    def supported_events(self) -> list[str]:
        return list(self._handlers)

    # ── 连接生命周期 ──────────────────────────────────────────────────

    def connect(self, connection: Connection) -> None:
        self.hub.add(connection)
        logger.info("连接已建立 | conn=%s | 在线: %d", connection.id, self.hub.online_count)

    async def disconnect(self, connection: Connection) -> None:
        """连接断开：对其最后绑定的 (参与者, 房间) 执行隐式离开。"""
        async with self.registry.lock:
            outbox = self._leave_current(connection)
            self.hub.remove(connection)
        await self.hub.deliver(outbox)
        logger.info("连接已断开 | conn=%s | 在线: %d", connection.id, self.hub.online_count)

    async def handle(self, connection: Connection, raw: Any) -> None:
        """处理一帧入站消息。"""
        try:
            envelope = Envelope.model_validate(raw)
        except ValidationError as e:
            logger.warning("非法消息信封，已忽略 | errors=%d", e.error_count())
            return

        entry = self._handlers.get(envelope.event)
        if entry is None:
            logger.warning("未知事件，已忽略 | event=%s", envelope.event)
            return
        model, handler = entry

        try:
            payload = model.model_validate(envelope.data)
        except ValidationError as e:
            logger.warning(
                "事件数据校验失败，已忽略 | event=%s | errors=%d",
                envelope.event, e.error_count(),
            )
            return

        async with self.registry.lock:
            outbox = handler(connection, payload)
        await self.hub.deliver(outbox)

    # ── 扇出辅助 ──────────────────────────────────────────────────────

    def _to_room(
        self, room_id: str, message: dict, exclude: Connection | None = None,
    ) -> list[Outgoing]:
        return [(conn, message) for conn in self.hub.subscribers(room_id, exclude=exclude)]

    def _acting_room(self, connection: Connection, room_id: str) -> Room | None:
        """返回发起者所在的目标房间；连接未绑定参与者或房间不存在时返回 ``None``。"""
        if connection.participant_id is None:
            return None
        return self.registry.get(room_id)

    def _member_room(self, connection: Connection, room_id: str) -> Room | None:
        room = self._acting_room(connection, room_id)
        if room is None or not room.is_member(connection.participant_id):
            return None
        return room

    # ── 加入 / 离开 ───────────────────────────────────────────────────

    def _leave(self, room_id: str, participant_id: str) -> list[Outgoing]:
        """参与者离开房间，通知剩余成员；房间变空则立即删除。"""
        room = self.registry.get(room_id)
        if room is None:
            return []
        outcome = room.leave(participant_id)
        if outcome is None:
            return []

        logger.info(
            "参与者离开 | room=%s | participant=%s | 剩余: %d",
            room_id, participant_id, outcome.remaining,
        )
        outbox = self._to_room(
            room_id, make_event(ev.PARTICIPANT_LEFT, ParticipantRef(participant_id=participant_id)),
        )
        outbox += self._to_room(
            room_id, make_event(ev.PARTICIPANT_COUNT_UPDATE, CountData(count=outcome.remaining)),
        )
        if outcome.screen_share_stopped:
            outbox += self._to_room(
                room_id, make_event(ev.SCREEN_SHARE_STOPPED, HostData(host_id=participant_id)),
            )
        if outcome.host_changed and outcome.host_id is not None:
            logger.info("房主移交 | room=%s | host=%s", room_id, outcome.host_id)
            outbox += self._to_room(
                room_id, make_event(ev.HOST_CHANGED, HostData(host_id=outcome.host_id)),
            )
        self.registry.discard_if_empty(room_id)
        return outbox

    def _leave_current(self, connection: Connection) -> list[Outgoing]:
        """解除连接当前绑定，并让其参与者离开对应房间。"""
        if not connection.is_bound:
            return []
        room_id, participant_id = connection.room_id, connection.participant_id
        self.hub.unbind(connection)
        return self._leave(room_id, participant_id)

    def _evict_elsewhere(self, participant_id: str, keep_room_id: str) -> list[Outgoing]:
        """将参与者从目标房间以外的所有房间移除，保证每个参与者只在一个房间中。"""
        outbox: list[Outgoing] = []
        for room in self.registry.rooms_containing(participant_id):
            if room.room_id == keep_room_id:
                continue
            stale = self.hub.find(room.room_id, participant_id)
            if stale is not None:
                self.hub.unbind(stale)
            outbox += self._leave(room.room_id, participant_id)
        return outbox

    def _on_join_room(self, connection: Connection, data: JoinRoomPayload) -> list[Outgoing]:
        room_id = data.room_id
        info = data.participant
        outbox: list[Outgoing] = []

        # 连接此前绑定在其他房间（或以其他身份绑定）：先隐式离开
        if connection.is_bound and (
            connection.room_id != room_id or connection.participant_id != info.id
        ):
            outbox += self._leave_current(connection)
        outbox += self._evict_elsewhere(info.id, keep_room_id=room_id)

        room = self.registry.get_or_create(room_id)

        # 重连接管：同一参与者的旧连接不再代表该参与者，其后续断开不会触发离开
        stale = self.hub.find(room_id, info.id)
        if stale is not None and stale is not connection:
            self.hub.unbind(stale)
            logger.info(
                "参与者重连，旧连接已解绑 | room=%s | participant=%s | old_conn=%s",
                room_id, info.id, stale.id,
            )

        outcome = room.join(info.id, info.name, info.color, info.position)
        self.hub.bind(connection, room_id, info.id)
        logger.info(
            "参与者加入 | room=%s | participant=%s | host=%s | rejoin=%s | 在线: %d",
            room_id, info.id, outcome.is_host, outcome.rejoined, room.participant_count,
        )

        joined = RoomJoinedData.model_validate(
            {**room.snapshot().model_dump(), "is_host": outcome.is_host},
        )
        outbox.append((connection, make_event(ev.ROOM_JOINED, joined)))
        outbox += self._to_room(
            room_id,
            make_event(ev.PARTICIPANT_JOINED, room.participant_view(info.id)),
            exclude=connection,
        )
        outbox += self._to_room(
            room_id,
            make_event(ev.PARTICIPANT_COUNT_UPDATE, CountData(count=room.participant_count)),
            exclude=connection,
        )
        return outbox

    def _on_leave_room(self, connection: Connection, data: RoomEvent) -> list[Outgoing]:
        if not connection.is_bound_to(data.room_id):
            return []
        return self._leave_current(connection)

    # ── 位置 ──────────────────────────────────────────────────────────

    def _on_position_update(
        self, connection: Connection, data: PositionUpdatePayload,
    ) -> list[Outgoing]:
        room = self._acting_room(connection, data.room_id)
        if room is None or not room.update_position(connection.participant_id, data.position):
            return []
        message = make_event(
            ev.POSITION_UPDATE,
            PositionData(participant_id=connection.participant_id, position=data.position),
        )
        return self._to_room(data.room_id, message, exclude=connection)

    # ── 座位 ──────────────────────────────────────────────────────────

    def _on_request_seat(self, connection: Connection, data: SeatRequestPayload) -> list[Outgoing]:
        room = self._acting_room(connection, data.room_id)
        if room is None:
            return []
        participant_id = connection.participant_id
        try:
            seat_index = room.assign_seat(participant_id, data.seat_index)
        except SeatAssignmentError as e:
            logger.info(
                "座位申请被拒绝 | room=%s | participant=%s | seat=%s | reason=%s",
                data.room_id, participant_id, data.seat_index, e.reason,
            )
            denied = SeatDeniedData(seat_index=data.seat_index, reason=e.reason)
            return [(connection, make_event(ev.SEAT_REQUEST_DENIED, denied))]

        logger.info(
            "座位已分配 | room=%s | participant=%s | seat=%d",
            data.room_id, participant_id, seat_index,
        )
        message = make_event(
            ev.SEAT_ASSIGNED, SeatData(participant_id=participant_id, seat_index=seat_index),
        )
        return self._to_room(data.room_id, message)

    def _on_leave_seat(self, connection: Connection, data: RoomEvent) -> list[Outgoing]:
        room = self._acting_room(connection, data.room_id)
        if room is None:
            return []
        released = room.release_seat(connection.participant_id)
        if released is None:
            return []
        message = make_event(
            ev.SEAT_RELEASED,
            SeatData(participant_id=connection.participant_id, seat_index=released),
        )
        return self._to_room(data.room_id, message)

    # ── 房主 / 屏幕共享 ───────────────────────────────────────────────

    def _on_request_host(self, connection: Connection, data: RoomEvent) -> list[Outgoing]:
        room = self._acting_room(connection, data.room_id)
        if room is None or not room.request_host(connection.participant_id):
            return []
        logger.info("房主变更 | room=%s | host=%s", data.room_id, room.host_id)
        return self._to_room(data.room_id, make_event(ev.HOST_CHANGED, HostData(host_id=room.host_id)))

    def _screen_share(self, connection: Connection, room_id: str, active: bool) -> list[Outgoing]:
        room = self._acting_room(connection, room_id)
        if room is None or not room.set_screen_share(connection.participant_id, active):
            return []
        logger.info("屏幕共享%s | room=%s", "开始" if active else "结束", room_id)
        event = ev.SCREEN_SHARE_STARTED if active else ev.SCREEN_SHARE_STOPPED
        return self._to_room(
            room_id, make_event(event, HostData(host_id=connection.participant_id)), exclude=connection,
        )

    def _on_start_screen_share(self, connection: Connection, data: RoomEvent) -> list[Outgoing]:
        return self._screen_share(connection, data.room_id, True)

    def _on_stop_screen_share(self, connection: Connection, data: RoomEvent) -> list[Outgoing]:
        return self._screen_share(connection, data.room_id, False)

    # ── 纯转发事件 ────────────────────────────────────────────────────

    def _on_avatar_changed(
        self, connection: Connection, data: AvatarChangedPayload,
    ) -> list[Outgoing]:
        room = self._member_room(connection, data.room_id)
        # 只能替自己广播头像变更
        if room is None or data.participant_id != connection.participant_id:
            return []
        message = make_event(ev.AVATAR_CHANGED, ParticipantRef(participant_id=data.participant_id))
        return self._to_room(data.room_id, message, exclude=connection)

    def _on_chat_message(self, connection: Connection, data: ChatMessagePayload) -> list[Outgoing]:
        room = self._member_room(connection, data.room_id)
        if room is None:
            return []
        message = make_event(
            ev.CHAT_MESSAGE,
            ChatData(
                participant_id=connection.participant_id,
                message=data.message,
                display_name=data.display_name,
                timestamp=int(self._clock() * 1000),
            ),
        )
        logger.debug("聊天消息 | room=%s | from=%s", data.room_id, connection.participant_id)
        return self._to_room(data.room_id, message, exclude=connection)

    def _on_voice_status(self, connection: Connection, data: VoiceStatusPayload) -> list[Outgoing]:
        room = self._member_room(connection, data.room_id)
        if room is None:
            return []
        message = make_event(
            ev.VOICE_STATUS,
            VoiceStatusData(participant_id=connection.participant_id, enabled=data.enabled),
        )
        return self._to_room(data.room_id, message, exclude=connection)

    def _on_signal(self, event: str) -> Handler:
        def handler(connection: Connection, data: SignalPayload) -> list[Outgoing]:
            if self._member_room(connection, data.room_id) is None:
                return []
            routed = self.relay.route(
                event,
                room_id=data.room_id,
                sender_id=connection.participant_id,
                target_participant_id=data.target_participant_id,
                payload=data.payload,
            )
            return [routed] if routed is not None else []

        return handler
