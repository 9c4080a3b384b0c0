"""
theatre.services.room
~~~~~~~~~~~~~~~~~~~~~

房间领域模型 —— 封装一个共享房间的参与者、座位、房主与屏幕共享状态。

房间的所有方法都是同步的，不包含任何 ``await``；调用方（``SessionGateway``）
在注册表锁内调用它们，因此同一房间上的操作不会交错执行。

不变量:
  - 房间非空时 ``host_id`` 一定是当前参与者之一；房间为空时 ``host_id`` 为 ``None``。
  - 参与者按加入顺序保存，房主离开时由剩余参与者中最早加入的一位接任。
"""
from __future__ import annotations

from theatre.schemas.rooms import (
    ParticipantView,
    Position,
    RoomInfoData,
    RoomSnapshot,
    SeatView,
)
from theatre.services.seat_map import ParticipantNotFound, SeatMap


class Participant:
    """房间内的一个参与者。

    Attributes:
        id: 参与者 ID（客户端首次加载时生成，重连时复用）。
        name: 显示名称。
        color: 头像颜色。
        position: 当前位置，仅供参考。
    """

    def __init__(
        self,
        participant_id: str,
        name: str = "",
        color: str = "",
        position: Position | None = None,
    ) -> None:
        self.id = participant_id
        self.name = name
        self.color = color
        self.position = position or Position()

    def refresh(self, name: str, color: str, position: Position | None) -> None:
        """重新加入时原地刷新显示属性。"""
        self.name = name
        self.color = color
        if position is not None:
            self.position = position


class JoinOutcome:
    """``Room.join`` 的结果。"""

    def __init__(self, participant: Participant, is_host: bool, rejoined: bool) -> None:
        self.participant = participant
        self.is_host = is_host
        self.rejoined = rejoined


class LeaveOutcome:
    """``Room.leave`` 的结果。

    Attributes:
        participant_id: 离开的参与者。
        released_seat: 随之释放的座位号（未入座为 ``None``）。
        remaining: 剩余参与者数。
        host_changed: 房主是否因此发生变化。
        host_id: 离开后的房主（房间为空时为 ``None``）。
        screen_share_stopped: 是否因房主离开而结束了屏幕共享。
    """

    def __init__(
        self,
        participant_id: str,
        released_seat: int | None,
        remaining: int,
        host_changed: bool,
        host_id: str | None,
        screen_share_stopped: bool,
    ) -> None:
        self.participant_id = participant_id
        self.released_seat = released_seat
        self.remaining = remaining
        self.host_changed = host_changed
        self.host_id = host_id
        self.screen_share_stopped = screen_share_stopped


class Room:
    """一个共享房间。

    Attributes:
        room_id: 房间 ID（随机 token 或可分享的短房间码）。
        participants: 参与者 ID → ``Participant``，保持加入顺序。
        host_id: 当前房主 ID。
        seats: 本房间的座位表。
        screen_sharing: 房主是否正在共享屏幕。
    """

    def __init__(self, room_id: str, seat_capacity: int) -> None:
        self.room_id = room_id
        self.participants: dict[str, Participant] = {}
        self.host_id: str | None = None
        self.seats = SeatMap(seat_capacity)
        self.screen_sharing: bool = False

    @property
    def participant_count(self) -> int:
        return len(self.participants)

    @property
    def is_empty(self) -> bool:
        return not self.participants

    def is_member(self, participant_id: str | None) -> bool:
        return participant_id is not None and participant_id in self.participants

    # ── 成员管理 ──────────────────────────────────────────────────────

    def join(
        self,
        participant_id: str,
        name: str = "",
        color: str = "",
        position: Position | None = None,
    ) -> JoinOutcome:
        """加入房间；已在房间内时原地刷新属性（不会重复添加）。

        空房间的第一位参与者成为房主。
        """
        participant = self.participants.get(participant_id)
        rejoined = participant is not None
        if participant is not None:
            participant.refresh(name, color, position)
        else:
            participant = Participant(participant_id, name, color, position)
            self.participants[participant_id] = participant

        if self.host_id is None:
            self.host_id = participant_id

        return JoinOutcome(
            participant=participant,
            is_host=self.host_id == participant_id,
            rejoined=rejoined,
        )

    def leave(self, participant_id: str) -> LeaveOutcome | None:
        """移除参与者并释放其座位；房主离开时按加入顺序移交房主。

        Returns:
            离开结果；参与者已不在房间内时返回 ``None``（幂等）。
        """
        if participant_id not in self.participants:
            return None

        released_seat = self.seats.release(participant_id)
        del self.participants[participant_id]

        host_changed = False
        screen_share_stopped = False
        if self.host_id == participant_id:
            self.host_id = next(iter(self.participants), None)
            host_changed = True
            if self.screen_sharing:
                self.screen_sharing = False
                screen_share_stopped = True

        return LeaveOutcome(
            participant_id=participant_id,
            released_seat=released_seat,
            remaining=self.participant_count,
            host_changed=host_changed,
            host_id=self.host_id,
            screen_share_stopped=screen_share_stopped,
        )

    # ── 座位 ──────────────────────────────────────────────────────────

    def assign_seat(self, participant_id: str, index: int) -> int:
        """为参与者分配座位。

        检查顺序：座位号越界 → 座位被他人占用 → 参与者不在房间内。
        任何失败都不会修改状态。

        Raises:
            InvalidSeat, SeatOccupied, ParticipantNotFound
        """
        self.seats.check_assignable(participant_id, index)
        if participant_id not in self.participants:
            raise ParticipantNotFound(index, participant_id)
        return self.seats.assign(participant_id, index)

    def release_seat(self, participant_id: str) -> int | None:
        """主动离座（幂等）。"""
        if participant_id not in self.participants:
            return None
        return self.seats.release(participant_id)

    # ── 房主与屏幕共享 ────────────────────────────────────────────────

    def request_host(self, participant_id: str) -> bool:
        """申请成为房主：仅当房主空缺或申请者已是房主时生效。

        Returns:
            房主是否真正发生了变化。
        """
        if participant_id not in self.participants:
            return False
        if self.host_id is not None:
            # 已是房主：无变化；他人为房主：静默忽略
            return False
        self.host_id = participant_id
        return True

    def set_screen_share(self, participant_id: str, active: bool) -> bool:
        """切换屏幕共享状态，仅房主有效，非房主静默忽略。"""
        if participant_id is None or participant_id != self.host_id:
            return False
        self.screen_sharing = active
        return True

    def update_position(self, participant_id: str, position: Position) -> bool:
        participant = self.participants.get(participant_id)
        if participant is None:
            return False
        participant.position = position
        return True

    # ── 视图 ──────────────────────────────────────────────────────────

    def participant_view(self, participant_id: str) -> ParticipantView:
        participant = self.participants[participant_id]
        return ParticipantView(
            id=participant.id,
            name=participant.name,
            color=participant.color,
            position=participant.position,
            seat_index=self.seats.seat_of(participant.id),
        )

    def snapshot(self) -> RoomSnapshot:
        """返回房间完整快照。"""
        return RoomSnapshot(
            id=self.room_id,
            participant_count=self.participant_count,
            host_id=self.host_id,
            participants=[self.participant_view(pid) for pid in self.participants],
            seats=[
                SeatView(seat_index=index, participant_id=pid)
                for index, pid in self.seats.occupied().items()
            ],
            seat_capacity=self.seats.capacity,
            screen_sharing=self.screen_sharing,
        )

    def info(self) -> RoomInfoData:
        """返回房间摘要信息。"""
        return RoomInfoData(
            room_id=self.room_id,
            participant_count=self.participant_count,
            host_id=self.host_id,
            occupied_seats=self.seats.occupied_count,
            screen_sharing=self.screen_sharing,
        )
