"""
theatre.services.seat_map
~~~~~~~~~~~~~~~~~~~~~~~~~

座位表 —— 固定容量的座位数组，保证座位与参与者之间的互斥关系。

座位表同时维护两个方向的映射（座位 → 占用者、参与者 → 座位），
两者只会在同一个方法内一起更新，任何时刻都保持一致:

- 一个座位最多只有一个占用者；
- 一个参与者最多只占用一个座位。
"""
from __future__ import annotations


class SeatAssignmentError(Exception):
    """座位分配失败的基类，``reason`` 为返回给客户端的机器可读原因。"""

    reason: str = "SeatAssignmentError"

    def __init__(self, seat_index: object, participant_id: str | None = None) -> None:
        self.seat_index = seat_index
        self.participant_id = participant_id
        super().__init__(f"{self.reason}: seat={seat_index!r} participant={participant_id!r}")


class InvalidSeat(SeatAssignmentError):
    """座位号不在 ``[0, capacity)`` 范围内。"""

    reason = "InvalidSeat"


class SeatOccupied(SeatAssignmentError):
    """座位已被其他参与者占用。"""

    reason = "SeatOccupied"


class ParticipantNotFound(SeatAssignmentError):
    """参与者不在房间内。"""

    reason = "ParticipantNotFound"


class SeatMap:
    """固定容量的座位表。

    Attributes:
        capacity: 座位总数，座位号范围为 ``[0, capacity)``。
    """

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError(f"座位容量必须为正数: {capacity}")
        self.capacity = capacity
        self._occupants: list[str | None] = [None] * capacity
        self._seat_by_participant: dict[str, int] = {}

    # ── 查询 ──────────────────────────────────────────────────────────

    def occupant(self, index: int) -> str | None:
        """返回指定座位的占用者 ID（空座位返回 ``None``）。"""
        self._check_index(index)
        return self._occupants[index]

    def seat_of(self, participant_id: str) -> int | None:
        """返回参与者当前占用的座位号（未入座返回 ``None``）。"""
        return self._seat_by_participant.get(participant_id)

    def occupied(self) -> dict[int, str]:
        """返回所有已占用座位（按座位号升序）。"""
        return {
            index: participant_id
            for index, participant_id in enumerate(self._occupants)
            if participant_id is not None
        }

    @property
    def occupied_count(self) -> int:
        return len(self._seat_by_participant)

    # ── 变更 ──────────────────────────────────────────────────────────

    def check_assignable(self, participant_id: str, index: int) -> None:
        """检查座位能否分配给参与者，不修改任何状态。

        Raises:
            InvalidSeat: 座位号越界。
            SeatOccupied: 座位已被其他参与者占用。
        """
        self._check_index(index, participant_id)
        current = self._occupants[index]
        if current is not None and current != participant_id:
            raise SeatOccupied(index, participant_id)

    def assign(self, participant_id: str, index: int) -> int:
        """将座位分配给参与者，并释放其之前的座位。

        重复申请自己已占用的座位视为成功（无变化）。

        Returns:
            确认分配的座位号。

        Raises:
            InvalidSeat: 座位号越界。
            SeatOccupied: 座位已被其他参与者占用。
        """
        self.check_assignable(participant_id, index)

        previous = self._seat_by_participant.get(participant_id)
        if previous == index:
            return index
        if previous is not None:
            self._occupants[previous] = None
        self._occupants[index] = participant_id
        self._seat_by_participant[participant_id] = index
        return index

    def release(self, participant_id: str) -> int | None:
        """释放参与者的座位（幂等）。

        Returns:
            被释放的座位号；参与者未入座时返回 ``None``。
        """
        index = self._seat_by_participant.pop(participant_id, None)
        if index is not None:
            self._occupants[index] = None
        return index

    def _check_index(self, index: object, participant_id: str | None = None) -> None:
        # bool 是 int 的子类，但 True/False 不是合法座位号
        if (
            not isinstance(index, int)
            or isinstance(index, bool)
            or not 0 <= index < self.capacity
        ):
            raise InvalidSeat(index, participant_id)
