"""
theatre.services.registry
~~~~~~~~~~~~~~~~~~~~~~~~~

房间注册表 —— 进程内的房间 ID → ``Room`` 映射。

生命周期:
  - 第一位参与者加入一个未知房间 ID 时创建房间；
  - 房间变空时立即删除（``discard_if_empty``），
    ``IdleRoomSweeper`` 定期调用 ``sweep_empty`` 兜底清理遗漏的空房间。

注册表持有一把 ``asyncio.Lock``，网关与清理任务的所有变更操作都在这把锁内执行，
保证房间的删除不会与进行中的加入操作竞争。
"""
from __future__ import annotations

import asyncio

from theatre.core.logging import get_logger
from theatre.schemas.rooms import RoomInfoData
from theatre.services.room import Room

logger = get_logger(__name__)


class RoomRegistry:
    """房间注册表。由进程入口创建，以引用方式注入网关与清理任务。

    Attributes:
        seat_capacity: 新建房间的座位容量。
        lock: 串行化所有房间变更的锁。
    """

    def __init__(self, seat_capacity: int) -> None:
        self.seat_capacity = seat_capacity
        self.lock = asyncio.Lock()
        self._rooms: dict[str, Room] = {}

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._rooms

    def get(self, room_id: str) -> Room | None:
        return self._rooms.get(room_id)

    def rooms_containing(self, participant_id: str) -> list[Room]:
        return [room for room in self._rooms.values() if room.is_member(participant_id)]

    def get_or_create(self, room_id: str) -> Room:
        """获取房间，不存在则创建。调用方需持有 ``lock``。"""
        room = self._rooms.get(room_id)
        if room is None:
            room = Room(room_id, seat_capacity=self.seat_capacity)
            self._rooms[room_id] = room
            logger.info("房间已创建 | room=%s | seats=%d", room_id, self.seat_capacity)
        return room

    def discard_if_empty(self, room_id: str) -> bool:
        """房间为空时立即删除。调用方需持有 ``lock``。"""
        room = self._rooms.get(room_id)
        if room is None or not room.is_empty:
            return False
        del self._rooms[room_id]
        logger.info("房间已删除（无参与者） | room=%s", room_id)
        return True

    async def sweep_empty(self) -> list[str]:
        """删除所有没有参与者的房间。

        Returns:
            被删除的房间 ID 列表。
        """
        async with self.lock:
            empty = [rid for rid, room in self._rooms.items() if room.is_empty]
            for rid in empty:
                del self._rooms[rid]
        return empty

    @property
    def total_participants(self) -> int:
        return sum(room.participant_count for room in self._rooms.values())

    def list_rooms(self) -> list[RoomInfoData]:
        """列出所有活跃房间的摘要信息。"""
        return [room.info() for room in self._rooms.values()]
