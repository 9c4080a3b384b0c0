"""
theatre.services.sweeper
~~~~~~~~~~~~~~~~~~~~~~~~

空房间清理任务 —— 按固定间隔删除注册表中没有参与者的房间。

正常情况下最后一位参与者离开时房间已被立即删除，本任务只是兜底，
清理因异常路径遗漏的空房间。清理与在线事件处理共用注册表锁。
"""
from __future__ import annotations

import asyncio

from theatre.core.logging import get_logger
from theatre.services.registry import RoomRegistry

logger = get_logger(__name__)


class IdleRoomSweeper:
    """空房间清理器。

    Attributes:
        registry: 房间注册表。
        interval: 两次清理之间的间隔（秒）。
    """

    def __init__(self, registry: RoomRegistry, interval: float = 300.0) -> None:
        self.registry = registry
        self.interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """启动后台清理任务（重复调用无副作用）。"""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="idle-room-sweeper")
        logger.info("空房间清理任务已启动 | interval=%ss", self.interval)

    async def stop(self) -> None:
        """取消后台任务并等待其退出。"""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("空房间清理任务已停止")

    async def sweep_once(self) -> list[str]:
        """执行一次清理，返回被删除的房间 ID。"""
        removed = await self.registry.sweep_empty()
        for room_id in removed:
            logger.info("清理空房间 | room=%s", room_id)
        return removed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.sweep_once()
            except Exception as e:
                logger.error("空房间清理失败: %s", e, exc_info=True)
