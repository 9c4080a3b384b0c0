"""
theatre.api.deps
~~~~~~~~~~~~~~~~

路由依赖：从 ``app.state`` 取出 lifespan 中创建的进程级对象。
"""
from fastapi import Request

from theatre.services.registry import RoomRegistry


def get_registry(request: Request) -> RoomRegistry:
    return request.app.state.registry
