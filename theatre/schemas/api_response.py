"""
theatre.schemas.api_response
~~~~~~~~~~~~~~~~~~~~~~~~~~~~

房间协调服务 REST 接口（``/api/rooms*``）的应答信封。

成功::

    {"code": 200, "data": [{"roomId": "KXRT", "participantCount": 3, ...}], "msg": "success"}

``/health`` 直接返回计数字典，WebSocket 事件使用 ``theatre.schemas.events`` 的
``{"event", "data"}`` 信封，二者都不经过这里。
"""
from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """房间查询 / 房间码接口的统一应答。

    Attributes:
        code: 200 表示成功；未捕获异常由全局处理器填 500。
        data: 房间摘要列表、房间快照或新房间码。
        msg: 状态描述，prod 环境的失败信息不含异常细节。
    """

    code: int = Field(default=200, description="200 为成功，其余同 HTTP 状态码")
    data: T = Field(..., description="房间摘要、快照或房间码")
    msg: str = Field(default="success", description="状态描述")

    @classmethod
    def ok(cls, data: T, msg: str = "success") -> ApiResponse[T]:
        return cls(code=200, data=data, msg=msg)

    @classmethod
    def fail(cls, msg: str = "error", code: int = 500, data: Any = None) -> ApiResponse[Any]:
        """全局异常处理器使用的失败应答，``data`` 默认为 ``None``。"""
        return cls(code=code, data=data, msg=msg)
