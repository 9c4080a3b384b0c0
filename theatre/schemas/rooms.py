"""
theatre.schemas.rooms
~~~~~~~~~~~~~~~~~~~~~

房间相关的 Pydantic 模型 —— 房间快照、参与者视图与 REST 摘要。

线上 JSON 统一使用 camelCase 字段名（``participantId``、``seatIndex``），
Python 侧保留 snake_case，通过 ``alias_generator`` 自动转换。
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """线上消息基类：序列化时输出 camelCase，反序列化时两种写法都接受。"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        """转换为可直接 ``send_json`` 的字典。"""
        return self.model_dump(mode="json", by_alias=True)


class Position(CamelModel):
    """三维坐标（仅供参考，不参与任何房间不变量）。"""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


class ParticipantView(CamelModel):
    """参与者的对外视图。"""

    id: str = Field(..., description="参与者 ID（客户端生成，重连时复用）")
    name: str = Field(default="", description="显示名称")
    color: str = Field(default="", description="头像颜色")
    position: Position = Field(default_factory=Position, description="当前位置")
    seat_index: int | None = Field(default=None, description="占用的座位号")


class SeatView(CamelModel):
    """一个已占用的座位。"""

    seat_index: int
    participant_id: str


class RoomSnapshot(CamelModel):
    """房间完整快照，发送给刚加入的参与者。"""

    id: str = Field(..., description="房间 ID")
    participant_count: int = Field(..., description="当前参与者数")
    host_id: str | None = Field(default=None, description="房主 ID")
    participants: list[ParticipantView] = Field(default_factory=list)
    seats: list[SeatView] = Field(default_factory=list, description="已占用座位")
    seat_capacity: int = Field(..., description="座位总数")
    screen_sharing: bool = Field(default=False, description="是否正在共享屏幕")


class RoomJoinedData(RoomSnapshot):
    """``room-joined`` 事件数据：快照 + 加入者是否为房主。"""

    is_host: bool


class RoomInfoData(CamelModel):
    """房间摘要信息。"""

    room_id: str = Field(..., description="房间唯一标识")
    participant_count: int = Field(..., description="当前参与者数")
    host_id: str | None = Field(default=None, description="房主 ID")
    occupied_seats: int = Field(..., description="已占用座位数")
    screen_sharing: bool = Field(..., description="是否正在共享屏幕")


class RoomCodeData(CamelModel):
    """新生成的房间标识：短房间码 + 私密 token。"""

    code: str = Field(..., description="可分享的短房间码")
    token: str = Field(..., description="不可猜测的私密房间 ID，可代替房间码作为 roomId")
