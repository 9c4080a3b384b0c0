"""
theatre.api.rooms
~~~~~~~~~~~~~~~~~

房间 REST 接口 —— 只读查询 + 房间码生成。

路由前缀 ``/api``，房间状态的所有变更都走 WebSocket。

端点:
  - ``GET  /rooms``            → 获取活跃房间列表
  - ``GET  /rooms/{room_id}``  → 获取房间完整快照
  - ``POST /rooms/code``       → 生成一个当前未被占用的房间码
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from theatre.api.deps import get_registry
from theatre.core.config import settings
from theatre.core.logging import get_logger
from theatre.core.rate_limit import limiter
from theatre.schemas.api_response import ApiResponse
from theatre.schemas.rooms import RoomCodeData, RoomInfoData, RoomSnapshot
from theatre.services.registry import RoomRegistry
from theatre.services.room_codes import generate_room_token, generate_unique_room_code

logger = get_logger(__name__)

router: APIRouter = APIRouter()


@router.get("/rooms", summary="获取活跃房间列表")
async def list_rooms(
    registry: RoomRegistry = Depends(get_registry),
) -> ApiResponse[list[RoomInfoData]]:
    """返回所有活跃房间的摘要。"""
    return ApiResponse.ok(data=registry.list_rooms())


@router.get("/rooms/{room_id}", summary="获取房间快照")
async def room_snapshot(
    room_id: str,
    registry: RoomRegistry = Depends(get_registry),
) -> ApiResponse[RoomSnapshot]:
    """返回指定房间的完整快照（参与者、座位、房主、屏幕共享）。

    Args:
        room_id: 房间唯一标识。
    """
    room = registry.get(room_id)
    if room is None:
        raise HTTPException(status_code=404, detail=f"房间不存在: {room_id}")
    return ApiResponse.ok(data=room.snapshot())


@router.post("/rooms/code", summary="生成房间码")
@limiter.limit(settings.ROOM_CODE_RATE_LIMIT)
async def create_room_code(
    request: Request,
    registry: RoomRegistry = Depends(get_registry),
) -> ApiResponse[RoomCodeData]:
    """生成一个可分享的短房间码，以及一个私密房间用的随机 token。

    房间本身在第一位参与者通过 WebSocket 加入时才会创建。
    """
    code = generate_unique_room_code(registry, length=settings.ROOM_CODE_LENGTH)
    if code is None:
        logger.warning("房间码生成失败：连续冲突")
        raise HTTPException(status_code=503, detail="暂时无法生成房间码，请重试")
    logger.info("生成房间码 | code=%s", code)
    return ApiResponse.ok(data=RoomCodeData(code=code, token=generate_room_token()))
