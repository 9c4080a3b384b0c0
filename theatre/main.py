"""
theatre.main
~~~~~~~~~~~~

服务入口：组装房间协调所需的进程级对象，并挂载 REST 与 WebSocket 路由。

注册表、连接中心、会话网关与空房间清理任务都在 lifespan 中创建并挂到
``app.state`` 上，路由通过 ``theatre.api.deps`` 取用。
"""
from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from theatre.api import rooms, ws
from theatre.core.config import settings
from theatre.core.logging import get_logger, setup_logging
from theatre.core.rate_limit import limiter
from theatre.schemas.api_response import ApiResponse
from theatre.services.connection import ConnectionHub
from theatre.services.gateway import SessionGateway
from theatre.services.registry import RoomRegistry
from theatre.services.signaling import SignalingRelay
from theatre.services.sweeper import IdleRoomSweeper

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """创建房间协调对象，并在退出时停止后台清理任务。"""
    registry = RoomRegistry(seat_capacity=settings.SEAT_CAPACITY)
    hub = ConnectionHub()
    sweeper = IdleRoomSweeper(registry, interval=settings.SWEEP_INTERVAL_SECONDS)

    app.state.registry = registry
    app.state.hub = hub
    app.state.gateway = SessionGateway(registry, hub, relay=SignalingRelay(hub))
    app.state.sweeper = sweeper

    sweeper.start()
    logger.info(
        "🎭 房间协调服务已启动 | env=%s | seats=%d | sweep=%ss | log_level=%s",
        settings.ENVIRONMENT,
        settings.SEAT_CAPACITY,
        settings.SWEEP_INTERVAL_SECONDS,
        settings.effective_log_level,
    )
    try:
        yield
    finally:
        await sweeper.stop()
        logger.info("房间协调服务已停止 | 剩余房间: %d", len(registry))


app: FastAPI = FastAPI(
    title=settings.PROJECT_NAME,
    description="多人共享房间协调服务：在线状态、座位、房主与语音信令",
    version=settings.VERSION,
    debug=settings.debug,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# 非 prod 环境放开所有来源；prod 只接受 CORS_ORIGINS，且只开放只读查询与房间码接口用到的方法
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.allow_cors_all_origins else settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"] if settings.allow_cors_all_origins else ["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(rooms.router, prefix="/api", tags=["Rooms"])
app.include_router(ws.router, tags=["WebSocket"])


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """未处理的异常统一转换为 ``ApiResponse.fail``（prod 不暴露异常内容）。"""
    logger.error("请求处理失败 | %s %s | %s", request.method, request.url.path, exc, exc_info=True)
    msg = "服务器内部错误" if settings.is_prod else str(exc)
    return JSONResponse(status_code=500, content=ApiResponse.fail(msg=msg).model_dump())


@app.get("/health", tags=["System"])
async def health_check(request: Request) -> JSONResponse:
    """存活检查，附带房间数、参与者总数与在线连接数。"""
    registry: RoomRegistry = request.app.state.registry
    hub: ConnectionHub = request.app.state.hub
    return JSONResponse(
        content={
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": settings.ENVIRONMENT,
            "rooms": len(registry),
            "totalParticipants": registry.total_participants,
            "connections": hub.online_count,
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "theatre.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.reload,
        log_level=settings.effective_log_level.lower(),
    )
