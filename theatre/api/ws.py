"""
theatre.api.ws
~~~~~~~~~~~~~~

WebSocket 实时交互接口。

每位参与者持有一条 ``/ws`` 长连接，通过 ``join-room`` 事件加入房间；
连接断开（无论是否发送过 ``leave-room``）都会触发隐式离开。

消息协议（JSON 文本帧）::

    {"event": "<事件名>", "data": {...}}

事件列表见 ``theatre.schemas.events``。
"""
from __future__ import annotations

import json

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from theatre.core.logging import conn_id_ctx_var, get_logger
from theatre.services.connection import Connection
from theatre.services.gateway import SessionGateway

logger = get_logger(__name__)

router: APIRouter = APIRouter()


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """房间协调 WebSocket 端点。

    Args:
        websocket: FastAPI WebSocket 连接对象。
    """
    gateway: SessionGateway = websocket.app.state.gateway
    await websocket.accept()

    connection = Connection(websocket)
    token = conn_id_ctx_var.set(connection.id)
    gateway.connect(connection)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            text = message.get("text")
            if text is None:
                # 协议只使用文本帧，二进制帧直接丢弃
                logger.warning("非文本帧，已忽略 | size=%d", len(message.get("bytes") or b""))
                continue
            try:
                raw = json.loads(text)
            except ValueError:
                logger.warning("非 JSON 消息，已忽略 | size=%d", len(text))
                continue
            await gateway.handle(connection, raw)
    except WebSocketDisconnect:
        pass  # 正常断开
    except Exception as e:
        logger.error("WebSocket 异常: %s", e, exc_info=True)
    finally:
        await gateway.disconnect(connection)
        conn_id_ctx_var.reset(token)
