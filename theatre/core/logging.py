"""
theatre.core.logging
~~~~~~~~~~~~~~~~~~~~

日志初始化。进程启动时调用一次 ``setup_logging()``，各模块通过
``get_logger(__name__)`` 取 logger。

WebSocket 端点在连接存活期间设置 ``conn_id_ctx_var``，
经 ``ConnectionIdFilter`` 写入每条记录，便于按连接过滤日志。
"""
from __future__ import annotations

import logging
import sys
from contextvars import ContextVar

from theatre.core.config import settings

conn_id_ctx_var: ContextVar[str] = ContextVar("conn_id", default="-")

# 时间 | 级别 | 连接 ID | logger 名 | 消息
_LOG_FORMAT: str = "%(asctime)s | %(levelname)-7s | %(conn_id)s | %(name)s | %(message)s"
_DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"

# 只关心警告以上的第三方 logger
_NOISY_LOGGERS: tuple[str, ...] = ("httpcore", "httpx", "websockets", "uvicorn.access")


class ConnectionIdFilter(logging.Filter):
    """给日志记录附加当前连接 ID。"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.conn_id = conn_id_ctx_var.get()
        return True


def setup_logging() -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(ConnectionIdFilter())
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT))

    logging.basicConfig(
        level=getattr(logging, settings.effective_log_level, logging.INFO),
        handlers=[handler],
        force=True,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """按模块名获取 logger，通常传 ``__name__``。"""
    return logging.getLogger(name)
