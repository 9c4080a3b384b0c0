"""
theatre.core.rate_limit
~~~~~~~~~~~~~~~~~~~~~~~

REST 接口的限流配置。

WebSocket 事件不在服务端限流：位置更新由客户端自行节流（约 100ms 一次），
服务端需要容忍突发流量。
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

# 基于客户端 IP 地址进行限流，使用进程内存存储
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
)
