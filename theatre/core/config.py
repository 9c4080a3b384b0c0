"""
theatre.core.config
~~~~~~~~~~~~~~~~~~~

房间协调服务的配置，由 pydantic-settings 从环境变量与 ``.env`` 文件读取。

取值优先级（高 → 低）:
  1. 进程环境变量
  2. ``.env.{ENVIRONMENT}``（如 ``.env.prod``）
  3. ``.env``
  4. 下方字段默认值

``ENVIRONMENT`` 本身只从进程环境变量读取，因为它决定加载哪一个 ``.env`` 文件。
"""
from __future__ import annotations

import os
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["dev", "test", "prod"]

_ENV_NAME: str = os.getenv("ENVIRONMENT", "dev")

# 未显式配置 LOG_LEVEL 时各环境的默认日志级别
_DEFAULT_LOG_LEVELS: dict[str, str] = {
    "dev": "INFO",
    "test": "DEBUG",
    "prod": "WARNING",
}


class Settings(BaseSettings):
    """服务配置。进程内通过 ``get_settings()`` 共享同一实例。"""

    model_config = SettingsConfigDict(
        env_file=(".env", f".env.{_ENV_NAME}"),  # 靠后的文件覆盖靠前的
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── 应用 ──────────────────────────────────────────────────────────
    PROJECT_NAME: str = Field(default="Theatre Room Coordinator", description="服务名称")
    VERSION: str = Field(default="0.1.0", description="服务版本")
    ENVIRONMENT: Environment = Field(default="dev", description="部署环境")

    # ── 房间 ──────────────────────────────────────────────────────────
    SEAT_CAPACITY: int = Field(
        default=160,
        ge=1,
        description="每个房间的座位数（10 排 × 16 座；部分部署使用 96）",
    )
    ROOM_ID_MAX_LENGTH: int = Field(default=64, ge=1, description="房间 ID 的最大长度")
    ROOM_CODE_LENGTH: int = Field(default=4, ge=3, le=12, description="可分享房间码的字母数")
    CHAT_MESSAGE_MAX_LENGTH: int = Field(default=500, ge=1, description="单条聊天消息的最大长度")
    SWEEP_INTERVAL_SECONDS: float = Field(
        default=300.0,
        gt=0,
        description="空房间清理任务的执行间隔（秒）",
    )
    ROOM_CODE_RATE_LIMIT: str = Field(
        default="10/second",
        description="房间码接口的限流规则（slowapi 语法）",
    )

    # ── 监听 / 日志 / 跨域 ────────────────────────────────────────────
    HOST: str = Field(default="0.0.0.0", description="监听地址")
    PORT: int = Field(default=3001, description="监听端口")
    LOG_LEVEL: str | None = Field(default=None, description="日志级别；留空则按环境推断")
    CORS_ORIGINS: list[str] = Field(
        default_factory=list,
        description="prod 环境允许的跨域来源",
    )

    @property
    def is_prod(self) -> bool:
        return self.ENVIRONMENT == "prod"

    @property
    def debug(self) -> bool:
        """FastAPI debug 与 uvicorn 热重载只在 dev 环境打开。"""
        return self.ENVIRONMENT == "dev"

    @property
    def reload(self) -> bool:
        return self.debug

    @property
    def effective_log_level(self) -> str:
        """显式配置的 ``LOG_LEVEL`` 优先，否则取环境默认值（test 为 DEBUG，prod 为 WARNING）。"""
        if self.LOG_LEVEL:
            return self.LOG_LEVEL.upper()
        return _DEFAULT_LOG_LEVELS.get(self.ENVIRONMENT, "INFO")

    @property
    def allow_cors_all_origins(self) -> bool:
        """非 prod 环境放开所有跨域来源。"""
        return not self.is_prod


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings: Settings = get_settings()
