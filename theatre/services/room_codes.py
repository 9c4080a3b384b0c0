"""
theatre.services.room_codes
~~~~~~~~~~~~~~~~~~~~~~~~~~~

房间 ID 生成 —— 可口头分享的短房间码与不可猜测的随机 token。
"""
from __future__ import annotations

import secrets
from collections.abc import Container

# 去掉 I 和 O，避免与数字 1、0 混淆
ROOM_CODE_ALPHABET: str = "ABCDEFGHJKLMNPQRSTUVWXYZ"


def generate_room_code(length: int = 4) -> str:
    """生成一个大写字母房间码，例如 ``"KXRT"``。"""
    return "".join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(length))


def generate_room_token() -> str:
    """生成约 128 位的 URL 安全随机房间 ID。"""
    return secrets.token_urlsafe(16)


def generate_unique_room_code(
    taken: Container[str], length: int = 4, attempts: int = 10,
) -> str | None:
    """生成一个不在 ``taken`` 中的房间码。

    Returns:
        新房间码；``attempts`` 次都冲突时返回 ``None``。
    """
    for _ in range(attempts):
        code = generate_room_code(length)
        if code not in taken:
            return code
    return None
