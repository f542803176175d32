"""NotifierConfig -- 通知器配置加载

从环境变量加载配置，不硬编码 webhook 地址。
"""

import os
from typing import Literal

import structlog
from pydantic import BaseModel, Field, SecretStr

log = structlog.get_logger()


class NotifierConfig(BaseModel):
    """Notifier 包配置 -- 从环境变量加载

    环境变量:
        MEDIAOPS_NOTIFIER_MODE: 投递模式（webhook/log）
        MEDIAOPS_NOTIFIER_WEBHOOK_URL: webhook 地址
        MEDIAOPS_NOTIFIER_WEBHOOK_SECRET: 签名密钥
        MEDIAOPS_NOTIFIER_TIMEOUT_S: 投递超时（秒，默认 10）
    """

    mode: Literal["webhook", "log"] = Field(
        default="log",
        description="投递模式：webhook / log",
    )
    webhook_url: str = Field(
        default="",
        description="接收生命周期事件的 webhook 地址",
    )
    webhook_secret: SecretStr = Field(
        default=SecretStr(""),
        description="HMAC-SHA256 签名密钥，为空时不签名",
    )
    timeout_s: int = Field(
        default=10,
        ge=1,
        description="单次投递超时（秒）",
    )


def load_notifier_config() -> NotifierConfig:
    """从环境变量加载 Notifier 配置

    环境变量映射:
        MEDIAOPS_NOTIFIER_MODE -> mode (默认 "log")
        MEDIAOPS_NOTIFIER_WEBHOOK_URL -> webhook_url (默认 "")
        MEDIAOPS_NOTIFIER_WEBHOOK_SECRET -> webhook_secret (默认 "")
        MEDIAOPS_NOTIFIER_TIMEOUT_S -> timeout_s (默认 10)

    Returns:
        NotifierConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("MEDIAOPS_NOTIFIER_MODE"):
        kwargs["mode"] = val

    if val := os.environ.get("MEDIAOPS_NOTIFIER_WEBHOOK_URL"):
        kwargs["webhook_url"] = val

    if val := os.environ.get("MEDIAOPS_NOTIFIER_WEBHOOK_SECRET"):
        kwargs["webhook_secret"] = SecretStr(val)

    if val := os.environ.get("MEDIAOPS_NOTIFIER_TIMEOUT_S"):
        try:
            kwargs["timeout_s"] = int(val)
        except ValueError:
            log.warning(
                "invalid_timeout_config",
                env_var="MEDIAOPS_NOTIFIER_TIMEOUT_S",
                value=val,
                fallback=10,
            )
            # 使用默认值，不阻塞启动

    return NotifierConfig(**kwargs)
