"""WebhookSink -- 通过 HTTP webhook 投递生命周期事件

POST 事件 JSON 到配置的 webhook 地址；配置了密钥时附带
X-MediaOps-Signature: sha256=<hmac> 头，签名覆盖原始请求体。
"""

import hashlib
import hmac
import json
import time

import httpx
import structlog
from mediaops.core.models import TaskEvent

from .exceptions import NotifierError, SinkUnreachableError
from .models import DeliveryReceipt

log = structlog.get_logger()

# 健康检查超时（硬编码，应快速响应）
HEALTH_CHECK_TIMEOUT_S = 5

# 连接类异常类型集合（触发 SinkUnreachableError，进而触发 FallbackSink 降级）
_CONNECTION_ERROR_TYPES = (
    ConnectionError,
    OSError,
    TimeoutError,
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.TimeoutException,
)


def sign_body(secret: str, body: bytes) -> str:
    """计算请求体的 HMAC-SHA256 签名"""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


class WebhookSink:
    """Webhook 投递端"""

    name = "webhook"

    def __init__(
        self,
        url: str,
        secret: str = "",
        timeout_s: int = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """初始化 Webhook 投递端

        Args:
            url: webhook 地址
            secret: 签名密钥，为空时不签名
            timeout_s: 请求超时（秒）
            transport: 自定义 httpx transport（测试注入 MockTransport）
        """
        self._url = url
        self._secret = secret
        self._timeout_s = timeout_s
        self._transport = transport

    async def deliver(self, event: TaskEvent) -> DeliveryReceipt:
        """POST 单个事件

        Returns:
            DeliveryReceipt

        Raises:
            SinkUnreachableError: 连接失败或超时
            NotifierError: 对端返回非 2xx（5xx 视为可恢复）
        """
        start_time = time.monotonic()
        body = json.dumps(event.model_dump(mode="json"), ensure_ascii=False).encode("utf-8")
        headers = {
            "Content-Type": "application/json",
            "X-MediaOps-Event": event.type.value,
            "X-MediaOps-Event-Id": event.event_id,
        }
        if self._secret:
            headers["X-MediaOps-Signature"] = sign_body(self._secret, body)

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_s, transport=self._transport
            ) as http_client:
                resp = await http_client.post(self._url, content=body, headers=headers)
        except Exception as e:
            log.error(
                "webhook_delivery_failed",
                event_id=event.event_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            if isinstance(e, _CONNECTION_ERROR_TYPES):
                raise SinkUnreachableError(url=self._url, original_error=e) from e
            raise NotifierError(f"Webhook 投递失败: {e}") from e

        duration_ms = int((time.monotonic() - start_time) * 1000)
        if resp.status_code >= 400:
            log.warning(
                "webhook_rejected",
                event_id=event.event_id,
                status_code=resp.status_code,
            )
            raise NotifierError(
                f"Webhook 返回 {resp.status_code}",
                recoverable=resp.status_code >= 500,
            )

        log.debug(
            "webhook_delivered",
            event_id=event.event_id,
            event_type=event.type,
            status_code=resp.status_code,
            duration_ms=duration_ms,
        )
        return DeliveryReceipt(
            event_id=event.event_id,
            event_type=event.type.value,
            sink=self.name,
            status_code=resp.status_code,
            duration_ms=duration_ms,
        )

    async def health_check(self) -> bool:
        """检查 webhook 地址可达性（HEAD 请求，5xx 视为不可用）

        注意: 此方法不抛出异常，所有异常内部捕获并返回 False。
        """
        try:
            async with httpx.AsyncClient(transport=self._transport) as http_client:
                resp = await http_client.request(
                    "HEAD", self._url, timeout=HEALTH_CHECK_TIMEOUT_S
                )
                return resp.status_code < 500
        except Exception as e:
            log.debug("health_check_failed", url=self._url, error=str(e))
            return False
