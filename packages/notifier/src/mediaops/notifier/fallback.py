"""FallbackSink -- 降级投递

Lazy probe 策略：每次投递时先尝试 primary，失败则切换到 fallback。
不维护显式的"降级状态"标记。
"""

import structlog
from mediaops.core.models import TaskEvent

from .exceptions import NotifierError
from .models import DeliveryReceipt
from .protocols import DeliverySink

log = structlog.get_logger()


class FallbackSink:
    """降级投递端

    降级链: WebhookSink -> LogSink
    """

    name = "fallback"

    def __init__(
        self,
        primary: DeliverySink,
        fallback: DeliverySink | None = None,
    ) -> None:
        """初始化降级投递端

        Args:
            primary: 主投递端（WebhookSink 或 LogSink）
            fallback: 降级投递端（默认 LogSink），None 表示无降级
        """
        self._primary = primary
        self._fallback = fallback

    async def deliver(self, event: TaskEvent) -> DeliveryReceipt:
        """带降级的投递

        Returns:
            DeliveryReceipt
            - primary 成功: is_fallback=False
            - fallback 成功: is_fallback=True, fallback_reason=<错误描述>
            - 全部失败: 抛出 NotifierError

        Raises:
            NotifierError: primary 和 fallback 均失败
        """
        primary_error: Exception | None = None
        try:
            return await self._primary.deliver(event)
        except Exception as e:
            primary_error = e
            log.warning(
                "primary_sink_failed_attempting_fallback",
                error=str(e),
                event_id=event.event_id,
            )

        if self._fallback is None:
            raise NotifierError(
                f"Primary 投递失败且无 fallback 配置: {primary_error}",
                recoverable=False,
            ) from primary_error

        try:
            receipt = await self._fallback.deliver(event)
            receipt = receipt.model_copy(
                update={
                    "is_fallback": True,
                    "fallback_reason": f"Primary 失败: {primary_error}",
                }
            )
            log.info(
                "notifier_fallback_activated",
                fallback_reason=str(primary_error),
                event_id=event.event_id,
            )
            return receipt
        except Exception as fallback_error:
            log.error(
                "both_primary_and_fallback_sink_failed",
                primary_error=str(primary_error),
                fallback_error=str(fallback_error),
            )
            raise NotifierError(
                f"Primary 和 Fallback 均失败。Primary: {primary_error}; Fallback: {fallback_error}",
                recoverable=False,
            ) from fallback_error

    async def health_check(self) -> bool:
        return await self._primary.health_check()
