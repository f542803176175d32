"""EventDispatcher -- fire-and-forget 事件发布

publish() 为每个事件创建后台投递任务后立即返回，不等待投递结果；
投递失败记录日志后吞掉，不影响调用方。
drain() 等待所有在途投递完成，用于关停和测试。
"""

import asyncio
from collections.abc import Sequence

import structlog
from mediaops.core.models import TaskEvent

from .config import NotifierConfig
from .fallback import FallbackSink
from .log_sink import LogSink
from .protocols import DeliverySink
from .webhook import WebhookSink

log = structlog.get_logger()


class EventDispatcher:
    """事件发布器"""

    def __init__(self, sink: DeliverySink) -> None:
        self._sink = sink
        # 持有后台任务强引用，防止被 GC 提前回收
        self._in_flight: set[asyncio.Task] = set()
        self.delivered_count = 0
        self.failed_count = 0

    @property
    def sink(self) -> DeliverySink:
        return self._sink

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def publish(self, events: Sequence[TaskEvent]) -> None:
        """调度投递，立即返回"""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            log.warning("notification_dropped_no_event_loop", event_count=len(events))
            return

        for event in events:
            task = loop.create_task(self._deliver(event))
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)

    async def drain(self) -> None:
        """等待所有在途投递完成"""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    async def _deliver(self, event: TaskEvent) -> None:
        try:
            receipt = await self._sink.deliver(event)
        except Exception as e:
            self.failed_count += 1
            log.error(
                "notification_delivery_failed",
                event_id=event.event_id,
                event_type=event.type,
                task_id=event.task_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            return

        self.delivered_count += 1
        log.debug(
            "notification_delivered",
            event_id=event.event_id,
            sink=receipt.sink,
            is_fallback=receipt.is_fallback,
        )


def build_sink(config: NotifierConfig) -> DeliverySink:
    """按配置构建投递端

    webhook 模式且配置了地址时：WebhookSink -> LogSink 降级链；否则 LogSink。
    """
    if config.mode == "webhook":
        if config.webhook_url:
            return FallbackSink(
                primary=WebhookSink(
                    url=config.webhook_url,
                    secret=config.webhook_secret.get_secret_value(),
                    timeout_s=config.timeout_s,
                ),
                fallback=LogSink(),
            )
        log.warning("webhook_mode_without_url", fallback="log")
    return LogSink()


def create_dispatcher(config: NotifierConfig) -> EventDispatcher:
    return EventDispatcher(build_sink(config))
