"""LogSink -- 只写结构化日志的投递端

未配置 webhook 时作为默认投递端，也是 FallbackSink 的降级后备。
"""

import structlog
from mediaops.core.models import TaskEvent

from .models import DeliveryReceipt

log = structlog.get_logger()


class LogSink:
    """日志投递端"""

    name = "log"

    async def deliver(self, event: TaskEvent) -> DeliveryReceipt:
        log.info(
            "notification_logged",
            event_id=event.event_id,
            event_type=event.type,
            task_id=event.task_id,
            recipients=event.recipients,
        )
        return DeliveryReceipt(
            event_id=event.event_id,
            event_type=event.type.value,
            sink=self.name,
        )

    async def health_check(self) -> bool:
        return True
