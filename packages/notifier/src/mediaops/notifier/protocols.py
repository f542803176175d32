"""投递端 Protocol 接口定义

WebhookSink、LogSink、FallbackSink 都按此结构实现，EventDispatcher 只依赖该接口。
"""

from typing import Protocol, runtime_checkable

from mediaops.core.models import TaskEvent

from .models import DeliveryReceipt


@runtime_checkable
class DeliverySink(Protocol):
    """事件投递端接口"""

    name: str

    async def deliver(self, event: TaskEvent) -> DeliveryReceipt:
        """投递单个事件

        Raises:
            NotifierError: 投递失败
        """
        ...

    async def health_check(self) -> bool:
        ...
