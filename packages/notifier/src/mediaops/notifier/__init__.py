"""MediaOps Notifier -- 生命周期事件投递

packages/notifier 的公开接口导出。
"""

# 配置
from .config import NotifierConfig, load_notifier_config

# 核心组件
from .dispatcher import EventDispatcher, build_sink, create_dispatcher

# 异常
from .exceptions import NotifierError, SinkUnreachableError
from .fallback import FallbackSink
from .log_sink import LogSink

# 数据模型
from .models import DeliveryReceipt
from .protocols import DeliverySink
from .webhook import WebhookSink, sign_body

__all__ = [
    "DeliveryReceipt",
    "DeliverySink",
    "EventDispatcher",
    "build_sink",
    "create_dispatcher",
    "WebhookSink",
    "sign_body",
    "LogSink",
    "FallbackSink",
    "NotifierConfig",
    "load_notifier_config",
    "NotifierError",
    "SinkUnreachableError",
]
