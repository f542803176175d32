"""TaskEvent Domain Model

生命周期事件：由聚合在命令成功后产生，与任务文档同事务写入
task_events 表（append-only），提交后交给通知器异步投递。
event_id 使用 ULID 格式，时间有序。
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import EventType


class TaskEvent(BaseModel):
    """TaskEvent 数据模型

    task_events 表 append-only，不允许更新或删除。
    """

    event_id: str = Field(description="唯一标识，ULID 格式，时间有序")
    task_id: str = Field(description="关联的 Task ID")
    ts: datetime = Field(description="事件时间戳")
    type: EventType = Field(description="事件类型")
    actor_id: str | None = Field(default=None, description="触发者 ID，定时扫描为空")
    recipients: list[str] = Field(default_factory=list, description="接收人 ID 列表")
    payload: dict[str, Any] = Field(default_factory=dict, description="结构化 payload")
