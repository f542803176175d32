"""Store Protocol 接口定义

定义 TaskStore、EventStore、AttachmentStore 以及事件发布器的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import Protocol

from ..models.attachment import AttachmentRef
from ..models.enums import EventType
from ..models.event import TaskEvent
from ..models.query import TaskFilter
from ..models.task import Task


class TaskStore(Protocol):
    """Task 文档存储接口"""

    async def create_task(self, task: Task) -> None:
        """插入新任务"""
        ...

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        ...

    async def save_task(self, task: Task, expected_version: int) -> bool:
        """条件写回（version CAS），返回是否写入"""
        ...

    async def delete_task(self, task_id: str) -> bool:
        ...

    async def list_tasks(self, query: TaskFilter | None = None) -> list[Task]:
        ...

    async def list_overdue(
        self, now: datetime, query: TaskFilter | None = None
    ) -> list[Task]:
        ...

    async def list_due_between(
        self,
        start: datetime | None,
        end: datetime,
        query: TaskFilter | None = None,
    ) -> list[Task]:
        ...


class EventStore(Protocol):
    """TaskEvent 存储接口

    事件表 append-only：只允许插入，不允许更新或删除。
    """

    async def append_event(self, event: TaskEvent) -> None:
        """追加事件（append-only）"""
        ...

    async def get_events_for_task(self, task_id: str) -> list[TaskEvent]:
        """查询指定任务的所有事件"""
        ...

    async def has_event_since(
        self, task_id: str, event_type: EventType, since: datetime
    ) -> bool:
        ...


class AttachmentStore(Protocol):
    """附件 blob 存储接口（内容不透明）"""

    @property
    def attachments_dir(self) -> Path:
        ...

    async def put_attachment(
        self,
        task_id: str,
        filename: str,
        content: bytes,
        uploaded_by: str,
        uploaded_at: datetime,
        mime: str = "application/octet-stream",
    ) -> AttachmentRef:
        ...

    async def get_attachment_content(self, ref: AttachmentRef) -> bytes | None:
        ...

    async def delete_attachment(self, ref: AttachmentRef) -> None:
        ...

    async def delete_task_attachments(self, task_id: str) -> None:
        ...


class EventPublisher(Protocol):
    """生命周期事件发布器（fire-and-forget）

    publish 必须立即返回，不等待投递完成；投递失败只记录日志。
    """

    def publish(self, events: Sequence[TaskEvent]) -> None:
        ...
