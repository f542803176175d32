"""Event Payload 子类型

所有生命周期事件的结构化 payload 定义。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import TaskStatus


class TaskAssignedPayload(BaseModel):
    """TASK_ASSIGNED 事件 payload"""

    title: str
    assigned_to: str
    previous_assignee: str | None = None
    due_date: datetime


class StatusChangedPayload(BaseModel):
    """STATUS_CHANGED 事件 payload"""

    title: str
    previous_status: TaskStatus | None
    new_status: TaskStatus
    reason: str = Field(default="")
    implicit: bool = Field(default=False, description="是否由进度更新推导")


class ProgressUpdatedPayload(BaseModel):
    """PROGRESS_UPDATED 事件 payload"""

    title: str
    previous_percentage: int
    percentage: int
    note: str | None = None
    status: TaskStatus


class TaskOverduePayload(BaseModel):
    """TASK_OVERDUE 事件 payload"""

    title: str
    due_date: datetime
    days_overdue: int = Field(description="已逾期天数（向上取整）")


class DeadlineApproachingPayload(BaseModel):
    """DEADLINE_APPROACHING 事件 payload"""

    title: str
    due_date: datetime
    hours_until_deadline: int = Field(description="距截止小时数（向上取整）")
