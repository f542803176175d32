"""命令输入模型

TaskCreate / TaskUpdate / ManualTimeEntry / TimeEntryUpdate 等入站命令的统一格式。
更新类模型采用部分更新语义：只应用 model_fields_set 中显式给出的字段。
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .enums import Priority, TaskStatus
from .task import UtcDatetime


class BillingInput(BaseModel):
    """创建任务时的计费输入"""

    model_config = ConfigDict(extra="forbid")

    rate: float = Field(default=0, ge=0)
    billable: bool = Field(default=True)


class TaskCreate(BaseModel):
    """创建任务命令"""

    model_config = ConfigDict(extra="forbid")

    title: str = Field(description="标题")
    description: str = Field(description="描述")
    department_id: str = Field(min_length=1, description="所属部门 ID")
    task_type: str = Field(description="任务类型")
    due_date: UtcDatetime = Field(description="截止时间")
    assigned_to: str | None = Field(default=None, description="负责人 ID")
    client_id: str | None = Field(default=None, description="客户 ID")
    priority: Priority = Field(default=Priority.MEDIUM)
    estimated_hours: float = Field(default=1, ge=0.1)
    tags: list[str] = Field(default_factory=list)
    is_urgent: bool = Field(default=False)
    billing: BillingInput = Field(default_factory=BillingInput)
    department_specific: dict[str, Any] = Field(default_factory=dict)


class BillingUpdate(BaseModel):
    """计费字段部分更新"""

    model_config = ConfigDict(extra="forbid")

    rate: float | None = Field(default=None, ge=0)
    billable: bool | None = None
    invoiced: bool | None = None
    invoice_ref: str | None = None


class TaskUpdate(BaseModel):
    """更新任务命令（部分更新）

    actual_hours、progress、time_entries 不在此处开放，
    只能通过 ProgressTracker / TimeLedger 修改。
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    description: str | None = None
    task_type: str | None = None
    assigned_to: str | None = None
    client_id: str | None = None
    priority: Priority | None = None
    status: TaskStatus | None = None
    status_reason: str | None = None
    estimated_hours: float | None = Field(default=None, ge=0.1)
    due_date: UtcDatetime | None = None
    tags: list[str] | None = None
    is_urgent: bool | None = None
    billing: BillingUpdate | None = None
    department_specific: dict[str, Any] | None = None


class ManualTimeEntry(BaseModel):
    """手工补录时间条目

    end_time 与 duration_minutes 至少提供一个，由 TimeLedger 校验。
    """

    model_config = ConfigDict(extra="forbid")

    start_time: UtcDatetime
    end_time: UtcDatetime | None = None
    duration_minutes: int | None = None
    description: str = ""


class TimeEntryUpdate(BaseModel):
    """时间条目部分更新"""

    model_config = ConfigDict(extra="forbid")

    start_time: UtcDatetime | None = None
    end_time: UtcDatetime | None = None
    duration_minutes: int | None = None
    description: str | None = None
