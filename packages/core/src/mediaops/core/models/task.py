"""Task Domain Model

一个任务对应一个文档（聚合根），时间条目、进度备注、状态历史均内嵌其中。
actual_hours 由 time_entries 派生，不可单独写入。
"""

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, Field, field_validator

from ..config import TITLE_MAX_LENGTH
from .attachment import AttachmentRef
from .enums import Priority, TaskStatus


def ensure_utc(value: datetime) -> datetime:
    """统一为带时区的 UTC 时间（naive 时间按 UTC 解释）"""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


class ProgressNote(BaseModel):
    """进度备注"""

    text: str = Field(description="备注内容")
    author_id: str = Field(description="作者 ID")
    created_at: UtcDatetime = Field(description="添加时间")


class Progress(BaseModel):
    """进度：百分比 + 有序备注列表"""

    percentage: int = Field(default=0, ge=0, le=100, description="完成百分比")
    notes: list[ProgressNote] = Field(default_factory=list, description="进度备注")


class TimeEntry(BaseModel):
    """时间条目

    活动条目：is_active=True，无 end_time / duration_minutes。
    已关闭条目：is_active=False，duration_minutes 为整数分钟（可为 0）。
    """

    entry_id: str = Field(description="唯一标识，ULID 格式")
    actor_id: str = Field(description="计时的操作者 ID")
    start_time: UtcDatetime = Field(description="开始时间")
    end_time: UtcDatetime | None = Field(default=None, description="结束时间")
    duration_minutes: int | None = Field(
        default=None, ge=0, description="时长（分钟），活动期间为空"
    )
    description: str = Field(default="", description="工作描述")
    is_active: bool = Field(default=False, description="是否正在计时")
    created_at: UtcDatetime = Field(description="创建时间")


class StatusChange(BaseModel):
    """状态变更审计记录（append-only）"""

    previous_status: TaskStatus | None = Field(default=None, description="变更前状态")
    new_status: TaskStatus = Field(description="变更后状态")
    actor_id: str = Field(description="变更人 ID")
    changed_at: UtcDatetime = Field(description="变更时间")
    reason: str | None = Field(default=None, description="变更原因")


class Billing(BaseModel):
    """计费信息"""

    rate: float = Field(default=0, ge=0, description="费率")
    billable: bool = Field(default=True, description="是否计费")
    invoiced: bool = Field(default=False, description="是否已开票")
    invoice_ref: str | None = Field(default=None, description="关联发票 ID")


class Task(BaseModel):
    """Task 聚合根文档"""

    task_id: str = Field(description="唯一标识，ULID 格式")
    created_at: UtcDatetime = Field(description="创建时间")
    updated_at: UtcDatetime = Field(description="更新时间")
    version: int = Field(default=0, ge=0, description="乐观并发版本号")

    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH, description="标题")
    description: str = Field(min_length=1, description="描述")
    task_type: str = Field(min_length=1, description="任务类型")
    tags: list[str] = Field(default_factory=list, description="标签（去重）")
    is_urgent: bool = Field(default=False, description="是否加急")
    priority: Priority = Field(default=Priority.MEDIUM, description="优先级")

    department_id: str = Field(description="所属部门 ID")
    assigned_to: str | None = Field(default=None, description="负责人 ID")
    created_by: str = Field(description="创建人 ID")
    client_id: str | None = Field(default=None, description="客户 ID")

    estimated_hours: float = Field(default=1, ge=0.1, description="预估工时")
    actual_hours: float = Field(default=0, ge=0, description="实际工时（派生）")
    due_date: UtcDatetime = Field(description="截止时间")
    start_date: UtcDatetime | None = Field(default=None, description="首次开始工作时间")
    completed_date: UtcDatetime | None = Field(default=None, description="完成时间")

    status: TaskStatus = Field(default=TaskStatus.PENDING, description="当前状态")
    progress: Progress = Field(default_factory=Progress, description="进度")
    time_entries: list[TimeEntry] = Field(default_factory=list, description="时间条目")
    status_history: list[StatusChange] = Field(
        default_factory=list, description="状态变更历史"
    )
    billing: Billing = Field(default_factory=Billing, description="计费信息")
    attachments: list[AttachmentRef] = Field(default_factory=list, description="附件引用")
    department_specific: dict[str, Any] = Field(
        default_factory=dict, description="部门专属字段（不透明）"
    )

    @field_validator("title", "description", "task_type", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, value: list[str]) -> list[str]:
        seen: dict[str, None] = {}
        for tag in value:
            tag = tag.strip()
            if tag:
                seen.setdefault(tag, None)
        return list(seen)

    def stakeholders(self) -> list[str]:
        """任务相关人（负责人、创建人、客户），保持顺序去重"""
        refs = [self.assigned_to, self.created_by, self.client_id]
        return list(dict.fromkeys(ref for ref in refs if ref))
