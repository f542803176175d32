"""读模型：带派生指标的任务视图与工时汇总

派生字段在读取时计算，不回写文档。
"""

from pydantic import BaseModel, Field

from .task import Task, TimeEntry


class TaskView(BaseModel):
    """任务快照 + 派生指标"""

    task: Task
    is_overdue: bool = Field(description="已过截止时间且未终结")
    days_remaining: int | None = Field(description="剩余天数（向上取整，终态为 None）")
    remaining_hours: float = Field(description="max(0, 预估工时 - 实际工时)")


class ActorTimeTotal(BaseModel):
    """单个操作者的工时合计"""

    actor_id: str
    total_minutes: int
    total_hours: float = Field(description="保留两位小数")
    entry_count: int


class TimeSummary(BaseModel):
    """任务工时汇总"""

    task_id: str
    entries: list[TimeEntry]
    by_actor: list[ActorTimeTotal]
    total_actual_hours: float
    estimated_hours: float
    remaining_hours: float
