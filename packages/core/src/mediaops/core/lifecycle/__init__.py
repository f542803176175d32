"""MediaOps 任务生命周期组件

纯同步组件，在内存中的 Task 上执行命令，不做 I/O。
"""

from .aggregate import TaskAggregate, check_assignee, check_client
from .metrics import (
    build_task_view,
    compute_actual_hours,
    days_remaining,
    is_overdue,
    minutes_between,
    remaining_hours,
    round_half_up,
    summarize_time,
)
from .progress import ProgressResult, ProgressTracker
from .status_machine import StatusMachine
from .time_ledger import TimeLedger

__all__ = [
    # 聚合
    "TaskAggregate",
    "check_assignee",
    "check_client",
    # 组件
    "StatusMachine",
    "ProgressTracker",
    "ProgressResult",
    "TimeLedger",
    # 派生指标
    "build_task_view",
    "compute_actual_hours",
    "days_remaining",
    "is_overdue",
    "minutes_between",
    "remaining_hours",
    "round_half_up",
    "summarize_time",
]
