"""派生指标计算 -- 纯函数，无 I/O

is_overdue / days_remaining / actual_hours 等均在读取或账本变更时
从原始状态重新计算，不作为可独立写入的字段。
"""

import math
from collections.abc import Iterable
from datetime import datetime, timedelta

from ..models.enums import TERMINAL_STATES
from ..models.task import Task, TimeEntry
from ..models.views import ActorTimeTotal, TaskView, TimeSummary

_ONE_DAY_S = timedelta(days=1).total_seconds()


def round_half_up(value: float) -> int:
    """四舍五入到整数（.5 向上），与参考系统的分钟取整一致"""
    return math.floor(value + 0.5)


def minutes_between(start: datetime, end: datetime) -> int:
    """两个时间点之间的整数分钟数（可为负）"""
    return round_half_up((end - start).total_seconds() / 60)


def compute_actual_hours(entries: Iterable[TimeEntry]) -> float:
    """所有已关闭条目的分钟数之和 / 60；活动条目计 0"""
    total_minutes = sum(
        entry.duration_minutes or 0 for entry in entries if not entry.is_active
    )
    return total_minutes / 60


def is_overdue(task: Task, now: datetime) -> bool:
    return task.due_date < now and task.status not in TERMINAL_STATES


def days_remaining(task: Task, now: datetime) -> int | None:
    """剩余天数，向上取整；负数表示已逾期天数；终态返回 None"""
    if task.status in TERMINAL_STATES:
        return None
    return math.ceil((task.due_date - now).total_seconds() / _ONE_DAY_S)


def remaining_hours(task: Task) -> float:
    return max(0.0, task.estimated_hours - task.actual_hours)


def build_task_view(task: Task, now: datetime) -> TaskView:
    """构建带派生指标的任务视图"""
    return TaskView(
        task=task,
        is_overdue=is_overdue(task, now),
        days_remaining=days_remaining(task, now),
        remaining_hours=remaining_hours(task),
    )


def summarize_time(task: Task) -> TimeSummary:
    """按操作者汇总工时，保持首次出现顺序"""
    totals: dict[str, ActorTimeTotal] = {}
    for entry in task.time_entries:
        current = totals.get(entry.actor_id)
        minutes = (current.total_minutes if current else 0) + (entry.duration_minutes or 0)
        count = (current.entry_count if current else 0) + 1
        totals[entry.actor_id] = ActorTimeTotal(
            actor_id=entry.actor_id,
            total_minutes=minutes,
            total_hours=round_half_up(minutes / 60 * 100) / 100,
            entry_count=count,
        )

    return TimeSummary(
        task_id=task.task_id,
        entries=list(task.time_entries),
        by_actor=list(totals.values()),
        total_actual_hours=task.actual_hours,
        estimated_hours=task.estimated_hours,
        remaining_hours=remaining_hours(task),
    )
