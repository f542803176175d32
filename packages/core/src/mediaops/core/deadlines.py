"""DeadlineSweeper -- 逾期与临近截止扫描

定期扫描未终结任务：
- 已过截止时间：产生 TASK_OVERDUE（同一任务 OVERDUE_REPEAT_HOURS 内只提醒一次）
- 截止时间落在提醒窗口内：产生 DEADLINE_APPROACHING
  （默认 24h 与 2h 两个窗口，每个窗口各提醒一次）

事件只追加到 task_events，不修改任务文档，然后交给发布器。
"""

import math
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta

import structlog
from pydantic import BaseModel, Field
from ulid import ULID

from .config import (
    DEADLINE_FINAL_REMINDER_HOURS,
    DEADLINE_REMINDER_HOURS,
    OVERDUE_REPEAT_HOURS,
)
from .models import (
    DeadlineApproachingPayload,
    EventType,
    Task,
    TaskEvent,
    TaskOverduePayload,
)
from .service import publish_events, utcnow
from .store import StoreGroup, append_events_only, read_committed, with_store_retry
from .store.protocols import EventPublisher

log = structlog.get_logger()


class SweepReport(BaseModel):
    """一次扫描的结果"""

    swept_at: datetime
    overdue: int = Field(default=0, description="产生的 TASK_OVERDUE 数")
    approaching: int = Field(default=0, description="产生的 DEADLINE_APPROACHING 数")
    events: list[TaskEvent] = Field(default_factory=list)


class DeadlineSweeper:
    """截止时间扫描器"""

    def __init__(
        self,
        store_group: StoreGroup,
        publisher: EventPublisher | None = None,
        clock: Callable[[], datetime] | None = None,
        reminder_windows_h: Sequence[int] = (
            DEADLINE_REMINDER_HOURS,
            DEADLINE_FINAL_REMINDER_HOURS,
        ),
        overdue_repeat_h: int = OVERDUE_REPEAT_HOURS,
    ) -> None:
        self._stores = store_group
        self._publisher = publisher
        self._clock = clock or utcnow
        self._windows = sorted(set(reminder_windows_h))
        self._overdue_repeat = timedelta(hours=overdue_repeat_h)

    async def sweep(self, now: datetime | None = None) -> SweepReport:
        """执行一次扫描并持久化、发布产生的事件"""
        now = now or self._clock()
        report = SweepReport(swept_at=now)

        task_store = self._stores.task_store
        event_store = self._stores.event_store
        write_lock = self._stores.write_lock

        overdue_tasks = await read_committed(
            write_lock, lambda: task_store.list_overdue(now), "list_overdue"
        )
        for task in overdue_tasks:
            already = await read_committed(
                write_lock,
                lambda: event_store.has_event_since(
                    task.task_id, EventType.TASK_OVERDUE, now - self._overdue_repeat
                ),
                "has_event_since",
            )
            if already:
                continue
            days_overdue = math.ceil((now - task.due_date).total_seconds() / 86400)
            report.events.append(
                self._event(
                    task,
                    EventType.TASK_OVERDUE,
                    now,
                    TaskOverduePayload(
                        title=task.title,
                        due_date=task.due_date,
                        days_overdue=days_overdue,
                    ),
                )
            )
            report.overdue += 1

        if self._windows:
            horizon = now + timedelta(hours=self._windows[-1])
            upcoming = await read_committed(
                write_lock,
                lambda: task_store.list_due_between(now, horizon),
                "list_due_between",
            )
        else:
            upcoming = []
        for task in upcoming:
            hours_left = math.ceil((task.due_date - now).total_seconds() / 3600)
            window = next(w for w in self._windows if hours_left <= w)
            window_start = task.due_date - timedelta(hours=window)
            already = await read_committed(
                write_lock,
                lambda: event_store.has_event_since(
                    task.task_id, EventType.DEADLINE_APPROACHING, window_start
                ),
                "has_event_since",
            )
            if already:
                continue
            report.events.append(
                self._event(
                    task,
                    EventType.DEADLINE_APPROACHING,
                    now,
                    DeadlineApproachingPayload(
                        title=task.title,
                        due_date=task.due_date,
                        hours_until_deadline=hours_left,
                    ),
                )
            )
            report.approaching += 1

        if report.events:
            await with_store_retry(
                lambda: append_events_only(
                    self._stores.conn,
                    event_store,
                    self._stores.write_lock,
                    report.events,
                ),
                "append_events",
            )
            publish_events(self._publisher, report.events)

        log.info(
            "deadline_sweep_completed",
            overdue=report.overdue,
            approaching=report.approaching,
        )
        return report

    @staticmethod
    def _event(
        task: Task,
        event_type: EventType,
        now: datetime,
        payload: BaseModel,
    ) -> TaskEvent:
        return TaskEvent(
            event_id=str(ULID()),
            task_id=task.task_id,
            ts=now,
            type=event_type,
            actor_id=None,
            recipients=task.stakeholders(),
            payload=payload.model_dump(mode="json"),
        )
