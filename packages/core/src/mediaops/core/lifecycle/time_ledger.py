"""TimeLedger -- 任务时间条目账本

拥有任务的 time_entries 列表，所有增删改都经过本类：
- 同一操作者在同一任务上最多一个活动条目
- 每次变更后从条目重新计算 actual_hours
- 只有条目所有者或管理角色可以修改/删除条目
"""

from datetime import datetime, timedelta

import structlog
from ulid import ULID

from ..errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..models.commands import ManualTimeEntry, TimeEntryUpdate
from ..models.enums import TERMINAL_STATES
from ..models.identity import Actor
from ..models.task import Task, TimeEntry
from .metrics import compute_actual_hours, minutes_between

log = structlog.get_logger()


def _end_from_duration(start_time: datetime, duration_minutes: int) -> datetime:
    try:
        return start_time + timedelta(minutes=duration_minutes)
    except OverflowError as exc:
        raise ValidationError("Duration out of range") from exc


class TimeLedger:
    """任务时间账本"""

    def __init__(self, task: Task) -> None:
        self._task = task

    @property
    def entries(self) -> list[TimeEntry]:
        return self._task.time_entries

    def get(self, entry_id: str) -> TimeEntry:
        for entry in self._task.time_entries:
            if entry.entry_id == entry_id:
                return entry
        raise NotFoundError(f"Time entry {entry_id} not found", code="TIME_ENTRY_NOT_FOUND")

    def active_entry_for(self, actor_id: str) -> TimeEntry | None:
        for entry in self._task.time_entries:
            if entry.actor_id == actor_id and entry.is_active:
                return entry
        return None

    def active_entries(self) -> list[TimeEntry]:
        return [entry for entry in self._task.time_entries if entry.is_active]

    def start(self, actor_id: str, now: datetime, description: str | None = None) -> TimeEntry:
        """开始计时

        Raises:
            ConflictError: 该操作者已有活动条目，或任务已在终态
        """
        if self._task.status in TERMINAL_STATES:
            raise ConflictError(
                f"Task is already in terminal state: {self._task.status}",
                code="TASK_ALREADY_TERMINAL",
            )
        if self.active_entry_for(actor_id) is not None:
            raise ConflictError("active time entry exists", code="ACTIVE_TIME_ENTRY_EXISTS")

        entry = TimeEntry(
            entry_id=str(ULID()),
            actor_id=actor_id,
            start_time=now,
            description=description or "",
            is_active=True,
            created_at=now,
        )
        self._task.time_entries.append(entry)
        self._recompute()
        return entry

    def stop(self, actor_id: str, now: datetime, description: str | None = None) -> TimeEntry:
        """停止该操作者的活动条目

        Raises:
            NotFoundError: 该操作者没有活动条目
        """
        entry = self.active_entry_for(actor_id)
        if entry is None:
            raise NotFoundError(
                "No active time entry found for this task",
                code="ACTIVE_TIME_ENTRY_NOT_FOUND",
            )

        self._close(entry, now)
        if description:
            entry.description = description
        self._recompute()
        return entry

    def record_manual(self, actor_id: str, data: ManualTimeEntry, now: datetime) -> TimeEntry:
        """补录一条已关闭的条目

        end_time 优先；只给 duration_minutes 时推导 end_time。

        Raises:
            ValidationError: 既无 end_time 也无 duration_minutes，时长 <= 0，或推导出的结束时间越界
        """
        if data.end_time is None and data.duration_minutes is None:
            raise ValidationError(
                "Start time and either end time or duration are required"
            )

        if data.end_time is not None:
            end_time = data.end_time
            duration = minutes_between(data.start_time, end_time)
        else:
            duration = data.duration_minutes
            end_time = _end_from_duration(data.start_time, duration)

        if duration <= 0:
            raise ValidationError("Duration must be greater than 0")

        entry = TimeEntry(
            entry_id=str(ULID()),
            actor_id=actor_id,
            start_time=data.start_time,
            end_time=end_time,
            duration_minutes=duration,
            description=data.description,
            is_active=False,
            created_at=now,
        )
        self._task.time_entries.append(entry)
        self._recompute()
        return entry

    def update(self, entry_id: str, actor: Actor, data: TimeEntryUpdate) -> TimeEntry:
        """修改条目，时间字段变化时重新计算 duration_minutes

        Raises:
            NotFoundError: 条目不存在
            AuthorizationError: 既非所有者也非管理角色
            ConflictError: 试图修改活动条目的结束时间/时长
            ValidationError: 修改后时长 <= 0，或推导出的结束时间越界
        """
        entry = self.get(entry_id)
        self._authorize(entry, actor)

        provided = {
            name for name in data.model_fields_set if getattr(data, name) is not None
        }
        time_fields = provided & {"start_time", "end_time", "duration_minutes"}

        if entry.is_active and time_fields - {"start_time"}:
            raise ConflictError(
                "Active time entry must be stopped before editing its end",
                code="TIME_ENTRY_ACTIVE",
            )

        if time_fields:
            start_time = data.start_time if "start_time" in provided else entry.start_time
            end_time = entry.end_time
            duration = entry.duration_minutes

            if "end_time" in provided:
                end_time = data.end_time
                duration = minutes_between(start_time, end_time)
            elif "duration_minutes" in provided:
                duration = data.duration_minutes
                end_time = _end_from_duration(start_time, duration)
            elif not entry.is_active and end_time is not None:
                duration = minutes_between(start_time, end_time)

            if not entry.is_active and (duration is None or duration <= 0):
                raise ValidationError("Duration must be greater than 0")

            entry.start_time = start_time
            entry.end_time = end_time
            entry.duration_minutes = duration

        if "description" in provided:
            entry.description = data.description

        self._recompute()
        return entry

    def delete(self, entry_id: str, actor: Actor) -> TimeEntry:
        """删除条目

        Raises:
            NotFoundError: 条目不存在
            AuthorizationError: 既非所有者也非管理角色
        """
        entry = self.get(entry_id)
        self._authorize(entry, actor)
        self._task.time_entries = [
            e for e in self._task.time_entries if e.entry_id != entry_id
        ]
        self._recompute()
        return entry

    def close_all_active(self, now: datetime) -> list[TimeEntry]:
        """关闭所有活动条目（任务进入 completed 时调用）"""
        closed = self.active_entries()
        for entry in closed:
            self._close(entry, now)
        if closed:
            log.info(
                "time_entries_closed_on_completion",
                task_id=self._task.task_id,
                count=len(closed),
            )
        self._recompute()
        return closed

    @staticmethod
    def _close(entry: TimeEntry, now: datetime) -> None:
        entry.end_time = now
        if entry.duration_minutes is None:
            entry.duration_minutes = max(0, minutes_between(entry.start_time, now))
        entry.is_active = False

    @staticmethod
    def _authorize(entry: TimeEntry, actor: Actor) -> None:
        if entry.actor_id != actor.actor_id and not actor.is_elevated:
            raise AuthorizationError("You can only modify your own time entries")

    def _recompute(self) -> None:
        self._task.actual_hours = compute_actual_hours(self._task.time_entries)
