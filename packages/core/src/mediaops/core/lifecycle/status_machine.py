"""StatusMachine -- 任务状态机

显式流转按 VALID_TRANSITIONS 校验；由进度推导的隐式流转跳过校验表。
每次流转追加且仅追加一条 StatusChange，并执行进入状态时的副作用：
- in_progress / review / completed：首次进入时记录 start_date
- in_progress：进度为 0 时置为 25%
- review：进度低于 75% 时置为 75%
- completed：进度置 100%，记录 completed_date，关闭全部活动时间条目
- pending：进度归零
"""

from datetime import datetime

import structlog

from ..config import IN_PROGRESS_INITIAL_PERCENTAGE, REVIEW_THRESHOLD
from ..errors import ConflictError
from ..models.enums import ACTIVE_WORK_STATES, TERMINAL_STATES, TaskStatus, validate_transition
from ..models.task import StatusChange, Task
from .time_ledger import TimeLedger

log = structlog.get_logger()


class StatusMachine:
    """任务状态机"""

    def __init__(self, task: Task) -> None:
        self._task = task

    @property
    def status(self) -> TaskStatus:
        return self._task.status

    @property
    def is_terminal(self) -> bool:
        return self._task.status in TERMINAL_STATES

    def transition(
        self,
        to_status: TaskStatus,
        actor_id: str,
        now: datetime,
        reason: str | None = None,
        explicit: bool = True,
    ) -> StatusChange:
        """执行一次状态流转

        Args:
            to_status: 目标状态
            actor_id: 操作者 ID
            now: 当前时间
            reason: 变更原因（可选）
            explicit: 显式命令为 True；进度推导为 False

        Returns:
            追加到 status_history 的记录

        Raises:
            ConflictError: 显式流转不在合法表中，或任务已在终态
        """
        from_status = self._task.status

        if from_status in TERMINAL_STATES:
            raise ConflictError(
                f"invalid transition: {from_status} -> {to_status} (task is terminal)",
                code="INVALID_TRANSITION",
            )
        if explicit and not validate_transition(from_status, to_status):
            raise ConflictError(
                f"invalid transition: {from_status} -> {to_status}",
                code="INVALID_TRANSITION",
            )

        self._task.status = to_status
        self._on_enter(to_status, now)

        change = StatusChange(
            previous_status=from_status,
            new_status=to_status,
            actor_id=actor_id,
            changed_at=now,
            reason=reason,
        )
        self._task.status_history.append(change)

        log.debug(
            "task_status_transition",
            task_id=self._task.task_id,
            from_status=from_status,
            to_status=to_status,
            explicit=explicit,
        )
        return change

    def _on_enter(self, status: TaskStatus, now: datetime) -> None:
        task = self._task
        progress = task.progress

        if status in ACTIVE_WORK_STATES and task.start_date is None:
            task.start_date = now

        if status == TaskStatus.PENDING:
            progress.percentage = 0
        elif status == TaskStatus.IN_PROGRESS:
            if progress.percentage == 0:
                progress.percentage = IN_PROGRESS_INITIAL_PERCENTAGE
        elif status == TaskStatus.REVIEW:
            if progress.percentage < REVIEW_THRESHOLD:
                progress.percentage = REVIEW_THRESHOLD
        elif status == TaskStatus.COMPLETED:
            progress.percentage = 100
            if task.completed_date is None:
                task.completed_date = now
            TimeLedger(task).close_all_active(now)
