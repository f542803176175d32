"""ProgressTracker -- 进度百分比与备注

百分比变化按以下规则向前推导状态（不覆盖终态或已手动推进的状态）：
- 0：仅 pending 保持 pending；其他状态视为回到 pending 的请求
- (0, 75)：pending -> in_progress
- [75, 100)：pending / in_progress -> review
- 100：-> completed
"""

from dataclasses import dataclass
from datetime import datetime

from ..config import REVIEW_THRESHOLD
from ..errors import ConflictError, ValidationError
from ..models.enums import TERMINAL_STATES, TaskStatus
from ..models.task import ProgressNote, StatusChange, Task
from .status_machine import StatusMachine


@dataclass
class ProgressResult:
    """set_percentage 的结果"""

    previous_percentage: int
    percentage: int
    note: ProgressNote | None = None
    status_change: StatusChange | None = None


class ProgressTracker:
    """进度跟踪器"""

    def __init__(self, task: Task) -> None:
        self._task = task

    def set_percentage(
        self,
        value: int,
        actor_id: str,
        now: datetime,
        note: str | None = None,
    ) -> ProgressResult:
        """设置进度百分比并推导状态

        Raises:
            ValidationError: value 不是 [0, 100] 内的整数
            ConflictError: 任务已在终态，或非 pending 任务设为 0
        """
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 100:
            raise ValidationError("Progress must be an integer between 0 and 100")

        task = self._task
        if task.status in TERMINAL_STATES:
            raise ConflictError(
                f"Cannot update progress of a {task.status} task",
                code="TASK_ALREADY_TERMINAL",
            )
        if value == 0 and task.status != TaskStatus.PENDING:
            raise ConflictError(
                f"invalid transition: {task.status} -> {TaskStatus.PENDING}",
                code="INVALID_TRANSITION",
            )

        result = ProgressResult(
            previous_percentage=task.progress.percentage,
            percentage=value,
        )
        if note is not None and note.strip():
            result.note = self._append_note(note, actor_id, now)

        task.progress.percentage = value

        target = self._derive_status(value)
        if target is not None:
            result.status_change = StatusMachine(task).transition(
                target, actor_id, now, explicit=False
            )
        return result

    def add_note(self, text: str, actor_id: str, now: datetime) -> ProgressNote:
        """追加备注，不改变百分比和状态

        Raises:
            ValidationError: 备注为空或仅含空白
        """
        if text is None or not text.strip():
            raise ValidationError("Note text is required")
        return self._append_note(text, actor_id, now)

    def _append_note(self, text: str, actor_id: str, now: datetime) -> ProgressNote:
        note = ProgressNote(text=text.strip(), author_id=actor_id, created_at=now)
        self._task.progress.notes.append(note)
        return note

    def _derive_status(self, value: int) -> TaskStatus | None:
        status = self._task.status
        if value == 100:
            return TaskStatus.COMPLETED
        if value >= REVIEW_THRESHOLD:
            if status in (TaskStatus.PENDING, TaskStatus.IN_PROGRESS):
                return TaskStatus.REVIEW
            return None
        if value > 0 and status == TaskStatus.PENDING:
            return TaskStatus.IN_PROGRESS
        return None
