"""TaskAggregate -- 任务聚合（一致性单元）

组合 StatusMachine / ProgressTracker / TimeLedger 以及身份、归属、计费字段。
所有修改都经过这些组件，聚合本身不允许绕过它们直接写字段。
每条命令产生的生命周期事件收集在 pending_events 中，由调用方与文档同事务持久化。

部门归属、客户身份等外部查询由调用方预先解析为 Actor 传入，聚合保持纯同步。
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from ulid import ULID

from ..errors import NotFoundError, ValidationError, validation_error_from
from ..models.attachment import AttachmentRef
from ..models.commands import ManualTimeEntry, TaskCreate, TaskUpdate, TimeEntryUpdate
from ..models.enums import EventType, TaskStatus, UserRole
from ..models.event import TaskEvent
from ..models.identity import Actor
from ..models.payloads import (
    ProgressUpdatedPayload,
    StatusChangedPayload,
    TaskAssignedPayload,
)
from ..models.task import Billing, ProgressNote, Task, TimeEntry
from .progress import ProgressTracker
from .status_machine import StatusMachine
from .time_ledger import TimeLedger

# 通过 TaskUpdate 可直接替换的普通字段
_PLAIN_FIELDS = (
    "title",
    "description",
    "task_type",
    "priority",
    "estimated_hours",
    "due_date",
    "tags",
    "is_urgent",
    "department_specific",
)


def check_assignee(
    assignee_id: str,
    identity: Actor | None,
    department_id: str,
    actor: Actor,
) -> None:
    """校验负责人属于任务所在部门（super_admin 操作时豁免部门限制）

    未归属部门的用户（如前台）可以被分配到任何部门的任务。

    Raises:
        ValidationError: 负责人不存在，或不属于该部门
    """
    if identity is None:
        raise ValidationError(f"Assignee {assignee_id} not found")
    if identity.is_client:
        raise ValidationError("Clients cannot be assigned to tasks")
    if actor.role == UserRole.SUPER_ADMIN:
        return
    if (
        identity.role != UserRole.SUPER_ADMIN
        and identity.department_id is not None
        and identity.department_id != department_id
    ):
        raise ValidationError("Assigned user must belong to the task department")


def check_client(client_id: str, identity: Actor | None) -> None:
    """校验客户引用具备 client 身份

    Raises:
        ValidationError: 用户不存在或不是客户
    """
    if identity is None or not identity.is_client:
        raise ValidationError(f"Invalid client: {client_id}")


class TaskAggregate:
    """任务聚合根"""

    def __init__(self, task: Task) -> None:
        self.task = task
        self.pending_events: list[TaskEvent] = []

    # ---- 组件 ----

    @property
    def status_machine(self) -> StatusMachine:
        return StatusMachine(self.task)

    @property
    def progress(self) -> ProgressTracker:
        return ProgressTracker(self.task)

    @property
    def ledger(self) -> TimeLedger:
        return TimeLedger(self.task)

    # ---- 创建 ----

    @classmethod
    def create(
        cls,
        data: TaskCreate,
        actor: Actor,
        now: datetime,
        assignee: Actor | None = None,
        client: Actor | None = None,
    ) -> "TaskAggregate":
        """创建新任务（pending、0%、空账本，不写初始状态历史）

        Raises:
            ValidationError: 字段不合法、负责人不属于部门、客户身份不合法
        """
        if data.assigned_to:
            check_assignee(data.assigned_to, assignee, data.department_id, actor)
        if data.client_id:
            check_client(data.client_id, client)

        try:
            task = Task(
                task_id=str(ULID()),
                created_at=now,
                updated_at=now,
                title=data.title,
                description=data.description,
                task_type=data.task_type,
                tags=data.tags,
                is_urgent=data.is_urgent,
                priority=data.priority,
                department_id=data.department_id,
                assigned_to=data.assigned_to or None,
                created_by=actor.actor_id,
                client_id=data.client_id or None,
                estimated_hours=data.estimated_hours,
                due_date=data.due_date,
                billing=Billing(rate=data.billing.rate, billable=data.billing.billable),
                department_specific=data.department_specific,
            )
        except PydanticValidationError as exc:
            raise validation_error_from(exc) from exc

        aggregate = cls(task)
        if task.assigned_to:
            aggregate._emit_assigned(None, actor, now)
        return aggregate

    # ---- 更新 ----

    def apply_update(
        self,
        data: TaskUpdate,
        actor: Actor,
        now: datetime,
        assignee: Actor | None = None,
        client: Actor | None = None,
    ) -> None:
        """部分更新：只应用 data 中显式给出的字段

        负责人、客户、计费、状态分别走各自的校验路径；状态最后处理。

        Raises:
            ValidationError / ConflictError
        """
        fields = data.model_fields_set

        changes: dict[str, Any] = {}
        for name in _PLAIN_FIELDS:
            if name in fields and getattr(data, name) is not None:
                changes[name] = getattr(data, name)
        if changes:
            self._replace_fields(changes)

        if "assigned_to" in fields:
            if data.assigned_to:
                self.assign(data.assigned_to, assignee, actor, now)
            else:
                self.task.assigned_to = None

        if "client_id" in fields:
            if data.client_id:
                check_client(data.client_id, client)
                self.task.client_id = data.client_id
            else:
                self.task.client_id = None

        if "billing" in fields and data.billing is not None:
            billing_changes = data.billing.model_dump(exclude_unset=True)
            self.task.billing = self.task.billing.model_copy(update=billing_changes)

        if "status" in fields and data.status is not None:
            self.change_status(data.status, actor, now, reason=data.status_reason)

        self.touch(now)

    def assign(
        self,
        assignee_id: str,
        identity: Actor | None,
        actor: Actor,
        now: datetime,
    ) -> None:
        """分配负责人，负责人变化时产生 TASK_ASSIGNED

        Raises:
            ValidationError: 负责人不存在或不属于任务部门
        """
        check_assignee(assignee_id, identity, self.task.department_id, actor)
        previous = self.task.assigned_to
        self.task.assigned_to = assignee_id
        if previous != assignee_id:
            self._emit_assigned(previous, actor, now)
        self.touch(now)

    def change_status(
        self,
        to_status: TaskStatus,
        actor: Actor,
        now: datetime,
        reason: str | None = None,
    ) -> None:
        """显式状态变更

        Raises:
            ConflictError: 非法流转
        """
        change = self.status_machine.transition(
            to_status, actor.actor_id, now, reason=reason, explicit=True
        )
        self._emit(
            EventType.STATUS_CHANGED,
            actor,
            now,
            self._recipients_with_actor(actor),
            StatusChangedPayload(
                title=self.task.title,
                previous_status=change.previous_status,
                new_status=change.new_status,
                reason=reason or "",
            ),
        )
        self.touch(now)

    # ---- 进度 ----

    def set_progress(
        self,
        value: int,
        actor: Actor,
        now: datetime,
        note: str | None = None,
    ) -> None:
        """设置进度，产生 PROGRESS_UPDATED，状态变化时另产生 STATUS_CHANGED"""
        result = self.progress.set_percentage(value, actor.actor_id, now, note=note)

        self._emit(
            EventType.PROGRESS_UPDATED,
            actor,
            now,
            self._recipients_without_actor(actor),
            ProgressUpdatedPayload(
                title=self.task.title,
                previous_percentage=result.previous_percentage,
                percentage=self.task.progress.percentage,
                note=result.note.text if result.note else None,
                status=self.task.status,
            ),
        )
        if result.status_change is not None:
            self._emit(
                EventType.STATUS_CHANGED,
                actor,
                now,
                self._recipients_with_actor(actor),
                StatusChangedPayload(
                    title=self.task.title,
                    previous_status=result.status_change.previous_status,
                    new_status=result.status_change.new_status,
                    implicit=True,
                ),
            )
        self.touch(now)

    def add_note(self, text: str, actor: Actor, now: datetime) -> ProgressNote:
        note = self.progress.add_note(text, actor.actor_id, now)
        self.touch(now)
        return note

    # ---- 时间账本 ----

    def start_time(
        self, actor: Actor, now: datetime, description: str | None = None
    ) -> TimeEntry:
        entry = self.ledger.start(actor.actor_id, now, description)
        self.touch(now)
        return entry

    def stop_time(
        self, actor: Actor, now: datetime, description: str | None = None
    ) -> TimeEntry:
        entry = self.ledger.stop(actor.actor_id, now, description)
        self.touch(now)
        return entry

    def record_manual_time(
        self, actor: Actor, data: ManualTimeEntry, now: datetime
    ) -> TimeEntry:
        entry = self.ledger.record_manual(actor.actor_id, data, now)
        self.touch(now)
        return entry

    def update_time_entry(
        self, entry_id: str, actor: Actor, data: TimeEntryUpdate, now: datetime
    ) -> TimeEntry:
        entry = self.ledger.update(entry_id, actor, data)
        self.touch(now)
        return entry

    def delete_time_entry(self, entry_id: str, actor: Actor, now: datetime) -> TimeEntry:
        entry = self.ledger.delete(entry_id, actor)
        self.touch(now)
        return entry

    # ---- 附件引用 ----

    def add_attachment(self, ref: AttachmentRef, now: datetime) -> None:
        self.task.attachments.append(ref)
        self.touch(now)

    def remove_attachment(self, attachment_id: str, now: datetime) -> AttachmentRef:
        """移除附件引用

        Raises:
            NotFoundError: 附件不存在
        """
        for ref in self.task.attachments:
            if ref.attachment_id == attachment_id:
                self.task.attachments = [
                    a for a in self.task.attachments if a.attachment_id != attachment_id
                ]
                self.touch(now)
                return ref
        raise NotFoundError(
            f"Attachment {attachment_id} not found", code="ATTACHMENT_NOT_FOUND"
        )

    # ---- 内部 ----

    def touch(self, now: datetime) -> None:
        self.task.updated_at = now

    def _replace_fields(self, changes: dict[str, Any]) -> None:
        """整体重新校验后替换普通字段"""
        merged = {**self.task.model_dump(), **changes}
        try:
            self.task = Task.model_validate(merged)
        except PydanticValidationError as exc:
            raise validation_error_from(exc) from exc

    def _recipients_with_actor(self, actor: Actor) -> list[str]:
        return list(dict.fromkeys([*self.task.stakeholders(), actor.actor_id]))

    def _recipients_without_actor(self, actor: Actor) -> list[str]:
        return [ref for ref in self.task.stakeholders() if ref != actor.actor_id]

    def _emit_assigned(self, previous: str | None, actor: Actor, now: datetime) -> None:
        self._emit(
            EventType.TASK_ASSIGNED,
            actor,
            now,
            [self.task.assigned_to],
            TaskAssignedPayload(
                title=self.task.title,
                assigned_to=self.task.assigned_to,
                previous_assignee=previous,
                due_date=self.task.due_date,
            ),
        )

    def _emit(
        self,
        event_type: EventType,
        actor: Actor,
        now: datetime,
        recipients: list[str],
        payload: BaseModel,
    ) -> None:
        self.pending_events.append(
            TaskEvent(
                event_id=str(ULID()),
                task_id=self.task.task_id,
                ts=now,
                type=event_type,
                actor_id=actor.actor_id,
                recipients=recipients,
                payload=payload.model_dump(mode="json"),
            )
        )
