"""TaskService -- 任务生命周期与工时命令入口

每条修改命令在同一个原子单元内执行：
1. 获取 task 级别锁（同一任务的命令串行，不同任务完全并行）
2. 读取完整任务文档，校验访问范围
3. 在内存中通过 TaskAggregate 执行命令
4. 条件写回（version CAS）并在同一事务内追加事件
5. 提交后把事件交给发布器（fire-and-forget，不等待投递）

四类领域错误以 Outcome 返回，不跨越服务边界抛出；
InfrastructureError（存储重试耗尽）照常抛出，由调用层处理。
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from datetime import UTC, datetime
from typing import Any, TypeVar

import structlog
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .access import (
    ensure_can_create,
    ensure_can_delete,
    ensure_can_mutate,
    ensure_can_view,
    scope_filter,
)
from .config import COMMAND_MAX_ATTEMPTS
from .directory import DirectoryLookup
from .errors import ConflictError, DomainError, NotFoundError, validation_error_from
from .lifecycle import TaskAggregate, build_task_view, summarize_time
from .models import (
    TERMINAL_STATES,
    Actor,
    AttachmentRef,
    ManualTimeEntry,
    Task,
    TaskCreate,
    TaskEvent,
    TaskFilter,
    TaskStatus,
    TaskUpdate,
    TaskView,
    TimeEntry,
    TimeEntryUpdate,
    TimeSummary,
)
from .outcome import Outcome
from .store import (
    StoreGroup,
    TaskVersionConflictError,
    create_task_with_events,
    delete_task,
    read_committed,
    save_task_with_events,
    with_store_retry,
)
from .store.protocols import EventPublisher

log = structlog.get_logger()

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


def utcnow() -> datetime:
    return datetime.now(UTC)


def publish_events(publisher: EventPublisher | None, events: Sequence[TaskEvent]) -> None:
    """交给发布器，不等待投递；发布器自身异常只记录日志"""
    if not events or publisher is None:
        return
    try:
        publisher.publish(list(events))
    except Exception as e:
        log.error(
            "event_publish_failed",
            error_type=type(e).__name__,
            error=str(e),
            event_count=len(events),
        )


class TaskService:
    """任务业务服务"""

    def __init__(
        self,
        store_group: StoreGroup,
        directory: DirectoryLookup,
        publisher: EventPublisher | None = None,
        clock: Callable[[], datetime] | None = None,
        max_command_attempts: int = COMMAND_MAX_ATTEMPTS,
    ) -> None:
        self._stores = store_group
        self._directory = directory
        self._publisher = publisher
        self._clock = clock or utcnow
        self._max_command_attempts = max_command_attempts
        self._task_locks: dict[str, asyncio.Lock] = {}
        self._task_locks_guard = asyncio.Lock()

    def now(self) -> datetime:
        return self._clock()

    # ---- 创建 / 查询 ----

    async def create_task(
        self, data: TaskCreate | dict[str, Any], actor: Actor
    ) -> Outcome[Task]:
        """创建任务"""

        async def command() -> Task:
            payload = self._parse(TaskCreate, data)
            ensure_can_create(actor, payload.department_id)
            assignee = await self._lookup(payload.assigned_to)
            client = await self._lookup(payload.client_id)

            aggregate = TaskAggregate.create(
                payload, actor, self.now(), assignee=assignee, client=client
            )
            await with_store_retry(
                lambda: create_task_with_events(
                    self._stores.conn,
                    self._stores.task_store,
                    self._stores.event_store,
                    self._stores.write_lock,
                    aggregate.task,
                    aggregate.pending_events,
                ),
                "create_task",
            )
            log.info(
                "task_created",
                task_id=aggregate.task.task_id,
                department_id=aggregate.task.department_id,
                actor_id=actor.actor_id,
            )
            self._publish(aggregate.pending_events)
            return aggregate.task

        return await self._run("create_task", command)

    async def get_task(self, task_id: str, actor: Actor) -> Outcome[Task]:
        async def command() -> Task:
            task = await self._load(task_id)
            ensure_can_view(actor, task)
            return task

        return await self._run("get_task", command)

    async def view_task(self, task_id: str, actor: Actor) -> Outcome[TaskView]:
        """任务快照 + 读取时计算的派生指标"""

        async def command() -> TaskView:
            task = await self._load(task_id)
            ensure_can_view(actor, task)
            return build_task_view(task, self.now())

        return await self._run("view_task", command)

    async def list_tasks(
        self, actor: Actor, query: TaskFilter | None = None
    ) -> Outcome[list[Task]]:
        async def command() -> list[Task]:
            scoped = scope_filter(actor, query)
            return await read_committed(
                self._stores.write_lock,
                lambda: self._stores.task_store.list_tasks(scoped),
                "list_tasks",
            )

        return await self._run("list_tasks", command)

    async def list_overdue(
        self, actor: Actor, query: TaskFilter | None = None
    ) -> Outcome[list[Task]]:
        """已过截止时间且未终结的任务（按操作者访问范围过滤），按 due_date 正序"""

        async def command() -> list[Task]:
            scoped = scope_filter(actor, query)
            now = self.now()
            return await read_committed(
                self._stores.write_lock,
                lambda: self._stores.task_store.list_overdue(now, scoped),
                "list_overdue",
            )

        return await self._run("list_overdue", command)

    async def get_time_summary(self, task_id: str, actor: Actor) -> Outcome[TimeSummary]:
        async def command() -> TimeSummary:
            task = await self._load(task_id)
            ensure_can_view(actor, task)
            return summarize_time(task)

        return await self._run("get_time_summary", command)

    async def get_task_events(
        self, task_id: str, actor: Actor
    ) -> Outcome[list[TaskEvent]]:
        async def command() -> list[TaskEvent]:
            task = await self._load(task_id)
            ensure_can_view(actor, task)
            return await read_committed(
                self._stores.write_lock,
                lambda: self._stores.event_store.get_events_for_task(task_id),
                "get_events_for_task",
            )

        return await self._run("get_task_events", command)

    # ---- 修改命令 ----

    async def update_task(
        self,
        task_id: str,
        data: TaskUpdate | dict[str, Any],
        actor: Actor,
    ) -> Outcome[Task]:
        """部分更新任务"""

        async def command() -> Task:
            payload = self._parse(TaskUpdate, data)
            assignee = await self._lookup(payload.assigned_to)
            client = await self._lookup(payload.client_id)

            def apply(aggregate: TaskAggregate, now: datetime) -> Task:
                aggregate.apply_update(
                    payload, actor, now, assignee=assignee, client=client
                )
                return aggregate.task

            return await self._mutate(task_id, actor, "update_task", apply)

        return await self._run("update_task", command)

    async def change_status(
        self,
        task_id: str,
        status: TaskStatus,
        actor: Actor,
        reason: str | None = None,
    ) -> Outcome[Task]:
        """显式状态变更"""

        async def command() -> Task:
            def apply(aggregate: TaskAggregate, now: datetime) -> Task:
                aggregate.change_status(status, actor, now, reason=reason)
                return aggregate.task

            return await self._mutate(task_id, actor, "change_status", apply)

        return await self._run("change_status", command)

    async def assign_task(
        self, task_id: str, assignee_id: str, actor: Actor
    ) -> Outcome[Task]:
        """分配负责人（负责人须属于任务所在部门）"""

        async def command() -> Task:
            assignee = await self._lookup(assignee_id)

            def apply(aggregate: TaskAggregate, now: datetime) -> Task:
                aggregate.assign(assignee_id, assignee, actor, now)
                return aggregate.task

            return await self._mutate(task_id, actor, "assign_task", apply)

        return await self._run("assign_task", command)

    async def set_progress(
        self,
        task_id: str,
        percentage: int,
        actor: Actor,
        note: str | None = None,
    ) -> Outcome[Task]:
        """设置进度百分比（可能触发隐式状态流转）"""

        async def command() -> Task:
            def apply(aggregate: TaskAggregate, now: datetime) -> Task:
                aggregate.set_progress(percentage, actor, now, note=note)
                return aggregate.task

            return await self._mutate(task_id, actor, "set_progress", apply)

        return await self._run("set_progress", command)

    async def add_note(self, task_id: str, text: str, actor: Actor) -> Outcome[Task]:
        async def command() -> Task:
            def apply(aggregate: TaskAggregate, now: datetime) -> Task:
                aggregate.add_note(text, actor, now)
                return aggregate.task

            return await self._mutate(task_id, actor, "add_note", apply)

        return await self._run("add_note", command)

    # ---- 时间账本 ----

    async def start_time(
        self, task_id: str, actor: Actor, description: str | None = None
    ) -> Outcome[TimeEntry]:
        async def command() -> TimeEntry:
            def apply(aggregate: TaskAggregate, now: datetime) -> TimeEntry:
                return aggregate.start_time(actor, now, description)

            return await self._mutate(task_id, actor, "start_time", apply)

        return await self._run("start_time", command)

    async def stop_time(
        self, task_id: str, actor: Actor, description: str | None = None
    ) -> Outcome[TimeEntry]:
        async def command() -> TimeEntry:
            def apply(aggregate: TaskAggregate, now: datetime) -> TimeEntry:
                return aggregate.stop_time(actor, now, description)

            return await self._mutate(task_id, actor, "stop_time", apply)

        return await self._run("stop_time", command)

    async def record_manual_time(
        self,
        task_id: str,
        data: ManualTimeEntry | dict[str, Any],
        actor: Actor,
    ) -> Outcome[TimeEntry]:
        async def command() -> TimeEntry:
            payload = self._parse(ManualTimeEntry, data)

            def apply(aggregate: TaskAggregate, now: datetime) -> TimeEntry:
                return aggregate.record_manual_time(actor, payload, now)

            return await self._mutate(task_id, actor, "record_manual_time", apply)

        return await self._run("record_manual_time", command)

    async def update_time_entry(
        self,
        task_id: str,
        entry_id: str,
        data: TimeEntryUpdate | dict[str, Any],
        actor: Actor,
    ) -> Outcome[TimeEntry]:
        async def command() -> TimeEntry:
            payload = self._parse(TimeEntryUpdate, data)

            def apply(aggregate: TaskAggregate, now: datetime) -> TimeEntry:
                return aggregate.update_time_entry(entry_id, actor, payload, now)

            return await self._mutate(task_id, actor, "update_time_entry", apply)

        return await self._run("update_time_entry", command)

    async def delete_time_entry(
        self, task_id: str, entry_id: str, actor: Actor
    ) -> Outcome[None]:
        async def command() -> None:
            def apply(aggregate: TaskAggregate, now: datetime) -> None:
                aggregate.delete_time_entry(entry_id, actor, now)

            await self._mutate(task_id, actor, "delete_time_entry", apply)

        return await self._run("delete_time_entry", command)

    # ---- 附件 / 删除 ----

    async def add_attachment(
        self,
        task_id: str,
        filename: str,
        content: bytes,
        actor: Actor,
        mime: str = "application/octet-stream",
    ) -> Outcome[AttachmentRef]:
        """写入附件 blob 并把引用加入任务；引用写入失败时删除 blob"""

        async def command() -> AttachmentRef:
            task = await self._load(task_id)
            ensure_can_mutate(actor, task)
            ref = await self._stores.attachment_store.put_attachment(
                task_id, filename, content, actor.actor_id, self.now(), mime=mime
            )

            def apply(aggregate: TaskAggregate, now: datetime) -> AttachmentRef:
                aggregate.add_attachment(ref, now)
                return ref

            try:
                return await self._mutate(task_id, actor, "add_attachment", apply)
            except Exception:
                await self._stores.attachment_store.delete_attachment(ref)
                raise

        return await self._run("add_attachment", command)

    async def remove_attachment(
        self, task_id: str, attachment_id: str, actor: Actor
    ) -> Outcome[None]:
        async def command() -> None:
            def apply(aggregate: TaskAggregate, now: datetime) -> AttachmentRef:
                return aggregate.remove_attachment(attachment_id, now)

            ref = await self._mutate(task_id, actor, "remove_attachment", apply)
            await self._stores.attachment_store.delete_attachment(ref)

        return await self._run("remove_attachment", command)

    async def get_attachment_content(
        self, task_id: str, attachment_id: str, actor: Actor
    ) -> Outcome[tuple[AttachmentRef, bytes]]:
        async def command() -> tuple[AttachmentRef, bytes]:
            task = await self._load(task_id)
            ensure_can_view(actor, task)
            for ref in task.attachments:
                if ref.attachment_id == attachment_id:
                    content = await self._stores.attachment_store.get_attachment_content(ref)
                    if content is None:
                        break
                    return ref, content
            raise NotFoundError(
                f"Attachment {attachment_id} not found", code="ATTACHMENT_NOT_FOUND"
            )

        return await self._run("get_attachment_content", command)

    async def delete_task(self, task_id: str, actor: Actor) -> Outcome[None]:
        """删除任务文档及其附件 blob（事件日志保留）"""

        async def command() -> None:
            lock = await self._get_task_lock(task_id)
            async with lock:
                task = await self._load(task_id)
                ensure_can_delete(actor, task)
                deleted = await with_store_retry(
                    lambda: delete_task(
                        self._stores.conn,
                        self._stores.task_store,
                        self._stores.write_lock,
                        task_id,
                    ),
                    "delete_task",
                )
                if not deleted:
                    raise NotFoundError(f"Task {task_id} not found", code="TASK_NOT_FOUND")
                await self._stores.attachment_store.delete_task_attachments(task_id)
            await self._cleanup_task_lock(task_id)
            log.info("task_deleted", task_id=task_id, actor_id=actor.actor_id)

        return await self._run("delete_task", command)

    # ---- 内部 ----

    async def _run(self, op_name: str, command: Callable[[], Awaitable[T]]) -> Outcome[T]:
        """执行命令，把领域错误转换为 Outcome"""
        try:
            value = await command()
        except DomainError as e:
            log.info(
                "task_command_rejected",
                op=op_name,
                code=e.code,
                error_type=type(e).__name__,
                message=e.message,
            )
            return Outcome.failure(e)
        return Outcome.success(value)

    async def _mutate(
        self,
        task_id: str,
        actor: Actor,
        op_name: str,
        apply: Callable[[TaskAggregate, datetime], T],
    ) -> T:
        """原子读-改-写：task 级别锁 + version CAS，CAS 失败整条命令重试"""
        lock = await self._get_task_lock(task_id)
        async with lock:
            for attempt in range(1, self._max_command_attempts + 1):
                task = await self._load(task_id)
                ensure_can_mutate(actor, task)

                aggregate = TaskAggregate(task)
                result = apply(aggregate, self.now())
                try:
                    await with_store_retry(
                        lambda: save_task_with_events(
                            self._stores.conn,
                            self._stores.task_store,
                            self._stores.event_store,
                            self._stores.write_lock,
                            aggregate.task,
                            aggregate.pending_events,
                        ),
                        op_name,
                    )
                except TaskVersionConflictError:
                    if attempt < self._max_command_attempts:
                        log.warning(
                            "task_version_conflict_retry",
                            task_id=task_id,
                            op=op_name,
                            attempt=attempt,
                        )
                        continue
                    raise ConflictError(
                        "Task was modified concurrently, please retry",
                        code="CONCURRENT_MODIFICATION",
                    ) from None
                break

        log.info(
            "task_command_applied",
            task_id=task_id,
            op=op_name,
            actor_id=actor.actor_id,
            status=aggregate.task.status,
            version=aggregate.task.version,
        )
        self._publish(aggregate.pending_events)
        if aggregate.task.status in TERMINAL_STATES:
            await self._cleanup_task_lock(task_id)
        return result

    async def _load(self, task_id: str) -> Task:
        task = await read_committed(
            self._stores.write_lock,
            lambda: self._stores.task_store.get_task(task_id),
            "get_task",
        )
        if task is None:
            raise NotFoundError(f"Task {task_id} not found", code="TASK_NOT_FOUND")
        return task

    async def _lookup(self, user_id: str | None) -> Actor | None:
        if not user_id:
            return None
        return await self._directory.get_identity(user_id)

    @staticmethod
    def _parse(model: type[M], data: M | dict[str, Any]) -> M:
        if isinstance(data, model):
            return data
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            raise validation_error_from(e) from e

    def _publish(self, events: Sequence[TaskEvent]) -> None:
        publish_events(self._publisher, events)

    async def _get_task_lock(self, task_id: str) -> asyncio.Lock:
        """获取 task 级别锁，序列化同一任务的读-改-写。"""
        async with self._task_locks_guard:
            lock = self._task_locks.get(task_id)
            if lock is None:
                lock = asyncio.Lock()
                self._task_locks[task_id] = lock
            return lock

    async def _cleanup_task_lock(self, task_id: str) -> None:
        """终态或删除后释放 task 锁，避免锁字典无限增长"""
        async with self._task_locks_guard:
            lock = self._task_locks.get(task_id)
            if lock is not None and not lock.locked():
                self._task_locks.pop(task_id, None)
