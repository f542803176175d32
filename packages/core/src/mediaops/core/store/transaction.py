"""任务文档 + 事件原子事务封装

在同一 SQLite 事务内原子提交任务文档写入和 task_events 追加。
写入前后由连接级 write_lock 串行化 execute ... commit，
避免共享连接上两个事务交错。

只读查询经 read_committed 同样在 write_lock 下执行，不读取未提交数据。

with_store_retry 在存储适配器边界对瞬时错误（database is locked 等）
做有限次重试，耗尽后抛出 InfrastructureError。
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import aiosqlite
import structlog

from ..config import STORE_MAX_RETRIES, STORE_RETRY_BACKOFF_S
from ..errors import InfrastructureError
from ..models.event import TaskEvent
from ..models.task import Task
from .event_store import SqliteEventStore
from .task_store import SqliteTaskStore

log = structlog.get_logger()

T = TypeVar("T")


class TaskVersionConflictError(RuntimeError):
    """条件写失败：任务 version 已被其他命令推进"""

    def __init__(self, task_id: str, expected_version: int) -> None:
        super().__init__(
            f"task {task_id} version conflict (expected {expected_version})"
        )
        self.task_id = task_id
        self.expected_version = expected_version


async def with_store_retry(
    operation: Callable[[], Awaitable[T]],
    op_name: str,
    max_attempts: int | None = None,
    backoff_s: float | None = None,
) -> T:
    """执行存储操作，瞬时错误有限次重试

    Args:
        operation: 无参协程工厂，每次重试重新调用
        op_name: 用于日志的操作名
        max_attempts: 最大尝试次数，默认 STORE_MAX_RETRIES
        backoff_s: 退避基数（秒），第 n 次重试等待 n * backoff_s

    Raises:
        InfrastructureError: 重试耗尽或遇到非瞬时数据库错误
    """
    attempts = max_attempts if max_attempts is not None else STORE_MAX_RETRIES
    backoff = backoff_s if backoff_s is not None else STORE_RETRY_BACKOFF_S
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except aiosqlite.OperationalError as exc:
            if attempt >= attempts:
                log.error(
                    "store_retry_exhausted",
                    op=op_name,
                    attempts=attempt,
                    error=str(exc),
                )
                raise InfrastructureError(
                    f"{op_name} failed after {attempt} attempts: {exc}",
                    original_error=exc,
                ) from exc
            log.warning(
                "store_operation_retry",
                op=op_name,
                attempt=attempt,
                error=str(exc),
            )
            await asyncio.sleep(backoff * attempt)
        except aiosqlite.Error as exc:
            log.error("store_operation_failed", op=op_name, error=str(exc))
            raise InfrastructureError(f"{op_name} failed: {exc}", original_error=exc) from exc


async def read_committed(
    write_lock: asyncio.Lock,
    operation: Callable[[], Awaitable[T]],
    op_name: str,
) -> T:
    """在 write_lock 下执行只读查询（带 with_store_retry 重试）

    共享连接上的写事务在 execute ... commit 期间持有 write_lock，
    读取等待其提交或回滚后进行，只看到已提交的数据。
    """

    async def locked() -> T:
        async with write_lock:
            return await operation()

    return await with_store_retry(locked, op_name)


async def create_task_with_events(
    conn: aiosqlite.Connection,
    task_store: SqliteTaskStore,
    event_store: SqliteEventStore,
    write_lock: asyncio.Lock,
    task: Task,
    events: list[TaskEvent],
) -> None:
    """在同一事务内插入新任务及其事件"""
    async with write_lock:
        try:
            await task_store.create_task(task)
            for event in events:
                await event_store.append_event(event)
            await conn.commit()
        except Exception:
            await conn.rollback()
            raise


async def save_task_with_events(
    conn: aiosqlite.Connection,
    task_store: SqliteTaskStore,
    event_store: SqliteEventStore,
    write_lock: asyncio.Lock,
    task: Task,
    events: list[TaskEvent],
) -> None:
    """在同一事务内条件写回任务文档并追加事件

    提交成功后把 task.version 推进到库中的新值。

    Raises:
        TaskVersionConflictError: version 不匹配，事务已回滚
    """
    expected_version = task.version
    async with write_lock:
        try:
            saved = await task_store.save_task(task, expected_version)
            if not saved:
                raise TaskVersionConflictError(task.task_id, expected_version)
            for event in events:
                await event_store.append_event(event)
            await conn.commit()
        except Exception:
            await conn.rollback()
            raise
    task.version = expected_version + 1


async def append_events_only(
    conn: aiosqlite.Connection,
    event_store: SqliteEventStore,
    write_lock: asyncio.Lock,
    events: list[TaskEvent],
) -> None:
    """仅追加事件（不修改任务文档），用于截止扫描"""
    async with write_lock:
        try:
            for event in events:
                await event_store.append_event(event)
            await conn.commit()
        except Exception:
            await conn.rollback()
            raise


async def delete_task(
    conn: aiosqlite.Connection,
    task_store: SqliteTaskStore,
    write_lock: asyncio.Lock,
    task_id: str,
) -> bool:
    """删除任务文档（事件日志保留）"""
    async with write_lock:
        try:
            deleted = await task_store.delete_task(task_id)
            await conn.commit()
        except Exception:
            await conn.rollback()
            raise
    return deleted
