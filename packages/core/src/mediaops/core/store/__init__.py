"""MediaOps Core Store -- SQLite 持久化实现

提供工厂函数创建共享数据库连接的 Store 实例组。
"""

import asyncio
from pathlib import Path

import aiosqlite

from .attachment_store import FileAttachmentStore
from .event_store import SqliteEventStore
from .protocols import AttachmentStore, EventStore, TaskStore
from .sqlite_init import init_db
from .task_store import SqliteTaskStore
from .transaction import (
    TaskVersionConflictError,
    append_events_only,
    create_task_with_events,
    delete_task,
    read_committed,
    save_task_with_events,
    with_store_retry,
)


class StoreGroup:
    """Store 实例组 -- 共享同一个数据库连接"""

    def __init__(
        self,
        conn: aiosqlite.Connection,
        attachments_dir: Path,
    ) -> None:
        self.conn = conn
        self.task_store: TaskStore = SqliteTaskStore(conn)
        self.event_store: EventStore = SqliteEventStore(conn)
        self.attachment_store: AttachmentStore = FileAttachmentStore(attachments_dir)
        # 串行化共享连接上的 execute ... commit
        self.write_lock = asyncio.Lock()

    async def close(self) -> None:
        await self.conn.close()


async def create_store_group(
    db_path: str,
    attachments_dir: str | Path,
) -> StoreGroup:
    """创建 Store 实例组

    Args:
        db_path: SQLite 数据库文件路径
        attachments_dir: 附件文件存储目录

    Returns:
        StoreGroup 实例
    """
    attachments_path = Path(attachments_dir)
    attachments_path.mkdir(parents=True, exist_ok=True)

    # 确保数据库目录存在
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    conn.row_factory = aiosqlite.Row
    await init_db(conn)

    return StoreGroup(conn=conn, attachments_dir=attachments_path)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "SqliteTaskStore",
    "SqliteEventStore",
    "FileAttachmentStore",
    "init_db",
    "TaskVersionConflictError",
    "with_store_retry",
    "read_committed",
    "create_task_with_events",
    "save_task_with_events",
    "append_events_only",
    "delete_task",
]
