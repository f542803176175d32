"""EventStore SQLite 实现

task_events 表 append-only：只允许插入，不允许更新或删除。
同一任务内按写入顺序（seq 自增列）返回。
"""

import json
from datetime import datetime

import aiosqlite

from ..models.enums import EventType
from ..models.event import TaskEvent
from .task_store import to_db_ts


class SqliteEventStore:
    """EventStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def append_event(self, event: TaskEvent) -> None:
        """追加事件（append-only）

        注意：此方法不自动提交事务，需由调用方管理事务。
        """
        await self._conn.execute(
            """
            INSERT INTO task_events (event_id, task_id, ts, type, actor_id,
                                     recipients, payload)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event.event_id,
                event.task_id,
                to_db_ts(event.ts),
                event.type.value,
                event.actor_id,
                json.dumps(event.recipients, ensure_ascii=False),
                json.dumps(event.payload, ensure_ascii=False),
            ),
        )

    async def get_events_for_task(self, task_id: str) -> list[TaskEvent]:
        """查询指定任务的所有事件，按写入顺序"""
        cursor = await self._conn.execute(
            """
            SELECT event_id, task_id, ts, type, actor_id, recipients, payload
            FROM task_events WHERE task_id = ? ORDER BY seq ASC
            """,
            (task_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_event(row) for row in rows]

    async def has_event_since(
        self,
        task_id: str,
        event_type: EventType,
        since: datetime,
    ) -> bool:
        """指定任务在 since 之后是否已有该类型事件（用于截止提醒去重）"""
        cursor = await self._conn.execute(
            """
            SELECT 1 FROM task_events
            WHERE task_id = ? AND type = ? AND ts >= ?
            LIMIT 1
            """,
            (task_id, event_type.value, to_db_ts(since)),
        )
        row = await cursor.fetchone()
        return row is not None

    @staticmethod
    def _row_to_event(row: aiosqlite.Row) -> TaskEvent:
        """将数据库行转换为 TaskEvent 模型"""
        return TaskEvent(
            event_id=row[0],
            task_id=row[1],
            ts=datetime.fromisoformat(row[2]),
            type=EventType(row[3]),
            actor_id=row[4],
            recipients=json.loads(row[5]) if row[5] else [],
            payload=json.loads(row[6]) if row[6] else {},
        )
