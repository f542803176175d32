"""TaskStore SQLite 实现

每个任务一行：document 列保存完整 Task JSON，其余列是供查询使用的投影。
save_task 是条件写（version CAS），不自动提交，事务由调用方管理。
"""

from datetime import UTC, datetime

import aiosqlite

from ..models.enums import TERMINAL_STATES
from ..models.query import TaskFilter
from ..models.task import Task


def to_db_ts(value: datetime) -> str:
    """统一的时间列格式：UTC、微秒精度，保证字典序即时间序"""
    return value.astimezone(UTC).isoformat(timespec="microseconds")


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_task(self, task: Task) -> None:
        """插入新任务（version 保持模型当前值）"""
        await self._conn.execute(
            """
            INSERT INTO tasks (task_id, created_at, updated_at, version, status,
                               department_id, assigned_to, client_id, due_date, document)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                task.task_id,
                to_db_ts(task.created_at),
                to_db_ts(task.updated_at),
                task.version,
                task.status.value,
                task.department_id,
                task.assigned_to,
                task.client_id,
                to_db_ts(task.due_date),
                task.model_dump_json(),
            ),
        )

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        cursor = await self._conn.execute(
            "SELECT version, document FROM tasks WHERE task_id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    async def save_task(self, task: Task, expected_version: int) -> bool:
        """条件写回任务文档

        仅当库中 version 等于 expected_version 时写入，并把 version 加一。

        Returns:
            True 写入成功；False 表示版本已被其他命令推进
        """
        new_version = expected_version + 1
        document = task.model_copy(update={"version": new_version}).model_dump_json()
        cursor = await self._conn.execute(
            """
            UPDATE tasks
            SET updated_at = ?, version = ?, status = ?, department_id = ?,
                assigned_to = ?, client_id = ?, due_date = ?, document = ?
            WHERE task_id = ? AND version = ?
            """,
            (
                to_db_ts(task.updated_at),
                new_version,
                task.status.value,
                task.department_id,
                task.assigned_to,
                task.client_id,
                to_db_ts(task.due_date),
                document,
                task.task_id,
                expected_version,
            ),
        )
        return cursor.rowcount == 1

    async def delete_task(self, task_id: str) -> bool:
        cursor = await self._conn.execute(
            "DELETE FROM tasks WHERE task_id = ?",
            (task_id,),
        )
        return cursor.rowcount == 1

    async def list_tasks(self, query: TaskFilter | None = None) -> list[Task]:
        """按过滤条件查询任务，按 created_at 倒序"""
        query = query or TaskFilter()
        clauses, params = self._where(query)
        sql = "SELECT version, document FROM tasks"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY created_at DESC LIMIT ?"
        cursor = await self._conn.execute(sql, (*params, query.limit))
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def list_overdue(
        self,
        now: datetime,
        query: TaskFilter | None = None,
    ) -> list[Task]:
        """查询已过截止时间且未终结的任务，按 due_date 正序"""
        return await self.list_due_between(None, now, query)

    async def list_due_between(
        self,
        start: datetime | None,
        end: datetime,
        query: TaskFilter | None = None,
    ) -> list[Task]:
        """查询截止时间落在 [start, end) 内且未终结的任务，按 due_date 正序"""
        query = query or TaskFilter()
        clauses, params = self._where(query)
        terminal = sorted(status.value for status in TERMINAL_STATES)
        clauses.append(f"status NOT IN ({', '.join('?' for _ in terminal)})")
        params.extend(terminal)
        if start is not None:
            clauses.append("due_date >= ?")
            params.append(to_db_ts(start))
        clauses.append("due_date < ?")
        params.append(to_db_ts(end))

        cursor = await self._conn.execute(
            "SELECT version, document FROM tasks WHERE "
            + " AND ".join(clauses)
            + " ORDER BY due_date ASC",
            tuple(params),
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    @staticmethod
    def _where(query: TaskFilter) -> tuple[list[str], list]:
        clauses: list[str] = []
        params: list = []
        if query.department_id is not None:
            clauses.append("department_id = ?")
            params.append(query.department_id)
        if query.client_id is not None:
            clauses.append("client_id = ?")
            params.append(query.client_id)
        if query.assigned_to is not None:
            clauses.append("assigned_to = ?")
            params.append(query.assigned_to)
        if query.status is not None:
            clauses.append("status = ?")
            params.append(query.status.value)
        return clauses, params

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        """将数据库行转换为 Task 模型（version 以列为准）"""
        task = Task.model_validate_json(row[1])
        task.version = row[0]
        return task
