"""CLI 入口模块 -- python -m mediaops.core <command>

支持的命令：
  sweep-deadlines  执行一次逾期/临近截止扫描，事件写入 task_events
  list-overdue     列出全部逾期任务
"""

import asyncio
import sys

from .config import get_attachments_dir, get_db_path
from .lifecycle import days_remaining

_USAGE = """用法: python -m mediaops.core <command>
命令:
  sweep-deadlines  执行一次逾期/临近截止扫描
  list-overdue     列出全部逾期任务"""


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print(_USAGE)
        sys.exit(1)

    command = sys.argv[1]

    if command == "sweep-deadlines":
        asyncio.run(sweep_deadlines())
    elif command == "list-overdue":
        asyncio.run(list_overdue())
    else:
        print(f"未知命令: {command}")
        print("可用命令: sweep-deadlines, list-overdue")
        sys.exit(1)


async def sweep_deadlines() -> None:
    """执行一次截止扫描"""
    from .deadlines import DeadlineSweeper
    from .store import create_store_group

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")

    store_group = await create_store_group(db_path, get_attachments_dir())
    try:
        report = await DeadlineSweeper(store_group).sweep()
        print(
            f"扫描完成：逾期提醒 {report.overdue} 条，临近截止提醒 {report.approaching} 条"
        )
    finally:
        await store_group.close()


async def list_overdue() -> None:
    """列出逾期任务（不做访问范围过滤，供运维使用）"""
    from .service import utcnow
    from .store import create_store_group

    store_group = await create_store_group(get_db_path(), get_attachments_dir())
    try:
        now = utcnow()
        tasks = await store_group.task_store.list_overdue(now)
        for task in tasks:
            print(
                f"{task.task_id}  {task.status.value:<12} "
                f"{-days_remaining(task, now):>4}d  {task.department_id}  {task.title}"
            )
        print(f"共 {len(tasks)} 个逾期任务")
    finally:
        await store_group.close()


if __name__ == "__main__":
    main()
