"""FastAPI 应用主文件

app 创建 + lifespan 管理：DB 初始化/关闭 + 用户目录 + 通知发布器 + 截止扫描 + 路由注册。
"""

from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from datetime import datetime

import structlog
from fastapi import FastAPI
from mediaops.core.config import (
    get_attachments_dir,
    get_db_path,
    get_directory_path,
    get_sweep_interval_s,
)
from mediaops.core.deadlines import DeadlineSweeper
from mediaops.core.directory import DirectoryLookup, InMemoryDirectory
from mediaops.core.service import TaskService
from mediaops.core.store import StoreGroup, create_store_group
from mediaops.notifier import EventDispatcher, create_dispatcher, load_notifier_config

from .errors import register_error_handlers
from .middleware.logging_config import setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import health, progress, tasks, time_entries
from .services.scheduler import DeadlineScheduler

log = structlog.get_logger()


def attach_services(
    app: FastAPI,
    store_group: StoreGroup,
    directory: DirectoryLookup,
    dispatcher: EventDispatcher,
    clock: Callable[[], datetime] | None = None,
) -> None:
    """把服务实例挂到 app.state 上"""
    app.state.store_group = store_group
    app.state.directory = directory
    app.state.dispatcher = dispatcher
    app.state.task_service = TaskService(
        store_group, directory, publisher=dispatcher, clock=clock
    )
    app.state.sweeper = DeadlineSweeper(store_group, publisher=dispatcher, clock=clock)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化存储与服务，关闭时清理"""
    store_group = await create_store_group(get_db_path(), get_attachments_dir())

    directory_path = get_directory_path()
    if directory_path:
        directory = InMemoryDirectory.from_json_file(directory_path)
    else:
        directory = InMemoryDirectory()
        log.warning("directory_not_configured")

    notifier_config = load_notifier_config()
    dispatcher = create_dispatcher(notifier_config)
    log.info("notifier_initialized", mode=notifier_config.mode)

    attach_services(app, store_group, directory, dispatcher)

    scheduler = DeadlineScheduler(app.state.sweeper, get_sweep_interval_s())
    app.state.scheduler = scheduler
    scheduler.start()

    yield

    # 关闭：停止扫描，等待在途通知，关闭数据库连接
    await scheduler.stop()
    await dispatcher.drain()
    await store_group.close()


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="MediaOps Gateway",
        version="0.1.0",
        description="MediaOps 任务生命周期与工时 API",
        lifespan=lifespan,
    )

    # 注册中间件（顺序：先 Trace 后 Logging）
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)

    # 初始化日志
    setup_logging()

    register_error_handlers(app)

    # 注册路由（/api/tasks/overdue 须先于 /api/tasks/{task_id}）
    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(progress.router, tags=["progress"])
    app.include_router(time_entries.router, tags=["time"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
