"""健康检查路由

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，包含 SQLite 连通性、attachments_dir、磁盘空间；
         profile=full 时额外探测通知投递端。
"""

import shutil
from pathlib import Path

import structlog
from fastapi import APIRouter, Query, Request
from starlette.responses import JSONResponse

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(
    request: Request,
    profile: str | None = Query(
        default=None,
        description="检查配置文件：core（默认）仅核心检查；full 包含通知投递端探测",
    ),
):
    """Readiness 检查 -- 验证核心依赖可用性

    检查项：
    1. sqlite: 数据库连通性
    2. attachments_dir: 附件目录可访问性
    3. disk_space_mb: 磁盘剩余空间
    4. notifier: profile=full 时探测投递端，否则 skipped
    """
    effective_profile = profile or "core"

    checks = {}
    all_ok = True

    # 1. SQLite 连通性检查
    try:
        store_group = request.app.state.store_group
        cursor = await store_group.conn.execute("SELECT 1")
        await cursor.fetchone()
        checks["sqlite"] = "ok"
    except Exception as e:
        checks["sqlite"] = f"error: {str(e)}"
        all_ok = False

    # 2. 附件目录检查
    try:
        attachments_path = Path(request.app.state.store_group.attachment_store.attachments_dir)
        if attachments_path.exists() and attachments_path.is_dir():
            checks["attachments_dir"] = "ok"
        else:
            checks["attachments_dir"] = "error: directory does not exist"
            all_ok = False
    except Exception as e:
        checks["attachments_dir"] = f"error: {str(e)}"
        all_ok = False

    # 3. 磁盘空间检查
    try:
        disk_usage = shutil.disk_usage("/")
        checks["disk_space_mb"] = disk_usage.free // (1024 * 1024)
    except Exception:
        checks["disk_space_mb"] = 0
        all_ok = False

    # 4. 通知投递端
    if effective_profile == "full":
        dispatcher = getattr(request.app.state, "dispatcher", None)
        if dispatcher is None:
            checks["notifier"] = "skipped"
        else:
            try:
                if await dispatcher.sink.health_check():
                    checks["notifier"] = "ok"
                else:
                    checks["notifier"] = "unreachable"
                    all_ok = False
            except Exception as e:
                log.warning("health_check_error", error=str(e))
                checks["notifier"] = "unreachable"
                all_ok = False
    else:
        checks["notifier"] = "skipped"

    status_code = 200 if all_ok else 503
    status_text = "ready" if all_ok else "not_ready"

    return JSONResponse(
        status_code=status_code,
        content={
            "status": status_text,
            "profile": effective_profile,
            "checks": checks,
        },
    )
