"""TraceMiddleware -- 为任务操作绑定 trace_id

trace_id 从 /api/tasks/{task_id}/... 路径中提取 task_id 生成，
贯穿同一任务相关请求的日志。
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# ULID 长度
_TASK_ID_LENGTH = 26


class TraceMiddleware(BaseHTTPMiddleware):
    """任务级追踪中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        parts = request.url.path.split("/")
        trace_id = None

        for i, part in enumerate(parts):
            if part == "tasks" and i + 1 < len(parts):
                task_id = parts[i + 1]
                # 排除 /api/tasks/overdue 等非 ID 段
                if len(task_id) == _TASK_ID_LENGTH:
                    trace_id = f"trace-{task_id}"
                break

        if trace_id:
            structlog.contextvars.bind_contextvars(trace_id=trace_id, task_id=task_id)

        return await call_next(request)
