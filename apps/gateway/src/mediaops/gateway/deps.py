"""依赖注入模块 -- 通过 FastAPI Depends 注入服务实例与操作者身份

服务实例通过 app.state 管理，在 lifespan 中初始化/清理。
操作者身份由上游认证层通过请求头传入：
  X-Actor-Id / X-Actor-Role / X-Actor-Department
"""

from fastapi import Header, Request
from mediaops.core.models import Actor, UserRole
from mediaops.core.service import TaskService

from .errors import UnauthenticatedError


def get_task_service(request: Request) -> TaskService:
    """从 app.state 获取 TaskService 实例"""
    return request.app.state.task_service


def get_actor(
    x_actor_id: str | None = Header(default=None),
    x_actor_role: str | None = Header(default=None),
    x_actor_department: str | None = Header(default=None),
) -> Actor:
    """从请求头解析操作者身份

    Raises:
        UnauthenticatedError: 缺少身份头或角色无效
    """
    if not x_actor_id or not x_actor_role:
        raise UnauthenticatedError("X-Actor-Id and X-Actor-Role headers are required")
    try:
        role = UserRole(x_actor_role)
    except ValueError:
        raise UnauthenticatedError(f"Unknown actor role: {x_actor_role}") from None
    return Actor(
        actor_id=x_actor_id,
        role=role,
        department_id=x_actor_department or None,
    )
