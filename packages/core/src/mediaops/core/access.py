"""访问范围规则

- department_admin / department_staff：只能查看和修改本部门任务
- client：只能查看自己作为客户的任务，不能修改
- super_admin / reception：不受部门限制
"""

from .errors import AuthorizationError
from .models.enums import TASK_CREATOR_ROLES
from .models.identity import Actor
from .models.query import TaskFilter
from .models.task import Task


def can_view(actor: Actor, task: Task) -> bool:
    if actor.is_client:
        return task.client_id == actor.actor_id
    if actor.is_department_scoped:
        return task.department_id == actor.department_id
    return True


def ensure_can_view(actor: Actor, task: Task) -> None:
    if not can_view(actor, task):
        raise AuthorizationError("Not authorized to access this task")


def ensure_can_mutate(actor: Actor, task: Task) -> None:
    """校验操作者可修改任务

    Raises:
        AuthorizationError: 客户角色，或越过部门范围
    """
    if actor.is_client:
        raise AuthorizationError("Clients cannot modify tasks")
    ensure_can_view(actor, task)


def ensure_can_create(actor: Actor, department_id: str) -> None:
    if actor.role not in TASK_CREATOR_ROLES:
        raise AuthorizationError(f"Role {actor.role} is not allowed to create tasks")
    if actor.is_department_scoped and actor.department_id != department_id:
        raise AuthorizationError("Cannot create tasks for another department")


def ensure_can_delete(actor: Actor, task: Task) -> None:
    if not actor.is_elevated:
        raise AuthorizationError(f"Role {actor.role} is not allowed to delete tasks")
    ensure_can_view(actor, task)


def scope_filter(actor: Actor, base: TaskFilter | None = None) -> TaskFilter:
    """把操作者的访问范围叠加到查询条件上"""
    query = base.model_copy() if base is not None else TaskFilter()
    if actor.is_client:
        query.client_id = actor.actor_id
    elif actor.is_department_scoped:
        # 无部门归属的部门角色不匹配任何任务
        query.department_id = actor.department_id or ""
    return query
