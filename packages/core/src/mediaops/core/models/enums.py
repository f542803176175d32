"""枚举定义

包含 TaskStatus 状态机、Priority、UserRole、EventType 枚举，
以及 VALID_TRANSITIONS 合法流转映射和 TERMINAL_STATES 终态集合。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """Task 生命周期状态"""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"

    # 终态
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# 显式状态变更的合法流转
VALID_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.PENDING: {TaskStatus.IN_PROGRESS, TaskStatus.CANCELLED},
    TaskStatus.IN_PROGRESS: {
        TaskStatus.REVIEW,
        TaskStatus.COMPLETED,
        TaskStatus.CANCELLED,
    },
    TaskStatus.REVIEW: {
        TaskStatus.IN_PROGRESS,
        TaskStatus.COMPLETED,
        TaskStatus.CANCELLED,
    },
    # 终态不可再流转
    TaskStatus.COMPLETED: set(),
    TaskStatus.CANCELLED: set(),
}

TERMINAL_STATES: set[TaskStatus] = {
    TaskStatus.COMPLETED,
    TaskStatus.CANCELLED,
}

# 视为"已开始工作"的状态，首次进入时记录 start_date
ACTIVE_WORK_STATES: set[TaskStatus] = {
    TaskStatus.IN_PROGRESS,
    TaskStatus.REVIEW,
    TaskStatus.COMPLETED,
}


class Priority(StrEnum):
    """任务优先级"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class UserRole(StrEnum):
    """操作者角色（由外部认证能力提供）"""

    SUPER_ADMIN = "super_admin"
    DEPARTMENT_ADMIN = "department_admin"
    DEPARTMENT_STAFF = "department_staff"
    RECEPTION = "reception"
    CLIENT = "client"


# 可修改/删除他人时间条目、可删除任务的角色
ELEVATED_ROLES: set[UserRole] = {
    UserRole.SUPER_ADMIN,
    UserRole.DEPARTMENT_ADMIN,
}

# 可创建任务的角色
TASK_CREATOR_ROLES: set[UserRole] = {
    UserRole.SUPER_ADMIN,
    UserRole.DEPARTMENT_ADMIN,
    UserRole.RECEPTION,
}

# 仅能访问本部门任务的角色
DEPARTMENT_SCOPED_ROLES: set[UserRole] = {
    UserRole.DEPARTMENT_ADMIN,
    UserRole.DEPARTMENT_STAFF,
}


class EventType(StrEnum):
    """生命周期事件类型（交给外部通知器投递）"""

    TASK_ASSIGNED = "TASK_ASSIGNED"
    STATUS_CHANGED = "STATUS_CHANGED"
    PROGRESS_UPDATED = "PROGRESS_UPDATED"
    TASK_OVERDUE = "TASK_OVERDUE"
    DEADLINE_APPROACHING = "DEADLINE_APPROACHING"


def validate_transition(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """验证显式状态流转是否合法

    Args:
        from_status: 当前状态
        to_status: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    allowed = VALID_TRANSITIONS.get(from_status, set())
    return to_status in allowed
