"""MediaOps Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .attachment import AttachmentRef
from .commands import (
    BillingInput,
    BillingUpdate,
    ManualTimeEntry,
    TaskCreate,
    TaskUpdate,
    TimeEntryUpdate,
)
from .enums import (
    ACTIVE_WORK_STATES,
    DEPARTMENT_SCOPED_ROLES,
    ELEVATED_ROLES,
    TASK_CREATOR_ROLES,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    EventType,
    Priority,
    TaskStatus,
    UserRole,
    validate_transition,
)
from .event import TaskEvent
from .identity import Actor
from .payloads import (
    DeadlineApproachingPayload,
    ProgressUpdatedPayload,
    StatusChangedPayload,
    TaskAssignedPayload,
    TaskOverduePayload,
)
from .query import TaskFilter
from .task import (
    Billing,
    Progress,
    ProgressNote,
    StatusChange,
    Task,
    TimeEntry,
    ensure_utc,
)
from .views import ActorTimeTotal, TaskView, TimeSummary

__all__ = [
    # 枚举
    "TaskStatus",
    "Priority",
    "UserRole",
    "EventType",
    # 状态机
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "ACTIVE_WORK_STATES",
    "validate_transition",
    # 角色集合
    "ELEVATED_ROLES",
    "TASK_CREATOR_ROLES",
    "DEPARTMENT_SCOPED_ROLES",
    # Task
    "Task",
    "TimeEntry",
    "Progress",
    "ProgressNote",
    "StatusChange",
    "Billing",
    "AttachmentRef",
    "ensure_utc",
    # 身份
    "Actor",
    # 命令
    "TaskCreate",
    "TaskUpdate",
    "BillingInput",
    "BillingUpdate",
    "ManualTimeEntry",
    "TimeEntryUpdate",
    # Event
    "TaskEvent",
    # Payloads
    "TaskAssignedPayload",
    "StatusChangedPayload",
    "ProgressUpdatedPayload",
    "TaskOverduePayload",
    "DeadlineApproachingPayload",
    # 读模型
    "TaskFilter",
    "TaskView",
    "TimeSummary",
    "ActorTimeTotal",
]
