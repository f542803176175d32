"""任务查询过滤条件

由访问范围（部门/客户）与调用方筛选条件合并而成，交给 TaskStore 执行。
"""

from pydantic import BaseModel, Field

from .enums import TaskStatus


class TaskFilter(BaseModel):
    """任务列表过滤条件，None 表示不限制"""

    department_id: str | None = Field(default=None, description="限定部门")
    client_id: str | None = Field(default=None, description="限定客户")
    assigned_to: str | None = Field(default=None, description="限定负责人")
    status: TaskStatus | None = Field(default=None, description="限定状态")
    limit: int = Field(default=100, ge=1, le=1000, description="最大返回条数")
