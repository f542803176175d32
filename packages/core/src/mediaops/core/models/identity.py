"""Actor 身份模型

由外部认证/授权能力提供的操作者身份，部门归属查询返回同一形状。
"""

from pydantic import BaseModel, Field

from .enums import DEPARTMENT_SCOPED_ROLES, ELEVATED_ROLES, UserRole


class Actor(BaseModel):
    """操作者身份"""

    actor_id: str = Field(min_length=1, description="用户 ID")
    role: UserRole = Field(description="角色")
    department_id: str | None = Field(default=None, description="所属部门 ID")

    @property
    def is_elevated(self) -> bool:
        """是否为可越过条目归属限制的管理角色"""
        return self.role in ELEVATED_ROLES

    @property
    def is_department_scoped(self) -> bool:
        return self.role in DEPARTMENT_SCOPED_ROLES

    @property
    def is_client(self) -> bool:
        return self.role == UserRole.CLIENT
