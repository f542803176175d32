"""领域异常体系

四类领域错误（校验/不存在/冲突/无权限）在 TaskService 边界转换为
Outcome 返回给调用方；InfrastructureError 表示存储层重试耗尽，
与领域错误分开处理。
"""


class DomainError(Exception):
    """领域错误基类"""

    code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        """
        Args:
            message: 错误描述
            code: 机器可读错误码，None 时使用类默认值
        """
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(DomainError):
    """输入不合法：越界百分比、缺少必填字段、非正时长、空备注等"""

    code = "VALIDATION_ERROR"


class NotFoundError(DomainError):
    """任务或时间条目不存在"""

    code = "NOT_FOUND"


class ConflictError(DomainError):
    """非法状态流转、同一操作者重复的活动计时等"""

    code = "CONFLICT"


class AuthorizationError(DomainError):
    """操作者无权修改指定时间条目或越权操作其他部门任务"""

    code = "FORBIDDEN"


class InfrastructureError(Exception):
    """存储层故障且重试耗尽

    不属于四类领域错误，调用层应按基础设施不可用处理。
    """

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message)
        self.original_error = original_error


def validation_error_from(exc: Exception) -> ValidationError:
    """把 pydantic 校验异常转换为领域 ValidationError（取第一条错误）"""
    errors = getattr(exc, "errors", None)
    if callable(errors):
        details = errors()
        if details:
            first = details[0]
            location = ".".join(str(part) for part in first.get("loc", ()))
            message = first.get("msg", str(exc))
            return ValidationError(f"{location}: {message}" if location else message)
    return ValidationError(str(exc))
