"""Outcome -- 命令结果类型

TaskService 的公开操作不向调用方抛出领域错误，
而是返回 Outcome：成功时携带 value，失败时携带 DomainError。
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

from .errors import DomainError

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """命令执行结果"""

    value: T | None = None
    error: DomainError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """返回 value；失败时重新抛出携带的领域错误"""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: DomainError) -> "Outcome[T]":
        return cls(error=error)
