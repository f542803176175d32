"""错误响应映射

统一错误响应格式：{"error": {"code": ..., "message": ...}}
- ValidationError -> 400
- 未提供/无效操作者身份 -> 401
- AuthorizationError -> 403
- NotFoundError -> 404
- ConflictError -> 409
- InfrastructureError -> 503
"""

from collections.abc import Callable
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from mediaops.core.errors import (
    AuthorizationError,
    ConflictError,
    DomainError,
    InfrastructureError,
    NotFoundError,
    ValidationError,
)
from mediaops.core.outcome import Outcome
from starlette.responses import JSONResponse

log = structlog.get_logger()

_STATUS_BY_ERROR: dict[type[DomainError], int] = {
    ValidationError: 400,
    AuthorizationError: 403,
    NotFoundError: 404,
    ConflictError: 409,
}


class UnauthenticatedError(Exception):
    """请求未携带有效的操作者身份"""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}},
    )


def domain_error_response(error: DomainError) -> JSONResponse:
    status_code = 400
    for error_type, mapped in _STATUS_BY_ERROR.items():
        if isinstance(error, error_type):
            status_code = mapped
            break
    return error_response(status_code, error.code, error.message)


def outcome_response(
    outcome: Outcome,
    status_code: int = 200,
    serialize: Callable[[Any], Any] | None = None,
) -> JSONResponse:
    """把 Outcome 转换为 HTTP 响应"""
    if not outcome.ok:
        return domain_error_response(outcome.error)
    value = serialize(outcome.value) if serialize else outcome.value
    return JSONResponse(status_code=status_code, content=jsonable_encoder(value))


def register_error_handlers(app: FastAPI) -> None:
    """注册全局异常处理器"""

    @app.exception_handler(UnauthenticatedError)
    async def _unauthenticated(request: Request, exc: UnauthenticatedError):
        return error_response(401, "UNAUTHENTICATED", exc.message)

    @app.exception_handler(RequestValidationError)
    async def _request_invalid(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            first = errors[0]
            location = ".".join(str(part) for part in first.get("loc", ()))
            message = f"{location}: {first.get('msg', 'invalid request')}"
        else:
            message = "invalid request"
        return error_response(400, "VALIDATION_ERROR", message)

    @app.exception_handler(InfrastructureError)
    async def _infrastructure(request: Request, exc: InfrastructureError):
        log.error("infrastructure_unavailable", error=str(exc))
        return error_response(503, "STORE_UNAVAILABLE", "Storage temporarily unavailable")
