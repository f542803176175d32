"""structlog 配置模块

MEDIAOPS_LOG_FORMAT=dev（默认）时输出彩色控制台日志，json 时每行一个 JSON 对象。
structlog 与标准库 logging（uvicorn、aiosqlite、httpx）共用同一个 handler。
"""

import logging
import os

import structlog

# 第三方库默认只输出 WARNING 及以上
_NOISY_LOGGERS = ("aiosqlite", "httpx", "httpcore")


def _build_renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer()


def setup_logging(log_format: str | None = None, log_level: str | None = None) -> None:
    """初始化 structlog 与标准库 logging

    Args:
        log_format: "dev" / "json"，缺省读 MEDIAOPS_LOG_FORMAT
        log_level: 日志级别名，缺省读 MEDIAOPS_LOG_LEVEL（默认 INFO）
    """
    log_format = log_format or os.environ.get("MEDIAOPS_LOG_FORMAT", "dev")
    log_level = (log_level or os.environ.get("MEDIAOPS_LOG_LEVEL", "INFO")).upper()

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if log_format == "json":
        pre_chain.append(structlog.processors.format_exc_info)
    pre_chain.append(structlog.processors.UnicodeDecoder())

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=_build_renderer(log_format),
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, log_level, logging.INFO))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
