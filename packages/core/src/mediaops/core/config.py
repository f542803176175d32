"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、附件目录、存储重试次数、截止提醒窗口等可配置常量。
"""

import os
from pathlib import Path


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("MEDIAOPS_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "MEDIAOPS_DB_PATH",
        str(_get_base_dir() / "sqlite" / "mediaops.db"),
    )


def get_attachments_dir() -> Path:
    """获取附件文件存储目录"""
    return Path(
        os.environ.get(
            "MEDIAOPS_ATTACHMENTS_DIR",
            str(_get_base_dir() / "attachments"),
        )
    )


def get_directory_path() -> str | None:
    """获取用户目录 JSON 文件路径（部门归属查询），未配置返回 None"""
    return os.environ.get("MEDIAOPS_DIRECTORY_PATH") or None


# 存储层瞬时错误（如 database is locked）最大重试次数
STORE_MAX_RETRIES: int = int(os.environ.get("MEDIAOPS_STORE_MAX_RETRIES", "3"))

# 存储层重试退避基数（秒）
STORE_RETRY_BACKOFF_S: float = 0.05

# 乐观并发（version CAS）冲突时整条命令的最大尝试次数
COMMAND_MAX_ATTEMPTS: int = 3

# 截止提醒窗口（小时）
DEADLINE_REMINDER_HOURS: int = int(
    os.environ.get("MEDIAOPS_DEADLINE_REMINDER_HOURS", "24")
)

# 标题最大长度
TITLE_MAX_LENGTH: int = 200

# 进度达到该百分比时自动进入 review
REVIEW_THRESHOLD: int = 75

# 显式进入 in_progress 且进度为 0 时的初始进度
IN_PROGRESS_INITIAL_PERCENTAGE: int = 25

# 临近截止的第二次提醒窗口（小时）
DEADLINE_FINAL_REMINDER_HOURS: int = 2

# 逾期提醒的重复间隔（小时）
OVERDUE_REPEAT_HOURS: int = 24


def get_sweep_interval_s() -> float:
    """截止扫描周期（秒），0 表示不在网关内周期执行"""
    return float(os.environ.get("MEDIAOPS_SWEEP_INTERVAL_S", "300"))
