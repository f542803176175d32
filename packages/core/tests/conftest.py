"""packages/core 测试配置 -- 核心层 fixture"""

from collections.abc import Callable
from datetime import timedelta
from typing import Any

import pytest
from mediaops.core.models import Task
from ulid import ULID


@pytest.fixture
def make_task(clock) -> Callable[..., Task]:
    """内存中的 pending 任务工厂"""

    def factory(**overrides: Any) -> Task:
        data: dict[str, Any] = {
            "task_id": str(ULID()),
            "created_at": clock.now,
            "updated_at": clock.now,
            "title": "Logo",
            "description": "Brand logo animation",
            "task_type": "motion_graphics",
            "department_id": "video",
            "created_by": "u-video-admin",
            "estimated_hours": 5,
            "due_date": clock.now + timedelta(days=7),
        }
        data.update(overrides)
        return Task(**data)

    return factory
