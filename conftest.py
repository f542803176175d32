"""全局 pytest 配置 -- 固定时钟 + 临时 Store + 用户目录 fixture"""

from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest
import pytest_asyncio
from mediaops.core.directory import InMemoryDirectory
from mediaops.core.models import Actor, TaskEvent, UserRole
from mediaops.core.service import TaskService
from mediaops.core.store import StoreGroup, create_store_group

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


class FakeClock:
    """可手动推进的时钟"""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingPublisher:
    """记录所有发布事件的发布器"""

    def __init__(self) -> None:
        self.events: list[TaskEvent] = []

    def publish(self, events) -> None:
        self.events.extend(events)

    def of_type(self, event_type) -> list[TaskEvent]:
        return [e for e in self.events if e.type == event_type]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture
def actors() -> SimpleNamespace:
    """测试用操作者：video 部门管理员/员工、audio 员工、前台、客户、超级管理员"""
    return SimpleNamespace(
        root=Actor(actor_id="u-root", role=UserRole.SUPER_ADMIN),
        video_admin=Actor(
            actor_id="u-video-admin", role=UserRole.DEPARTMENT_ADMIN, department_id="video"
        ),
        editor=Actor(
            actor_id="u-editor", role=UserRole.DEPARTMENT_STAFF, department_id="video"
        ),
        colorist=Actor(
            actor_id="u-colorist", role=UserRole.DEPARTMENT_STAFF, department_id="video"
        ),
        audio_staff=Actor(
            actor_id="u-audio", role=UserRole.DEPARTMENT_STAFF, department_id="audio"
        ),
        reception=Actor(actor_id="u-front", role=UserRole.RECEPTION),
        client=Actor(actor_id="c-acme", role=UserRole.CLIENT),
    )


@pytest.fixture
def directory(actors: SimpleNamespace) -> InMemoryDirectory:
    return InMemoryDirectory(list(vars(actors).values()))


@pytest.fixture
def task_data(clock: FakeClock) -> Callable[..., dict[str, Any]]:
    """创建任务请求体工厂（JSON 形状）"""

    def factory(**overrides: Any) -> dict[str, Any]:
        data: dict[str, Any] = {
            "title": "Logo",
            "description": "Brand logo animation",
            "department_id": "video",
            "task_type": "motion_graphics",
            "estimated_hours": 5,
            "due_date": (clock.now + timedelta(days=7)).isoformat(),
        }
        data.update(overrides)
        return data

    return factory


@pytest_asyncio.fixture
async def store_group(tmp_path: Path) -> AsyncGenerator[StoreGroup, None]:
    """已初始化的临时 StoreGroup"""
    group = await create_store_group(str(tmp_path / "test.db"), tmp_path / "attachments")
    yield group
    await group.close()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def service(
    store_group: StoreGroup,
    directory: InMemoryDirectory,
    publisher: RecordingPublisher,
    clock: FakeClock,
) -> TaskService:
    return TaskService(store_group, directory, publisher=publisher, clock=clock)
