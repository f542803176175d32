"""apps/gateway 测试配置 -- httpx AsyncClient + 手动初始化的 app.state"""

from collections.abc import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from mediaops.core.models import Actor
from mediaops.gateway.main import attach_services, create_app
from mediaops.notifier import EventDispatcher, LogSink


@pytest_asyncio.fixture
async def app(store_group, directory, clock):
    """创建测试用 FastAPI app 实例"""
    application = create_app()

    # 手动初始化（绕过 lifespan）
    dispatcher = EventDispatcher(LogSink())
    attach_services(application, store_group, directory, dispatcher, clock=clock)

    yield application

    await dispatcher.drain()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def headers() -> Callable[[Actor], dict[str, str]]:
    """把操作者转换为身份请求头"""

    def as_headers(actor: Actor) -> dict[str, str]:
        result = {"X-Actor-Id": actor.actor_id, "X-Actor-Role": actor.role.value}
        if actor.department_id:
            result["X-Actor-Department"] = actor.department_id
        return result

    return as_headers


@pytest.fixture
def create_task(client, headers, actors, task_data):
    """通过 API 创建任务，返回 task JSON"""

    async def create(actor: Actor | None = None, **overrides) -> dict:
        resp = await client.post(
            "/api/tasks",
            json=task_data(**overrides),
            headers=headers(actor or actors.video_admin),
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["task"]

    return create
