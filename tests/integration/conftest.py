"""集成测试共享 fixture"""

import json
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

DIRECTORY = [
    {"actor_id": "u-root", "role": "super_admin"},
    {"actor_id": "u-front", "role": "reception"},
    {"actor_id": "u-video-admin", "role": "department_admin", "department_id": "video"},
    {"actor_id": "u-editor", "role": "department_staff", "department_id": "video"},
    {"actor_id": "u-colorist", "role": "department_staff", "department_id": "video"},
    {"actor_id": "c-acme", "role": "client"},
]


def identity(actor_id: str) -> dict[str, str]:
    """按目录条目生成身份请求头"""
    for item in DIRECTORY:
        if item["actor_id"] == actor_id:
            result = {"X-Actor-Id": actor_id, "X-Actor-Role": item["role"]}
            if item.get("department_id"):
                result["X-Actor-Department"] = item["department_id"]
            return result
    raise KeyError(actor_id)


@pytest.fixture
def integration_env(tmp_path: Path, monkeypatch) -> Path:
    """通过环境变量配置数据目录与用户目录"""
    directory_file = tmp_path / "directory.json"
    directory_file.write_text(json.dumps(DIRECTORY), encoding="utf-8")

    monkeypatch.setenv("MEDIAOPS_DB_PATH", str(tmp_path / "sqlite" / "mediaops.db"))
    monkeypatch.setenv("MEDIAOPS_ATTACHMENTS_DIR", str(tmp_path / "attachments"))
    monkeypatch.setenv("MEDIAOPS_DIRECTORY_PATH", str(directory_file))
    monkeypatch.setenv("MEDIAOPS_SWEEP_INTERVAL_S", "0")
    monkeypatch.setenv("MEDIAOPS_NOTIFIER_MODE", "log")
    return tmp_path


@pytest_asyncio.fixture
async def integration_app(integration_env: Path):
    """执行真实 lifespan 的 FastAPI app"""
    from mediaops.gateway.main import create_app

    app = create_app()
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def as_user():
    return identity


@pytest.fixture
def task_body():
    """创建任务请求体工厂：video 部门、分配给 editor、客户 acme"""

    def factory(**overrides) -> dict:
        body = {
            "title": "Logo",
            "description": "Brand logo animation",
            "department_id": "video",
            "task_type": "motion_graphics",
            "estimated_hours": 5,
            "due_date": (datetime.now(UTC) + timedelta(days=7)).isoformat(),
            "assigned_to": "u-editor",
            "client_id": "c-acme",
        }
        body.update(overrides)
        return body

    return factory
