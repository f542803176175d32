"""进度路由

POST /api/tasks/{task_id}/progress: 设置进度百分比（可能触发状态自动流转）
POST /api/tasks/{task_id}/notes: 追加进度备注
"""

from fastapi import APIRouter, Depends
from mediaops.core.lifecycle import build_task_view
from mediaops.core.models import Actor, Task
from mediaops.core.service import TaskService
from pydantic import BaseModel

from ..deps import get_actor, get_task_service
from ..errors import outcome_response

router = APIRouter()


class ProgressRequest(BaseModel):
    """进度请求体

    percentage 不在此处做范围校验，交由 ProgressTracker 统一报错。
    """

    percentage: int
    note: str | None = None


class NoteRequest(BaseModel):
    text: str


@router.post("/api/tasks/{task_id}/progress")
async def set_progress(
    task_id: str,
    body: ProgressRequest,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    outcome = await service.set_progress(task_id, body.percentage, actor, note=body.note)
    return outcome_response(outcome, serialize=lambda task: _dump(service, task))


@router.post("/api/tasks/{task_id}/notes")
async def add_note(
    task_id: str,
    body: NoteRequest,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    outcome = await service.add_note(task_id, body.text, actor)
    return outcome_response(outcome, serialize=lambda task: _dump(service, task))


def _dump(service: TaskService, task: Task) -> dict:
    return build_task_view(task, service.now()).model_dump(mode="json")
