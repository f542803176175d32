"""工时路由

GET    /api/tasks/{task_id}/time: 工时汇总（条目 + 按操作者合计）
POST   /api/tasks/{task_id}/time/start: 开始计时
POST   /api/tasks/{task_id}/time/stop: 停止计时
POST   /api/tasks/{task_id}/time/manual: 补录工时
PATCH  /api/tasks/{task_id}/time/{entry_id}: 修改条目
DELETE /api/tasks/{task_id}/time/{entry_id}: 删除条目
"""

from fastapi import APIRouter, Depends
from mediaops.core.models import Actor, ManualTimeEntry, TimeEntry, TimeEntryUpdate
from mediaops.core.service import TaskService
from pydantic import BaseModel
from starlette.responses import Response

from ..deps import get_actor, get_task_service
from ..errors import domain_error_response, outcome_response

router = APIRouter()


class TimerRequest(BaseModel):
    """开始/停止计时请求体（可选）"""

    description: str | None = None


def _entry(entry: TimeEntry) -> dict:
    return entry.model_dump(mode="json")


@router.get("/api/tasks/{task_id}/time")
async def get_time_summary(
    task_id: str,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    outcome = await service.get_time_summary(task_id, actor)
    return outcome_response(outcome, serialize=lambda s: s.model_dump(mode="json"))


@router.post("/api/tasks/{task_id}/time/start", status_code=201)
async def start_time(
    task_id: str,
    body: TimerRequest | None = None,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    description = body.description if body else None
    outcome = await service.start_time(task_id, actor, description)
    return outcome_response(outcome, status_code=201, serialize=_entry)


@router.post("/api/tasks/{task_id}/time/stop")
async def stop_time(
    task_id: str,
    body: TimerRequest | None = None,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    description = body.description if body else None
    outcome = await service.stop_time(task_id, actor, description)
    return outcome_response(outcome, serialize=_entry)


@router.post("/api/tasks/{task_id}/time/manual", status_code=201)
async def record_manual_time(
    task_id: str,
    body: ManualTimeEntry,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    outcome = await service.record_manual_time(task_id, body, actor)
    return outcome_response(outcome, status_code=201, serialize=_entry)


@router.patch("/api/tasks/{task_id}/time/{entry_id}")
async def update_time_entry(
    task_id: str,
    entry_id: str,
    body: TimeEntryUpdate,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    outcome = await service.update_time_entry(task_id, entry_id, body, actor)
    return outcome_response(outcome, serialize=_entry)


@router.delete("/api/tasks/{task_id}/time/{entry_id}")
async def delete_time_entry(
    task_id: str,
    entry_id: str,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    outcome = await service.delete_time_entry(task_id, entry_id, actor)
    if not outcome.ok:
        return domain_error_response(outcome.error)
    return Response(status_code=204)
