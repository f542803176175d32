"""任务路由

POST   /api/tasks: 创建任务
GET    /api/tasks: 任务列表（按操作者访问范围过滤，支持筛选）
GET    /api/tasks/overdue: 逾期任务列表
GET    /api/tasks/{task_id}: 任务详情，含派生指标 + 事件
PATCH  /api/tasks/{task_id}: 部分更新
DELETE /api/tasks/{task_id}: 删除任务
POST   /api/tasks/{task_id}/assign: 分配负责人
POST   /api/tasks/{task_id}/status: 显式状态变更
POST/GET/DELETE /api/tasks/{task_id}/attachments[...]: 附件
"""

from fastapi import APIRouter, Depends, Header, Query, Request
from mediaops.core.lifecycle import build_task_view
from mediaops.core.models import Actor, Task, TaskCreate, TaskFilter, TaskStatus, TaskUpdate
from mediaops.core.service import TaskService
from pydantic import BaseModel, Field
from starlette.responses import JSONResponse, Response

from ..deps import get_actor, get_task_service
from ..errors import domain_error_response, error_response, outcome_response

router = APIRouter()


class AssignRequest(BaseModel):
    """分配负责人请求体"""

    assignee_id: str = Field(min_length=1)


class StatusChangeRequest(BaseModel):
    """状态变更请求体"""

    status: TaskStatus
    reason: str | None = None


def _view(service: TaskService):
    def serialize(task: Task) -> dict:
        return build_task_view(task, service.now()).model_dump(mode="json")

    return serialize


def _view_list(service: TaskService):
    serialize = _view(service)

    def serialize_all(tasks: list[Task]) -> dict:
        return {"tasks": [serialize(task) for task in tasks]}

    return serialize_all


@router.post("/api/tasks", status_code=201)
async def create_task(
    body: TaskCreate,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    outcome = await service.create_task(body, actor)
    return outcome_response(outcome, status_code=201, serialize=_view(service))


@router.get("/api/tasks")
async def list_tasks(
    status: TaskStatus | None = Query(default=None, description="按状态筛选"),
    assigned_to: str | None = Query(default=None, description="按负责人筛选"),
    client_id: str | None = Query(default=None, description="按客户筛选"),
    department_id: str | None = Query(default=None, description="按部门筛选"),
    limit: int = Query(default=100, ge=1, le=1000),
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    query = TaskFilter(
        status=status,
        assigned_to=assigned_to,
        client_id=client_id,
        department_id=department_id,
        limit=limit,
    )
    outcome = await service.list_tasks(actor, query)
    return outcome_response(outcome, serialize=_view_list(service))


@router.get("/api/tasks/overdue")
async def list_overdue(
    department_id: str | None = Query(default=None, description="按部门筛选"),
    assigned_to: str | None = Query(default=None, description="按负责人筛选"),
    limit: int = Query(default=100, ge=1, le=1000),
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    query = TaskFilter(department_id=department_id, assigned_to=assigned_to, limit=limit)
    outcome = await service.list_overdue(actor, query)
    return outcome_response(outcome, serialize=_view_list(service))


@router.get("/api/tasks/{task_id}")
async def get_task(
    task_id: str,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    view_outcome = await service.view_task(task_id, actor)
    if not view_outcome.ok:
        return domain_error_response(view_outcome.error)

    events_outcome = await service.get_task_events(task_id, actor)
    if not events_outcome.ok:
        return domain_error_response(events_outcome.error)

    return JSONResponse(
        content={
            "task": view_outcome.value.model_dump(mode="json"),
            "events": [e.model_dump(mode="json") for e in events_outcome.value],
        }
    )


@router.patch("/api/tasks/{task_id}")
async def update_task(
    task_id: str,
    body: TaskUpdate,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    outcome = await service.update_task(task_id, body, actor)
    return outcome_response(outcome, serialize=_view(service))


@router.delete("/api/tasks/{task_id}")
async def delete_task(
    task_id: str,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    outcome = await service.delete_task(task_id, actor)
    if not outcome.ok:
        return domain_error_response(outcome.error)
    return Response(status_code=204)


@router.post("/api/tasks/{task_id}/assign")
async def assign_task(
    task_id: str,
    body: AssignRequest,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    outcome = await service.assign_task(task_id, body.assignee_id, actor)
    return outcome_response(outcome, serialize=_view(service))


@router.post("/api/tasks/{task_id}/status")
async def change_status(
    task_id: str,
    body: StatusChangeRequest,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    outcome = await service.change_status(task_id, body.status, actor, reason=body.reason)
    return outcome_response(outcome, serialize=_view(service))


# ---- 附件 ----


@router.post("/api/tasks/{task_id}/attachments", status_code=201)
async def upload_attachment(
    task_id: str,
    request: Request,
    x_filename: str | None = Header(default=None),
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    """上传附件：请求体为原始文件内容，文件名通过 X-Filename 传入"""
    if not x_filename:
        return error_response(400, "VALIDATION_ERROR", "X-Filename header is required")
    content = await request.body()
    mime = request.headers.get("content-type") or "application/octet-stream"
    outcome = await service.add_attachment(task_id, x_filename, content, actor, mime=mime)
    return outcome_response(
        outcome, status_code=201, serialize=lambda ref: ref.model_dump(mode="json")
    )


@router.get("/api/tasks/{task_id}/attachments/{attachment_id}")
async def download_attachment(
    task_id: str,
    attachment_id: str,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    outcome = await service.get_attachment_content(task_id, attachment_id, actor)
    if not outcome.ok:
        return domain_error_response(outcome.error)
    ref, content = outcome.value
    return Response(
        content=content,
        media_type=ref.mime,
        headers={"Content-Disposition": f'attachment; filename="{ref.filename}"'},
    )


@router.delete("/api/tasks/{task_id}/attachments/{attachment_id}")
async def delete_attachment(
    task_id: str,
    attachment_id: str,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    outcome = await service.remove_attachment(task_id, attachment_id, actor)
    if not outcome.ok:
        return domain_error_response(outcome.error)
    return Response(status_code=204)
