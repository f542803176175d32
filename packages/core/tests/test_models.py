"""Domain Models 单元测试

测试内容：
1. 枚举取值
2. Task 字段校验（标题、标签去重、UTC 归一化）
3. 命令模型 extra=forbid
4. 相关人集合
"""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from mediaops.core.models import (
    Actor,
    ManualTimeEntry,
    Progress,
    Task,
    TaskCreate,
    TaskFilter,
    TaskStatus,
    TaskUpdate,
    UserRole,
    ensure_utc,
)
from pydantic import ValidationError as PydanticValidationError


class TestEnums:
    """枚举取值测试"""

    def test_task_status_values(self):
        assert TaskStatus.PENDING == "pending"
        assert TaskStatus.IN_PROGRESS == "in_progress"
        assert TaskStatus.REVIEW == "review"
        assert TaskStatus.COMPLETED == "completed"
        assert TaskStatus.CANCELLED == "cancelled"

    def test_user_role_from_string(self):
        assert UserRole("department_staff") == UserRole.DEPARTMENT_STAFF


class TestTaskModel:
    """Task 模型校验"""

    def test_defaults(self, make_task):
        """新任务默认 pending / 0% / 空账本 / 空历史"""
        task = make_task()
        assert task.status == TaskStatus.PENDING
        assert task.progress.percentage == 0
        assert task.time_entries == []
        assert task.status_history == []
        assert task.actual_hours == 0
        assert task.version == 0

    def test_title_is_stripped(self, make_task):
        task = make_task(title="  Trailer cut  ")
        assert task.title == "Trailer cut"

    def test_blank_title_rejected(self, make_task):
        with pytest.raises(PydanticValidationError):
            make_task(title="   ")

    def test_title_max_length(self, make_task):
        with pytest.raises(PydanticValidationError):
            make_task(title="x" * 201)

    def test_tags_deduplicated(self, make_task):
        task = make_task(tags=["4k", "hdr", "4k", " hdr ", ""])
        assert task.tags == ["4k", "hdr"]

    def test_estimated_hours_minimum(self, make_task):
        with pytest.raises(PydanticValidationError):
            make_task(estimated_hours=0.05)

    def test_naive_datetime_treated_as_utc(self, make_task):
        task = make_task(due_date=datetime(2026, 4, 1, 12, 0))
        assert task.due_date.tzinfo is not None
        assert task.due_date == datetime(2026, 4, 1, 12, 0, tzinfo=UTC)

    def test_offset_datetime_normalized(self):
        shanghai = timezone(timedelta(hours=8))
        value = ensure_utc(datetime(2026, 4, 1, 20, 0, tzinfo=shanghai))
        assert value == datetime(2026, 4, 1, 12, 0, tzinfo=UTC)
        assert value.utcoffset() == timedelta(0)

    def test_progress_range(self):
        with pytest.raises(PydanticValidationError):
            Progress(percentage=101)
        with pytest.raises(PydanticValidationError):
            Progress(percentage=-1)

    def test_stakeholders_ordered_and_unique(self, make_task):
        """相关人：负责人、创建人、客户，去重保序"""
        task = make_task(assigned_to="u-editor", client_id="c-acme")
        assert task.stakeholders() == ["u-editor", "u-video-admin", "c-acme"]

        self_assigned = make_task(assigned_to="u-video-admin")
        assert self_assigned.stakeholders() == ["u-video-admin"]

    def test_json_roundtrip_preserves_ledger(self, make_task, clock):
        task = make_task()
        task.progress.percentage = 40
        restored = Task.model_validate_json(task.model_dump_json())
        assert restored.model_dump() == task.model_dump()


class TestCommandModels:
    """命令模型校验"""

    def test_task_create_defaults(self, task_data):
        payload = TaskCreate.model_validate(task_data())
        assert payload.priority == "medium"
        assert payload.is_urgent is False
        assert payload.billing.billable is True

    def test_task_create_missing_due_date(self, task_data):
        data = task_data()
        del data["due_date"]
        with pytest.raises(PydanticValidationError):
            TaskCreate.model_validate(data)

    def test_task_create_rejects_unknown_fields(self, task_data):
        with pytest.raises(PydanticValidationError):
            TaskCreate.model_validate(task_data(actual_hours=10))

    def test_task_update_tracks_explicit_fields(self):
        payload = TaskUpdate.model_validate({"title": "New", "assigned_to": None})
        assert payload.model_fields_set == {"title", "assigned_to"}

    def test_task_update_rejects_progress_field(self):
        """进度只能经由进度命令修改"""
        with pytest.raises(PydanticValidationError):
            TaskUpdate.model_validate({"progress": {"percentage": 50}})

    def test_manual_entry_requires_start(self):
        with pytest.raises(PydanticValidationError):
            ManualTimeEntry.model_validate({"duration_minutes": 30})


class TestQueryAndIdentity:
    def test_task_filter_limit_bounds(self):
        assert TaskFilter().limit == 100
        with pytest.raises(PydanticValidationError):
            TaskFilter(limit=0)
        with pytest.raises(PydanticValidationError):
            TaskFilter(limit=1001)

    def test_actor_capabilities(self, actors):
        assert actors.root.is_elevated
        assert actors.video_admin.is_elevated
        assert actors.video_admin.is_department_scoped
        assert not actors.editor.is_elevated
        assert actors.client.is_client
        assert not actors.reception.is_department_scoped

    def test_actor_requires_id(self):
        with pytest.raises(PydanticValidationError):
            Actor(actor_id="", role=UserRole.RECEPTION)
