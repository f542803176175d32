"""TaskAggregate 单元测试

测试内容：
1. 创建：默认值、负责人部门校验、客户身份校验
2. 部分更新语义
3. 事件与接收人集合
"""

from datetime import timedelta

import pytest
from mediaops.core.errors import ConflictError, NotFoundError, ValidationError
from mediaops.core.lifecycle import TaskAggregate
from mediaops.core.models import (
    AttachmentRef,
    EventType,
    TaskCreate,
    TaskStatus,
    TaskUpdate,
)


@pytest.fixture
def created(task_data, actors, clock):
    """由 video 管理员创建、分配给 editor、客户为 acme 的任务"""
    data = TaskCreate.model_validate(
        task_data(assigned_to="u-editor", client_id="c-acme", tags=["promo"])
    )
    aggregate = TaskAggregate.create(
        data,
        actors.video_admin,
        clock.now,
        assignee=actors.editor,
        client=actors.client,
    )
    aggregate.pending_events.clear()
    return aggregate


class TestCreate:
    def test_create_defaults(self, task_data, actors, clock):
        aggregate = TaskAggregate.create(
            TaskCreate.model_validate(task_data()), actors.video_admin, clock.now
        )
        task = aggregate.task
        assert task.status == TaskStatus.PENDING
        assert task.progress.percentage == 0
        assert task.status_history == []
        assert task.time_entries == []
        assert task.created_by == "u-video-admin"
        assert task.priority == "medium"
        assert task.estimated_hours == 5
        assert aggregate.pending_events == []

    def test_create_with_assignee_emits_assigned(self, task_data, actors, clock):
        aggregate = TaskAggregate.create(
            TaskCreate.model_validate(task_data(assigned_to="u-editor")),
            actors.video_admin,
            clock.now,
            assignee=actors.editor,
        )
        [event] = aggregate.pending_events
        assert event.type == EventType.TASK_ASSIGNED
        assert event.recipients == ["u-editor"]
        assert event.payload["assigned_to"] == "u-editor"
        assert event.payload["previous_assignee"] is None

    def test_assignee_from_other_department_rejected(self, task_data, actors, clock):
        with pytest.raises(ValidationError, match="belong to the task department"):
            TaskAggregate.create(
                TaskCreate.model_validate(task_data(assigned_to="u-audio")),
                actors.video_admin,
                clock.now,
                assignee=actors.audio_staff,
            )

    def test_assignee_without_department_accepted(self, task_data, actors, clock):
        aggregate = TaskAggregate.create(
            TaskCreate.model_validate(task_data(assigned_to="u-front")),
            actors.video_admin,
            clock.now,
            assignee=actors.reception,
        )
        assert aggregate.task.assigned_to == "u-front"

    def test_super_admin_may_assign_across_departments(self, task_data, actors, clock):
        aggregate = TaskAggregate.create(
            TaskCreate.model_validate(task_data(assigned_to="u-audio")),
            actors.root,
            clock.now,
            assignee=actors.audio_staff,
        )
        assert aggregate.task.assigned_to == "u-audio"

    def test_unknown_assignee_rejected(self, task_data, actors, clock):
        with pytest.raises(ValidationError, match="not found"):
            TaskAggregate.create(
                TaskCreate.model_validate(task_data(assigned_to="u-ghost")),
                actors.video_admin,
                clock.now,
                assignee=None,
            )

    def test_client_must_have_client_role(self, task_data, actors, clock):
        with pytest.raises(ValidationError, match="Invalid client"):
            TaskAggregate.create(
                TaskCreate.model_validate(task_data(client_id="u-editor")),
                actors.video_admin,
                clock.now,
                client=actors.editor,
            )

    def test_blank_title_rejected(self, task_data, actors, clock):
        with pytest.raises(ValidationError, match="title"):
            TaskAggregate.create(
                TaskCreate.model_validate(task_data(title="   ")),
                actors.video_admin,
                clock.now,
            )


class TestUpdate:
    def test_partial_update_leaves_other_fields(self, created, actors, clock):
        task_id = created.task.task_id
        created.apply_update(
            TaskUpdate(title="Logo v2", is_urgent=True),
            actors.video_admin,
            clock.advance(minutes=5),
        )
        task = created.task
        assert task.task_id == task_id
        assert task.title == "Logo v2"
        assert task.is_urgent is True
        assert task.description == "Brand logo animation"
        assert task.assigned_to == "u-editor"
        assert task.tags == ["promo"]
        assert task.updated_at == clock.now

    def test_invalid_field_value_rejected(self, created, actors, clock):
        with pytest.raises(ValidationError):
            created.apply_update(TaskUpdate(title=""), actors.video_admin, clock.now)

    def test_reassign_emits_event_to_new_assignee(self, created, actors, clock):
        created.apply_update(
            TaskUpdate(assigned_to="u-colorist"),
            actors.video_admin,
            clock.now,
            assignee=actors.colorist,
        )
        [event] = created.pending_events
        assert event.type == EventType.TASK_ASSIGNED
        assert event.recipients == ["u-colorist"]
        assert event.payload["previous_assignee"] == "u-editor"

    def test_same_assignee_emits_nothing(self, created, actors, clock):
        created.assign("u-editor", actors.editor, actors.video_admin, clock.now)
        assert created.pending_events == []

    def test_clear_assignee(self, created, actors, clock):
        created.apply_update(TaskUpdate(assigned_to=None), actors.video_admin, clock.now)
        assert created.task.assigned_to is None

    def test_reassign_client_requires_client_role(self, created, actors, clock):
        with pytest.raises(ValidationError):
            created.apply_update(
                TaskUpdate(client_id="u-front"),
                actors.video_admin,
                clock.now,
                client=actors.reception,
            )

    def test_billing_merge(self, created, actors, clock):
        created.apply_update(
            TaskUpdate.model_validate({"billing": {"invoiced": True, "invoice_ref": "INV-7"}}),
            actors.video_admin,
            clock.now,
        )
        billing = created.task.billing
        assert billing.invoiced is True
        assert billing.invoice_ref == "INV-7"
        assert billing.billable is True

    def test_status_change_via_update(self, created, actors, clock):
        created.apply_update(
            TaskUpdate(status=TaskStatus.IN_PROGRESS, status_reason="kickoff"),
            actors.editor,
            clock.now,
        )
        assert created.task.status == TaskStatus.IN_PROGRESS
        assert created.task.status_history[-1].reason == "kickoff"
        [event] = created.pending_events
        assert event.type == EventType.STATUS_CHANGED

    def test_invalid_status_via_update(self, created, actors, clock):
        with pytest.raises(ConflictError):
            created.apply_update(
                TaskUpdate(status=TaskStatus.COMPLETED), actors.editor, clock.now
            )


class TestEvents:
    def test_progress_recipients_exclude_actor(self, created, actors, clock):
        """进度事件：相关人去掉操作者；状态事件：相关人加上操作者"""
        created.set_progress(50, actors.editor, clock.now, note="first pass")

        progress_event, status_event = created.pending_events
        assert progress_event.type == EventType.PROGRESS_UPDATED
        assert progress_event.recipients == ["u-video-admin", "c-acme"]
        assert progress_event.payload["percentage"] == 50
        assert progress_event.payload["note"] == "first pass"
        assert progress_event.payload["status"] == "in_progress"

        assert status_event.type == EventType.STATUS_CHANGED
        assert status_event.recipients == ["u-editor", "u-video-admin", "c-acme"]
        assert status_event.payload["implicit"] is True
        assert status_event.payload["previous_status"] == "pending"

    def test_status_recipients_include_outside_actor(self, created, actors, clock):
        created.change_status(TaskStatus.CANCELLED, actors.root, clock.now, reason="dup")
        [event] = created.pending_events
        assert event.recipients == ["u-editor", "u-video-admin", "c-acme", "u-root"]
        assert event.actor_id == "u-root"
        assert event.payload["reason"] == "dup"

    def test_progress_without_status_change_emits_one_event(self, created, actors, clock):
        created.set_progress(30, actors.editor, clock.now)
        created.pending_events.clear()
        created.set_progress(40, actors.editor, clock.advance(hours=1))
        [event] = created.pending_events
        assert event.type == EventType.PROGRESS_UPDATED
        assert event.payload["previous_percentage"] == 30

    def test_time_commands_emit_no_events(self, created, actors, clock):
        created.start_time(actors.editor, clock.now)
        created.stop_time(actors.editor, clock.advance(minutes=10))
        assert created.pending_events == []
        assert created.task.actual_hours == pytest.approx(10 / 60)


class TestAttachments:
    def test_add_and_remove_reference(self, created, clock):
        ref = AttachmentRef(
            attachment_id="att-1",
            filename="cut.mov",
            storage_ref="x/att-1",
            uploaded_by="u-editor",
            uploaded_at=clock.now,
        )
        created.add_attachment(ref, clock.now)
        assert created.task.attachments == [ref]

        removed = created.remove_attachment("att-1", clock.now + timedelta(minutes=1))
        assert removed.attachment_id == "att-1"
        assert created.task.attachments == []

    def test_remove_unknown_reference(self, created, clock):
        with pytest.raises(NotFoundError):
            created.remove_attachment("missing", clock.now)
