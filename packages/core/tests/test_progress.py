"""ProgressTracker 单元测试

测试内容：
1. 百分比校验
2. 百分比推导状态（只向前推进）
3. 备注追加
"""

import pytest
from mediaops.core.errors import ConflictError, ValidationError
from mediaops.core.lifecycle import ProgressTracker, TimeLedger
from mediaops.core.models import TaskStatus


class TestSetPercentage:
    """set_percentage 校验与状态推导"""

    @pytest.mark.parametrize("value", [-1, 101, 50.5, "50", True])
    def test_rejects_invalid_values(self, make_task, clock, value):
        task = make_task()
        with pytest.raises(ValidationError, match="between 0 and 100"):
            ProgressTracker(task).set_percentage(value, "u-editor", clock.now)
        assert task.progress.percentage == 0

    def test_zero_on_pending_stays_pending(self, make_task, clock):
        task = make_task()
        result = ProgressTracker(task).set_percentage(0, "u-editor", clock.now)
        assert task.status == TaskStatus.PENDING
        assert result.status_change is None
        assert task.status_history == []

    def test_partial_progress_starts_work(self, make_task, clock):
        task = make_task()
        result = ProgressTracker(task).set_percentage(50, "u-editor", clock.now)

        assert task.status == TaskStatus.IN_PROGRESS
        assert task.progress.percentage == 50
        assert task.start_date == clock.now
        assert result.previous_percentage == 0
        assert result.status_change.new_status == TaskStatus.IN_PROGRESS
        # 隐式流转恰好一条历史
        assert len(task.status_history) == 1

    @pytest.mark.parametrize("start", [TaskStatus.PENDING, TaskStatus.IN_PROGRESS])
    def test_threshold_moves_to_review(self, make_task, clock, start):
        task = make_task(status=start)
        ProgressTracker(task).set_percentage(75, "u-editor", clock.now)
        assert task.status == TaskStatus.REVIEW
        assert task.progress.percentage == 75
        assert len(task.status_history) == 1

    def test_review_not_moved_backwards(self, make_task, clock):
        """review 状态下降低百分比不回退状态"""
        task = make_task(status=TaskStatus.REVIEW)
        task.progress.percentage = 80
        result = ProgressTracker(task).set_percentage(40, "u-editor", clock.now)
        assert task.status == TaskStatus.REVIEW
        assert task.progress.percentage == 40
        assert result.status_change is None

    def test_in_progress_stays_below_threshold(self, make_task, clock):
        task = make_task(status=TaskStatus.IN_PROGRESS)
        result = ProgressTracker(task).set_percentage(60, "u-editor", clock.now)
        assert task.status == TaskStatus.IN_PROGRESS
        assert result.status_change is None

    def test_hundred_completes_and_closes_entries(self, make_task, clock):
        task = make_task(status=TaskStatus.IN_PROGRESS)
        TimeLedger(task).start("u-editor", clock.now)
        done_at = clock.advance(minutes=45)

        ProgressTracker(task).set_percentage(100, "u-editor", done_at)

        assert task.status == TaskStatus.COMPLETED
        assert task.completed_date == done_at
        assert task.progress.percentage == 100
        assert task.time_entries[0].is_active is False
        assert task.time_entries[0].duration_minutes == 45
        assert task.actual_hours == 0.75

    def test_hundred_from_pending_completes(self, make_task, clock):
        task = make_task()
        ProgressTracker(task).set_percentage(100, "u-editor", clock.now)
        assert task.status == TaskStatus.COMPLETED
        assert task.start_date == clock.now

    def test_terminal_task_rejected(self, make_task, clock):
        task = make_task(status=TaskStatus.CANCELLED)
        with pytest.raises(ConflictError):
            ProgressTracker(task).set_percentage(50, "u-editor", clock.now)

    def test_zero_on_active_task_is_invalid_transition(self, make_task, clock):
        task = make_task(status=TaskStatus.REVIEW)
        task.progress.percentage = 80
        with pytest.raises(ConflictError, match="invalid transition") as exc_info:
            ProgressTracker(task).set_percentage(0, "u-editor", clock.now)
        assert exc_info.value.code == "INVALID_TRANSITION"
        assert task.progress.percentage == 80

    def test_note_appended_even_without_change(self, make_task, clock):
        task = make_task(status=TaskStatus.IN_PROGRESS)
        task.progress.percentage = 40
        result = ProgressTracker(task).set_percentage(
            40, "u-editor", clock.now, note="  rough cut exported  "
        )
        assert result.note.text == "rough cut exported"
        assert task.progress.notes[0].author_id == "u-editor"
        assert task.progress.notes[0].created_at == clock.now

    def test_blank_note_ignored(self, make_task, clock):
        task = make_task()
        ProgressTracker(task).set_percentage(10, "u-editor", clock.now, note="   ")
        assert task.progress.notes == []


class TestAddNote:
    def test_add_note_keeps_status_and_percentage(self, make_task, clock):
        task = make_task()
        note = ProgressTracker(task).add_note("waiting for assets", "u-editor", clock.now)
        assert note.text == "waiting for assets"
        assert task.status == TaskStatus.PENDING
        assert task.progress.percentage == 0
        assert len(task.progress.notes) == 1

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_blank_note_rejected(self, make_task, clock, text):
        task = make_task()
        with pytest.raises(ValidationError, match="Note text is required"):
            ProgressTracker(task).add_note(text, "u-editor", clock.now)
