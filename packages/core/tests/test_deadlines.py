"""DeadlineSweeper 测试

测试内容：
1. 逾期提醒与重复间隔去重
2. 临近截止提醒（24h / 2h 两个窗口各一次）
3. 终态任务不提醒
"""

from datetime import timedelta

import pytest
from mediaops.core.deadlines import DeadlineSweeper
from mediaops.core.models import EventType, TaskStatus


@pytest.fixture
def sweeper(store_group, publisher, clock):
    return DeadlineSweeper(store_group, publisher=publisher, clock=clock)


async def _create_due(service, actors, task_data, due):
    outcome = await service.create_task(
        task_data(assigned_to="u-editor", due_date=due.isoformat()), actors.video_admin
    )
    return outcome.unwrap()


class TestOverdue:
    async def test_overdue_event_and_repeat_interval(
        self, service, sweeper, actors, task_data, clock, publisher, store_group
    ):
        task = await _create_due(service, actors, task_data, clock.now + timedelta(hours=1))
        publisher.events.clear()

        clock.advance(hours=3)
        report = await sweeper.sweep()
        assert report.overdue == 1
        assert report.approaching == 0
        [event] = publisher.of_type(EventType.TASK_OVERDUE)
        assert event.task_id == task.task_id
        assert event.actor_id is None
        assert event.recipients == ["u-editor", "u-video-admin"]
        assert event.payload["days_overdue"] == 1

        clock.advance(hours=1)
        assert (await sweeper.sweep()).overdue == 0

        clock.advance(hours=24)
        report = await sweeper.sweep()
        assert report.overdue == 1
        assert report.events[0].payload["days_overdue"] == 2

        stored = await store_group.event_store.get_events_for_task(task.task_id)
        assert [e.type for e in stored].count(EventType.TASK_OVERDUE) == 2

    async def test_terminal_tasks_skipped(
        self, service, sweeper, actors, task_data, clock
    ):
        task = await _create_due(service, actors, task_data, clock.now + timedelta(hours=1))
        (await service.change_status(task.task_id, TaskStatus.CANCELLED, actors.video_admin)).unwrap()

        clock.advance(days=2)
        report = await sweeper.sweep()
        assert report.overdue == 0
        assert report.events == []


class TestApproaching:
    async def test_each_window_fires_once(
        self, service, sweeper, actors, task_data, clock, publisher
    ):
        start = clock.now
        task = await _create_due(service, actors, task_data, start + timedelta(hours=20))
        publisher.events.clear()

        report = await sweeper.sweep()
        assert report.approaching == 1
        assert report.events[0].payload["hours_until_deadline"] == 20

        assert (await sweeper.sweep(now=start + timedelta(hours=1))).approaching == 0

        report = await sweeper.sweep(now=start + timedelta(hours=18, minutes=30))
        assert report.approaching == 1
        assert report.events[0].payload["hours_until_deadline"] == 2

        assert (await sweeper.sweep(now=start + timedelta(hours=19))).approaching == 0
        assert [e.task_id for e in publisher.of_type(EventType.DEADLINE_APPROACHING)] == [
            task.task_id,
            task.task_id,
        ]

    async def test_outside_window_ignored(self, service, sweeper, actors, task_data, clock):
        await _create_due(service, actors, task_data, clock.now + timedelta(days=3))
        report = await sweeper.sweep()
        assert report.approaching == 0
        assert report.overdue == 0

    async def test_empty_sweep_publishes_nothing(self, sweeper, publisher):
        report = await sweeper.sweep()
        assert report.events == []
        assert publisher.events == []
