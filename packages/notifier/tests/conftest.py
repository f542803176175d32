"""Notifier 包测试 fixtures"""

import pytest
from mediaops.core.models import EventType, TaskEvent


@pytest.fixture
def event(clock) -> TaskEvent:
    """标准状态变更事件"""
    return TaskEvent(
        event_id="01JNQ8Z6J6V6W4K8Y2N3C5D7E9",
        task_id="01JNQ8Z0000000000000000000",
        ts=clock.now,
        type=EventType.STATUS_CHANGED,
        actor_id="u-editor",
        recipients=["u-video-admin", "c-acme"],
        payload={"title": "Logo", "previous_status": "pending", "status": "in_progress"},
    )
