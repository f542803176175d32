"""FallbackSink 单元测试

验证 primary 成功不触发降级、primary 失败降级到 fallback
（is_fallback=True + fallback_reason）、双方失败抛 NotifierError、lazy probe 恢复。
"""

from unittest.mock import AsyncMock

import pytest
from mediaops.notifier.exceptions import NotifierError, SinkUnreachableError
from mediaops.notifier.fallback import FallbackSink
from mediaops.notifier.log_sink import LogSink
from mediaops.notifier.models import DeliveryReceipt


def _receipt(event, sink: str = "webhook") -> DeliveryReceipt:
    return DeliveryReceipt(
        event_id=event.event_id,
        event_type=event.type.value,
        sink=sink,
        status_code=200,
    )


@pytest.fixture
def mock_primary(event):
    """Mock WebhookSink"""
    sink = AsyncMock()
    sink.deliver = AsyncMock(return_value=_receipt(event))
    sink.health_check = AsyncMock(return_value=True)
    return sink


@pytest.fixture
def mock_fallback(event):
    sink = AsyncMock()
    sink.deliver = AsyncMock(return_value=_receipt(event, sink="log"))
    return sink


class TestPrimarySuccess:
    async def test_primary_success_no_fallback(self, event, mock_primary, mock_fallback):
        receipt = await FallbackSink(mock_primary, mock_fallback).deliver(event)

        assert receipt.sink == "webhook"
        assert receipt.is_fallback is False
        mock_primary.deliver.assert_called_once_with(event)
        mock_fallback.deliver.assert_not_called()


class TestFallback:
    async def test_unreachable_primary_falls_back(self, event, mock_primary, mock_fallback):
        mock_primary.deliver.side_effect = SinkUnreachableError(
            url="https://hooks.example.com", original_error=ConnectionError("refused")
        )

        receipt = await FallbackSink(mock_primary, mock_fallback).deliver(event)

        assert receipt.sink == "log"
        assert receipt.is_fallback is True
        assert "refused" in receipt.fallback_reason

    async def test_rejected_primary_falls_back(self, event, mock_primary):
        mock_primary.deliver.side_effect = NotifierError("Webhook 返回 500")

        receipt = await FallbackSink(mock_primary, LogSink()).deliver(event)

        assert receipt.sink == "log"
        assert receipt.is_fallback is True
        assert "500" in receipt.fallback_reason

    async def test_no_fallback_configured(self, event, mock_primary):
        mock_primary.deliver.side_effect = NotifierError("boom")

        with pytest.raises(NotifierError) as exc_info:
            await FallbackSink(mock_primary).deliver(event)
        assert exc_info.value.recoverable is False

    async def test_both_fail(self, event, mock_primary, mock_fallback):
        mock_primary.deliver.side_effect = NotifierError("primary down")
        mock_fallback.deliver.side_effect = RuntimeError("disk full")

        with pytest.raises(NotifierError, match="primary down.*disk full"):
            await FallbackSink(mock_primary, mock_fallback).deliver(event)

    async def test_lazy_probe_recovers(self, event, mock_primary, mock_fallback):
        """primary 恢复后下一次投递直接走 primary"""
        sink = FallbackSink(mock_primary, mock_fallback)
        mock_primary.deliver.side_effect = [NotifierError("flaky"), _receipt(event)]

        first = await sink.deliver(event)
        second = await sink.deliver(event)

        assert first.is_fallback is True
        assert second.is_fallback is False
        assert mock_primary.deliver.call_count == 2
        assert mock_fallback.deliver.call_count == 1


class TestHealthCheck:
    async def test_delegates_to_primary(self, mock_primary, mock_fallback):
        mock_primary.health_check.return_value = False
        assert await FallbackSink(mock_primary, mock_fallback).health_check() is False
