"""DeadlineScheduler -- 在网关进程内周期执行截止时间扫描

单次扫描失败只记录日志，下一周期继续。
"""

import asyncio
import contextlib

import structlog
from mediaops.core.deadlines import DeadlineSweeper

log = structlog.get_logger()


class DeadlineScheduler:
    """周期扫描后台任务"""

    def __init__(self, sweeper: DeadlineSweeper, interval_s: float) -> None:
        self._sweeper = sweeper
        self._interval_s = interval_s
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._interval_s <= 0:
            log.info("deadline_scheduler_disabled")
            return
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())
        log.info("deadline_scheduler_started", interval_s=self._interval_s)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        log.info("deadline_scheduler_stopped")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval_s)
            try:
                await self._sweeper.sweep()
            except Exception as e:
                log.error(
                    "deadline_sweep_failed",
                    error_type=type(e).__name__,
                    error=str(e),
                )
