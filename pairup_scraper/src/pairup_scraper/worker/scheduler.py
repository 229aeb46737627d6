"""RecurringScheduler: 固定间隔的采集周期调度器

- 启动后立即执行一个周期，不做初始等待
- 每个周期结束后等待固定间隔（或直到停止信号置位）再执行下一周期
- 周期严格串行，下一个周期不会在上一个周期释放资源之前开始
- 失败周期按 FailurePolicy 决定继续下一次调度还是终止整个循环

停止信号由宿主持有，调度器只读取不重置。
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from ..sources.base import ScraperError
from .cycle import CycleExecutor, CycleResult
from .policy import FailureAction, FailurePolicy

# 默认一天执行一次
DEFAULT_INTERVAL_SECONDS = 24 * 3600


class RecurringScheduler:
    """周期调度器，单一协程循环驱动 CycleExecutor"""

    def __init__(
        self,
        executor: CycleExecutor,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        failure_policy: Optional[FailurePolicy] = None,
    ):
        """初始化调度器

        Args:
            executor: 周期执行器
            interval_seconds: 两个周期之间的等待时间，单位秒
            failure_policy: 失败处置策略，默认任何失败都终止循环
        """
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")

        self._executor = executor
        self._interval = float(interval_seconds)
        self._failure_policy = failure_policy or FailurePolicy()

        self._running = False
        self._stop_event: Optional[asyncio.Event] = None
        self._loop_task: Optional[asyncio.Task] = None

        self.cycle_count = 0
        self.last_result: Optional[CycleResult] = None
        self.next_run_at: Optional[datetime] = None
        self.failure: Optional[ScraperError] = None

        self._log = logging.getLogger("pairup.worker.scheduler")

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def failure_policy(self) -> FailurePolicy:
        return self._failure_policy

    async def run(self, stop_event: asyncio.Event) -> None:
        """运行调度循环，直到停止信号置位或失败按策略向外传播

        第一个周期总是先执行，之后才检查停止信号（先执行后检查）。
        """
        self._running = True
        self._log.info("Scheduler loop started interval=%.3fs", self._interval)
        try:
            await self._run_cycle(stop_event)

            while not stop_event.is_set():
                self.next_run_at = datetime.now(timezone.utc) + timedelta(
                    seconds=self._interval
                )
                if await self._wait_for_stop(stop_event):
                    break
                await self._run_cycle(stop_event)
        except asyncio.CancelledError:
            self._log.debug("Scheduler loop cancelled")
            raise
        except ScraperError as exc:
            self.failure = exc
            self._log.error("Scheduler loop terminated by failure: %s", exc)
            raise
        finally:
            self._running = False
            self.next_run_at = None
            self._log.info("Scheduler loop stopped after %d cycles", self.cycle_count)

    def start(self, stop_event: Optional[asyncio.Event] = None) -> asyncio.Task:
        """在当前事件循环中启动调度任务（幂等）

        Args:
            stop_event: 宿主持有的停止信号，未提供时内部创建

        Returns:
            承载调度循环的 asyncio.Task
        """
        if self._loop_task is not None and not self._loop_task.done():
            self._log.warning("Scheduler already running")
            return self._loop_task

        self._stop_event = stop_event or asyncio.Event()
        self._loop_task = asyncio.create_task(
            self.run(self._stop_event), name="pairup-scheduler"
        )
        return self._loop_task

    async def stop(self) -> None:
        """置位停止信号并等待当前周期结束"""
        if self._loop_task is None:
            self._log.warning("Scheduler not running")
            return

        if self._stop_event is not None:
            self._stop_event.set()

        task = self._loop_task
        self._loop_task = None
        try:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        except ScraperError as exc:
            # 失败已在 run() 中记录，这里只取回异常
            self._log.info("Scheduler had already terminated: %s", exc)

    async def _wait_for_stop(self, stop_event: asyncio.Event) -> bool:
        """等待一个间隔；若期间停止信号置位返回 True"""
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=self._interval)
        except asyncio.TimeoutError:
            return False
        return True

    async def _run_cycle(self, stop_event: asyncio.Event) -> None:
        self.cycle_count += 1
        self._log.info("执行周期: #%d", self.cycle_count)

        result = await self._executor.run_once(stop_event)
        self.last_result = result

        if result.error is None:
            return

        action = self._failure_policy.action_for(result.error)
        if action is FailureAction.Continue:
            self._log.warning(
                "周期失败，等待下一次调度: #%d kind=%s error=%s",
                self.cycle_count,
                type(result.error).__name__,
                result.error,
            )
            return

        self._log.error(
            "周期失败，终止调度: #%d kind=%s",
            self.cycle_count,
            type(result.error).__name__,
        )
        result.raise_for_failure()

    def is_running(self) -> bool:
        return self._running

    def get_status(self) -> Dict[str, Any]:
        """返回调度器状态快照"""
        return {
            "running": self._running,
            "interval_seconds": self._interval,
            "cycle_count": self.cycle_count,
            "failure_policy": self._failure_policy.to_dict(),
            "last_result": self.last_result.to_dict() if self.last_result else None,
            "next_run_at": self.next_run_at.isoformat() if self.next_run_at else None,
            "failure": str(self.failure) if self.failure is not None else None,
        }
