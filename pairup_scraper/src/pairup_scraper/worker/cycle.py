"""Cycle Executor: 执行单次 抓取 -> 持久化 周期

每个周期：
- 通过工厂创建全新的数据源句柄（周期级作用域）
- 抓取数据
- 若停止信号已置位，丢弃数据直接返回
- 持久化数据
- 无论成功失败都释放句柄

失败不会在这里被吞掉，而是归类后作为 CycleResult 返回给调度器，
由调度器按失败策略决定继续还是终止。
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..sources.base import (
    ScraperError,
    SourceFactory,
    TimeoutFailure,
    TransportFailure,
    UnexpectedFailure,
    describe_records,
)

logger = logging.getLogger("pairup.worker.cycle")


class CycleStatus(str, Enum):
    Completed = "completed"
    Cancelled = "cancelled"
    Failed = "failed"


@dataclass
class CycleResult:
    """单个周期的执行结果

    Attributes:
        status: completed / cancelled / failed
        started_at: 开始时间戳（Unix 秒）
        finished_at: 结束时间戳，包含句柄释放
        item_count: 抓取到的记录数量
        error: 归类后的异常，仅 failed 时存在
    """

    status: CycleStatus
    started_at: float
    finished_at: float
    item_count: int = 0
    error: Optional[ScraperError] = None

    @property
    def ok(self) -> bool:
        return self.status is not CycleStatus.Failed

    @property
    def duration(self) -> float:
        return self.finished_at - self.started_at

    def raise_for_failure(self) -> None:
        """失败时重新抛出归类后的异常"""
        if self.error is not None:
            raise self.error

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "item_count": self.item_count,
            "error": str(self.error) if self.error is not None else None,
            "error_type": type(self.error).__name__ if self.error is not None else None,
        }


def classify_failure(exc: Exception) -> ScraperError:
    """将任意异常归类为 TransportFailure / TimeoutFailure / UnexpectedFailure

    传输与超时异常原样返回，内置超时包装为 TimeoutFailure，内置连接错误
    （ConnectionError 及其子类）包装为 TransportFailure，其余一律包装为
    UnexpectedFailure 并保留原始异常。
    """
    if isinstance(exc, (TransportFailure, TimeoutFailure)):
        return exc
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        failure: ScraperError = TimeoutFailure(str(exc) or "operation timed out")
    elif isinstance(exc, ConnectionError):
        failure = TransportFailure(str(exc) or type(exc).__name__)
    else:
        failure = UnexpectedFailure(exc)
    failure.__cause__ = exc
    return failure


class CycleExecutor:
    """周期执行器，跨周期无状态，只依赖数据源工厂"""

    def __init__(self, source_factory: SourceFactory):
        self._source_factory = source_factory

    async def run_once(self, stop_event: asyncio.Event) -> CycleResult:
        started_at = time.time()
        item_count = 0
        cancelled = False

        try:
            async with self._source_factory() as source:
                logger.info("[cycle] start source=%r", source)
                records = await source.fetch()
                item_count = len(records)
                logger.debug("[cycle] fetched %s", describe_records(records))

                # 抓取完成后、持久化之前检查停止信号
                if stop_event.is_set():
                    cancelled = True
                else:
                    await source.persist(records)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            failure = classify_failure(exc)
            logger.error(
                "[cycle] failed kind=%s error=%s", type(failure).__name__, failure
            )
            return CycleResult(
                CycleStatus.Failed, started_at, time.time(), item_count, failure
            )

        finished_at = time.time()
        if cancelled:
            logger.info(
                "[cycle] stop requested after fetch, discarded %d records", item_count
            )
            return CycleResult(CycleStatus.Cancelled, started_at, finished_at, item_count)

        logger.info(
            "[cycle] completed items=%d elapsed=%.3fs",
            item_count,
            finished_at - started_at,
        )
        return CycleResult(CycleStatus.Completed, started_at, finished_at, item_count)
