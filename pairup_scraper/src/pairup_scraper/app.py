"""PairUp Scraper 宿主应用

- FastAPI 实例
- 应用生命周期内启动/停止 RecurringScheduler
- 状态查询接口

Worker 在进程存活期间按固定间隔抓取活动并持久化。
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator

from fastapi import FastAPI

from .config.settings import get_settings
from .sources import build_source_factory
from .state import get_scheduler, set_scheduler
from .utils.logging import setup_logging
from .worker import CycleExecutor, RecurringScheduler

logger = setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:  # noqa: D401 (fastapi 兼容)
    """应用生命周期：启动调度器 & 关闭清理。"""
    logger.info("Application starting ...")

    settings = get_settings()
    logger.setLevel(settings.worker.log_level.upper())

    executor = CycleExecutor(build_source_factory(settings))
    scheduler = RecurringScheduler(
        executor,
        interval_seconds=settings.worker.interval_seconds,
        failure_policy=settings.failure_policy.build(),
    )

    # 停止信号由宿主持有，关闭时置位
    stop_event = asyncio.Event()
    scheduler.start(stop_event)
    set_scheduler(scheduler)
    logger.info(
        "RecurringScheduler started interval=%.0fs policy=%s",
        scheduler.interval_seconds,
        scheduler.failure_policy,
    )

    try:
        yield
    finally:
        logger.info("Application shutting down ...")
        stop_event.set()
        await scheduler.stop()
        set_scheduler(None)
        logger.info("RecurringScheduler stopped.")


app = FastAPI(
    title="PairUp Scraper",
    description="PairUp 活动采集 Worker",
    version="1.0.0",
    lifespan=lifespan,
)


@app.get("/", summary="健康检查 / Hello")
async def root():
    return {"message": "Hello PairUp"}


@app.get("/status")
async def get_status() -> dict[str, Any]:
    """获取 Worker 状态信息。

    返回:
        包含调度器状态的字典
    """
    scheduler = get_scheduler()
    status: dict[str, Any] = {
        "message": "PairUp Scraper is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "scheduler_running": scheduler.is_running() if scheduler else False,
    }
    if scheduler:
        status["scheduler"] = scheduler.get_status()
    return status


# 可选：uvicorn 直接运行入口
if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run("pairup_scraper.app:app", host="0.0.0.0", port=8000)
