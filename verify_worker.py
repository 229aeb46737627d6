#!/usr/bin/env python3
"""验证 RecurringScheduler 的周期执行、停止信号与失败策略（无网络依赖）"""

import asyncio
import os
import sys

# 设置项目路径
project_root = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, os.path.join(project_root, "pairup_scraper", "src"))

from pairup_scraper.sources.base import (  # noqa: E402
    AcquisitionSource,
    ActivityRecord,
    TransportFailure,
)
from pairup_scraper.utils.logging import setup_logging  # noqa: E402
from pairup_scraper.worker import (  # noqa: E402
    CycleExecutor,
    FailurePolicy,
    RecurringScheduler,
)


class DemoSource(AcquisitionSource):
    """内存数据源，第 2 个周期模拟网络故障"""

    name = "demo"
    opened = 0
    closed = 0

    def __init__(self):
        DemoSource.opened += 1
        self.cycle = DemoSource.opened

    async def fetch(self):
        if self.cycle == 2:
            raise TransportFailure("simulated connection reset")
        return [ActivityRecord(source_id=f"demo-{self.cycle}", title="Demo")]

    async def persist(self, records):
        print(f"  周期 #{self.cycle} 保存 {len(records)} 条记录")

    async def aclose(self):
        DemoSource.closed += 1


async def verify_tolerant_policy() -> bool:
    print("=== 瞬时故障后继续调度 ===")
    stop_event = asyncio.Event()
    scheduler = RecurringScheduler(
        CycleExecutor(DemoSource),
        interval_seconds=0.01,
        failure_policy=FailurePolicy.tolerant(),
    )
    task = scheduler.start(stop_event)

    while scheduler.cycle_count < 4:
        await asyncio.sleep(0.01)
    await scheduler.stop()

    assert task.done(), "调度任务应已结束"
    assert DemoSource.opened == DemoSource.closed, "每个周期的句柄都应释放"
    print(f"✅ 执行 {scheduler.cycle_count} 个周期，句柄全部释放")
    return True


async def verify_default_policy() -> bool:
    print("\n=== 默认策略：失败终止调度 ===")
    DemoSource.opened = DemoSource.closed = 0
    scheduler = RecurringScheduler(CycleExecutor(DemoSource), interval_seconds=0.01)

    try:
        await scheduler.run(asyncio.Event())
    except TransportFailure as e:
        print(f"✅ 失败向外传播: {e}")
    else:
        print("❌ 默认策略下失败未传播")
        return False

    assert scheduler.cycle_count == 2, "失败后不应开始第 3 个周期"
    print("✅ 第 3 个周期未开始")
    return True


async def main() -> bool:
    setup_logging()
    results = [await verify_tolerant_policy(), await verify_default_policy()]
    print(f"\n成功: {sum(results)}/{len(results)}")
    return all(results)


if __name__ == "__main__":
    success = asyncio.run(main())
    sys.exit(0 if success else 1)
