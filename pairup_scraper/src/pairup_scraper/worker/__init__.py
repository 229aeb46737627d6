"""采集 Worker 组件集合

- RecurringScheduler: 固定间隔驱动采集周期的调度循环
- CycleExecutor: 执行单次 抓取 -> 持久化 周期
- CycleResult / CycleStatus: 周期执行结果
- FailurePolicy: 按失败类型决定继续还是终止
"""

from .cycle import CycleExecutor, CycleResult, CycleStatus, classify_failure
from .policy import FailureAction, FailureKind, FailurePolicy
from .scheduler import DEFAULT_INTERVAL_SECONDS, RecurringScheduler

__all__ = [
    "CycleExecutor",
    "CycleResult",
    "CycleStatus",
    "classify_failure",
    "FailureAction",
    "FailureKind",
    "FailurePolicy",
    "DEFAULT_INTERVAL_SECONDS",
    "RecurringScheduler",
]
