"""运行中调度器的进程级引用

app 的 lifespan 启动 Worker 后登记调度器，关闭时清除；
/status 等请求处理函数通过 get_scheduler() 读取状态快照。
"""

from __future__ import annotations

from typing import Optional

from .worker import RecurringScheduler

_scheduler: Optional[RecurringScheduler] = None


def get_scheduler() -> Optional[RecurringScheduler]:
    """未启动或已关闭时返回 None"""
    return _scheduler


def set_scheduler(instance: Optional[RecurringScheduler]) -> None:
    global _scheduler
    _scheduler = instance


__all__ = ["get_scheduler", "set_scheduler"]
