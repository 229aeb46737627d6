from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable


@dataclass(slots=True)
class ActivityRecord:

    # 远端数据源中的活动唯一标识，作为持久化主键
    source_id: str

    title: str

    url: str | None = None

    # 保存平台原始/半结构化数据，不做“过早清洗”
    raw: dict = field(default_factory=dict)

    # 抓取发生的时间（Unix 秒）
    fetched_at: float = field(default_factory=time.time)


class ScraperError(Exception):
    """采集周期异常基类"""

    pass


class TransportFailure(ScraperError):
    """与数据源通信时的网络/连接层错误"""

    pass


class TimeoutFailure(ScraperError):
    """操作超出了允许的时长"""

    pass


class UnexpectedFailure(ScraperError):
    """未归类的异常

    原始异常通过 ``__cause__`` 保留，消息中携带原始异常的描述。
    """

    def __init__(self, original: BaseException):
        self.original = original
        super().__init__(f"An unexpected error occurred: {original}")


class AcquisitionSource(ABC):
    """数据获取源抽象基类

    每个采集周期由工厂创建一个全新的实例，周期结束时无条件释放。
    实例不得跨周期复用，子类可以在构造时打开连接，在 ``aclose`` 中关闭。

    使用方式::

        async with factory() as source:
            records = await source.fetch()
            await source.persist(records)
    """

    name: str = "source"

    @abstractmethod
    async def fetch(self) -> list[ActivityRecord]:
        """抓取本周期的完整数据集

        Raises:
            TransportFailure: 网络/连接层错误
            TimeoutFailure: 请求超时
        """
        raise NotImplementedError

    @abstractmethod
    async def persist(self, records: list[ActivityRecord]) -> None:
        """持久化数据集，成功返回后下游即可读取

        Raises:
            TransportFailure: 存储连接错误
            TimeoutFailure: 写入超时
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """释放本周期持有的资源，默认无操作"""
        return None

    async def __aenter__(self) -> "AcquisitionSource":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"


# 每个周期调用一次，返回全新的数据源句柄
SourceFactory = Callable[[], AcquisitionSource]


def describe_records(records: list[ActivityRecord]) -> dict[str, Any]:
    """生成用于日志的数据集摘要"""
    return {
        "count": len(records),
        "first": records[0].source_id if records else None,
        "last": records[-1].source_id if records else None,
    }
