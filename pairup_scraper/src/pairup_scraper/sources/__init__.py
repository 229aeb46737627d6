"""数据获取源

- AcquisitionSource: 每周期一个实例的数据源抽象
- HttpActivitySource: 基于 httpx + SQLAlchemy 的参考实现
"""

from .base import (
    AcquisitionSource,
    ActivityRecord,
    ScraperError,
    SourceFactory,
    TimeoutFailure,
    TransportFailure,
    UnexpectedFailure,
)
from .http_source import HttpActivitySource, build_source_factory

__all__ = [
    "AcquisitionSource",
    "ActivityRecord",
    "ScraperError",
    "SourceFactory",
    "TimeoutFailure",
    "TransportFailure",
    "UnexpectedFailure",
    "HttpActivitySource",
    "build_source_factory",
]
