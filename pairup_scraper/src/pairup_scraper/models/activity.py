"""活动数据模型

本模块定义了采集到的活动记录的存储模型，使用 SQLAlchemy ORM 实现。
只保留 Worker 写入所需的最小字段，原始数据以 JSON 形式整体保存。
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional
import threading

from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    String,
    Text,
    create_engine,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    Session,
    mapped_column,
    sessionmaker,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# SQLAlchemy 基类（Typed Declarative）
class Base(DeclarativeBase):
    pass


class Activity(Base):
    """活动表

    字段说明：
    - source_id: 远端数据源中的活动标识，主键，重复抓取时覆盖写入
    - title: 活动标题
    - url: 活动详情链接
    - raw: 原始数据（JSON）
    - fetched_at: 最近一次抓取时间戳（Unix 秒）
    - updated_at: 最近一次写入时间
    """

    __tablename__ = "activities"

    source_id: Mapped[str] = mapped_column(
        String, primary_key=True, comment="远端活动标识"
    )
    title: Mapped[str] = mapped_column(Text, nullable=False, comment="活动标题")
    url: Mapped[Optional[str]] = mapped_column(
        String, nullable=True, comment="活动详情链接"
    )
    raw: Mapped[Dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=dict, comment="原始数据"
    )
    fetched_at: Mapped[float] = mapped_column(
        Float, nullable=False, index=True, comment="抓取时间戳（Unix 秒）"
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        comment="最后更新时间",
    )

    def __repr__(self) -> str:
        return f"<Activity(source_id={self.source_id}, title={self.title!r})>"

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        return {
            "source_id": self.source_id,
            "title": self.title,
            "url": self.url,
            "raw": self.raw,
            "fetched_at": self.fetched_at,
            "updated_at": (
                self.updated_at.isoformat() if self.updated_at is not None else None
            ),
        }


class DatabaseManager:
    """数据库管理器（单例模式）

    持有全局唯一的 engine 与会话工厂。engine 跨周期共享，
    会话由每个周期的数据源句柄各自创建并关闭。
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls, db_path: str = "pairup.db"):
        if cls._instance is None:
            with cls._lock:
                # 双重检查锁定
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self, db_path: str = "pairup.db"):
        """初始化数据库管理器

        Args:
            db_path: SQLite 数据库文件路径
        """
        # 确保只初始化一次
        if self._initialized:
            return

        self.db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self.engine = create_engine(
            f"sqlite:///{db_path}",
            connect_args={"check_same_thread": False},
            echo=False,
        )
        with self.__class__._lock:
            Base.metadata.create_all(self.engine, checkfirst=True)
        self.Session = sessionmaker(bind=self.engine)

        self._initialized = True

    def get_session(self) -> Session:
        """获取数据库会话"""
        return self.Session()

    def dispose(self) -> None:
        """关闭连接池"""
        self.engine.dispose()

    @classmethod
    def reset_instance(cls):
        """重置单例实例（主要用于测试）"""
        with cls._lock:
            if cls._instance is not None and cls._instance._initialized:
                cls._instance.dispose()
            cls._instance = None

    @classmethod
    def get_instance(cls, db_path: str = "pairup.db") -> "DatabaseManager":
        return cls(db_path)
