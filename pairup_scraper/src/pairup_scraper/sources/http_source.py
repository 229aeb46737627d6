"""HTTP 活动数据源

参考实现：通过 httpx 从远端接口抓取活动列表，通过 SQLAlchemy 写入 SQLite。
每个周期创建一个实例，实例内的 HTTP 客户端与数据库会话只服务于该周期，
周期结束时在 aclose() 中一并关闭。
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

import httpx
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from ..models.activity import Activity, DatabaseManager
from .base import (
    AcquisitionSource,
    ActivityRecord,
    SourceFactory,
    TimeoutFailure,
    TransportFailure,
)

if TYPE_CHECKING:
    from ..config.settings import Settings

logger = logging.getLogger("pairup.sources.http")


class HttpActivitySource(AcquisitionSource):
    """从 HTTP 接口抓取活动并持久化到数据库"""

    name = "http.activities"

    def __init__(
        self,
        url: str,
        db_manager: DatabaseManager,
        timeout: float = 30.0,
        user_agent: str = "PairUpScraper/1.0",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """初始化数据源句柄

        Args:
            url: 活动接口地址
            db_manager: 数据库管理器
            timeout: 单次请求超时（秒）
            user_agent: 请求头 User-Agent
            transport: 可选的 httpx 传输层，测试时注入 MockTransport
        """
        self.url = url
        # 会话先于客户端创建；客户端创建失败时关闭已打开的会话
        self._session = db_manager.get_session()
        try:
            self._client = httpx.AsyncClient(
                timeout=timeout,
                headers={"User-Agent": user_agent, "Accept": "application/json"},
                transport=transport,
            )
        except Exception:
            self._session.close()
            raise
        self._closed = False

    async def fetch(self) -> list[ActivityRecord]:
        logger.info("抓取活动列表: url=%s", self.url)
        try:
            response = await self._client.get(self.url)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise TimeoutFailure(f"Request to {self.url} timed out") from e
        except httpx.HTTPStatusError as e:
            raise TransportFailure(
                f"HTTP {e.response.status_code} from {self.url}"
            ) from e
        except httpx.TransportError as e:
            raise TransportFailure(f"Failed to reach {self.url}: {e}") from e

        records = self._parse_activities(response.json())
        logger.info("抓取完成: url=%s 记录数量=%d", self.url, len(records))
        return records

    def _parse_activities(
        self, data: Union[Dict[str, Any], List[Dict[str, Any]]]
    ) -> list[ActivityRecord]:
        """解析接口返回的 JSON

        支持两种格式：
        1. {"activities": [...]}
        2. [activity1, activity2, ...]
        """
        if isinstance(data, dict) and "activities" in data:
            items = data["activities"]
        elif isinstance(data, list):
            items = data
        else:
            raise ValueError(f"Unexpected activities payload: {type(data).__name__}")

        if not isinstance(items, list):
            raise ValueError(f"Unexpected activities type: {type(items).__name__}")

        fetched_at = time.time()
        records: list[ActivityRecord] = []
        for item in items:
            if not isinstance(item, dict):
                logger.warning("跳过非对象条目: %r", item)
                continue
            source_id = item.get("id")
            if source_id is None or source_id == "":
                logger.warning("跳过缺少 id 的条目: %s", item)
                continue
            records.append(
                ActivityRecord(
                    source_id=str(source_id),
                    title=str(item.get("title") or item.get("name") or ""),
                    url=item.get("url"),
                    raw=item,
                    fetched_at=fetched_at,
                )
            )
        return records

    async def persist(self, records: list[ActivityRecord]) -> None:
        if not records:
            logger.info("无数据需要保存")
            return

        try:
            for record in records:
                # 使用 merge 实现 UPSERT，重复抓取同一活动时覆盖
                self._session.merge(
                    Activity(
                        source_id=record.source_id,
                        title=record.title,
                        url=record.url,
                        raw=record.raw,
                        fetched_at=record.fetched_at,
                    )
                )
            self._session.commit()
        except OperationalError as e:
            self._session.rollback()
            logger.error("数据库不可用，已回滚: %s", e)
            raise TransportFailure(f"Database unavailable: {e.orig}") from e
        except SQLAlchemyError as e:
            self._session.rollback()
            logger.error("批量保存失败，已回滚: %s", e)
            raise

        logger.info("成功保存 %d 条活动到数据库", len(records))

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._client.aclose()
        finally:
            self._session.close()


def build_source_factory(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> SourceFactory:
    """根据配置构造每周期调用一次的数据源工厂"""
    db_manager = DatabaseManager.get_instance(settings.storage.db_path)

    def factory() -> HttpActivitySource:
        return HttpActivitySource(
            url=settings.source.url,
            db_manager=db_manager,
            timeout=settings.source.timeout_seconds,
            user_agent=settings.source.user_agent,
            transport=transport,
        )

    return factory
