from __future__ import annotations

from pydantic import BaseModel, Field
from pathlib import Path
import yaml
from typing import Literal, Optional
import logging
import os

from ..worker.policy import FailurePolicy

logger = logging.getLogger("pairup.config")

CONFIG_FILENAME = "pairup.yaml"

FailureActionName = Literal["stop", "continue"]


class WorkerConfig(BaseModel):
    interval_seconds: float = Field(default=24 * 3600, ge=0.001, allow_inf_nan=False)
    log_level: str = Field(default="INFO")

    def __init__(self, **data):
        # 支持环境变量覆盖调度间隔，覆盖值同样经过字段校验
        if "PAIRUP_INTERVAL_SECONDS" in os.environ:
            data["interval_seconds"] = os.environ["PAIRUP_INTERVAL_SECONDS"]
        super().__init__(**data)


class FailurePolicyConfig(BaseModel):
    transport: FailureActionName = Field(default="stop")
    timeout: FailureActionName = Field(default="stop")
    unexpected: FailureActionName = Field(default="stop")

    def build(self) -> FailurePolicy:
        return FailurePolicy(
            transport=self.transport,
            timeout=self.timeout,
            unexpected=self.unexpected,
        )


class SourceConfig(BaseModel):
    url: str = Field(default="http://localhost:8080/api/activities")
    timeout_seconds: float = Field(default=30.0, gt=0)
    user_agent: str = Field(default="PairUpScraper/1.0")

    def __init__(self, **data):
        if "PAIRUP_SOURCE_URL" in os.environ:
            data["url"] = os.environ["PAIRUP_SOURCE_URL"]
        super().__init__(**data)


class StorageConfig(BaseModel):
    db_path: str = Field(default="./data/pairup.db")

    def __init__(self, **data):
        # 支持环境变量覆盖数据库路径
        if "PAIRUP_DB_PATH" in os.environ:
            data["db_path"] = os.environ["PAIRUP_DB_PATH"]
        super().__init__(**data)


class Settings(BaseModel):
    worker: WorkerConfig = Field(default_factory=WorkerConfig)
    failure_policy: FailurePolicyConfig = Field(default_factory=FailurePolicyConfig)
    source: SourceConfig = Field(default_factory=SourceConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    @staticmethod
    def from_yaml(path: Optional[Path | str] = None) -> "Settings":
        """从 YAML 文件加载配置

        文件不存在或无法解析时返回默认配置，字段校验失败则直接抛出。
        """
        if path is None:
            path = _discover_yaml_path()

        path = Path(path)
        if not path.exists():
            logger.warning("配置文件不存在: %s，使用默认配置", path)
            return Settings()

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error("加载配置文件失败: %s error=%s", path, e)
            return Settings()

        if not isinstance(data, dict):
            logger.error("配置文件格式错误，顶层应为映射: %s", path)
            return Settings()

        settings = Settings(
            worker=WorkerConfig(**(data.get("worker") or {})),
            failure_policy=FailurePolicyConfig(**(data.get("failure_policy") or {})),
            source=SourceConfig(**(data.get("source") or {})),
            storage=StorageConfig(**(data.get("storage") or {})),
        )
        logger.info("已加载配置文件: %s", path)
        return settings


def _discover_yaml_path() -> Path:
    """优先使用 PAIRUP_CONFIG，否则向上递归查找 pairup.yaml 文件"""
    env_path = os.environ.get("PAIRUP_CONFIG")
    if env_path:
        return Path(env_path)

    start = Path(__file__).resolve()
    for parent in start.parents:
        candidate = parent / CONFIG_FILENAME
        if candidate.exists():
            return candidate
    # 默认位置
    return Path(__file__).resolve().parent.parent.parent / CONFIG_FILENAME


_settings: Settings | None = None


def get_settings() -> Settings:
    """获取全局配置实例"""
    global _settings
    if _settings is None:
        _settings = Settings.from_yaml()
    return _settings


def reset_settings() -> None:
    """清除缓存的全局配置（主要用于测试）"""
    global _settings
    _settings = None
