from __future__ import annotations

from enum import Enum

from ..sources.base import ScraperError, TimeoutFailure, TransportFailure


class FailureKind(str, Enum):
    """采集周期失败类型

    - transport: 网络/连接层错误
    - timeout: 超时
    - unexpected: 其它未归类错误
    """

    Transport = "transport"
    Timeout = "timeout"
    Unexpected = "unexpected"

    @classmethod
    def of(cls, error: ScraperError) -> "FailureKind":
        if isinstance(error, TransportFailure):
            return cls.Transport
        if isinstance(error, TimeoutFailure):
            return cls.Timeout
        return cls.Unexpected


class FailureAction(str, Enum):
    """调度器对失败周期的处置方式"""

    Stop = "stop"
    Continue = "continue"


class FailurePolicy:
    """按失败类型决定调度循环是继续还是终止

    默认所有类型都为 ``stop``：任意一次失败都会让调度循环退出并向宿主抛出异常。
    """

    def __init__(
        self,
        transport: FailureAction | str = FailureAction.Stop,
        timeout: FailureAction | str = FailureAction.Stop,
        unexpected: FailureAction | str = FailureAction.Stop,
    ):
        self._actions: dict[FailureKind, FailureAction] = {
            FailureKind.Transport: FailureAction(transport),
            FailureKind.Timeout: FailureAction(timeout),
            FailureKind.Unexpected: FailureAction(unexpected),
        }

    @classmethod
    def tolerant(cls) -> "FailurePolicy":
        """瞬时故障（传输、超时）继续，未知错误终止"""
        return cls(
            transport=FailureAction.Continue,
            timeout=FailureAction.Continue,
            unexpected=FailureAction.Stop,
        )

    def action_for(self, error: ScraperError) -> FailureAction:
        return self._actions[FailureKind.of(error)]

    def should_continue(self, error: ScraperError) -> bool:
        return self.action_for(error) is FailureAction.Continue

    def to_dict(self) -> dict[str, str]:
        return {kind.value: action.value for kind, action in self._actions.items()}

    def __repr__(self) -> str:
        return f"FailurePolicy({self.to_dict()})"
