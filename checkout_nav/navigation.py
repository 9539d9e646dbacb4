"""Request, result and outcome types shared by the strategies and the orchestrator."""
from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .models import Order


class NavigationResult(str, Enum):
    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"  # screen shown, payload not injected
    FAILED_RECOVERABLE = "failed_recoverable"
    FAILED_CRITICAL = "failed_critical"
    CANCELLED = "cancelled"
    DATA_PRESERVED = "data_preserved"  # screen not shown by the host, payload saved

    def is_success(self) -> bool:
        return self in (NavigationResult.SUCCESS, NavigationResult.PARTIAL_SUCCESS)

    @property
    def description(self) -> str:
        return _RESULT_DESCRIPTIONS[self]


_RESULT_DESCRIPTIONS = {
    NavigationResult.SUCCESS: "Navigation completed successfully",
    NavigationResult.PARTIAL_SUCCESS: "Navigation completed with warnings",
    NavigationResult.FAILED_RECOVERABLE: "Navigation failed but recovery possible",
    NavigationResult.FAILED_CRITICAL: "Navigation failed critically",
    NavigationResult.CANCELLED: "Navigation was cancelled",
    NavigationResult.DATA_PRESERVED: "Navigation failed but data was preserved",
}


def _request_id() -> str:
    return uuid.uuid4().hex[:8]


@dataclass(frozen=True)
class NavigationRequest:
    """One navigation attempt. Never mutated after creation."""

    target_screen: str
    order: Order | None
    source: Any = None
    request_id: str = field(default_factory=_request_id)
    created_at: float = field(default_factory=time.time)

    @property
    def order_id(self) -> str | None:
        return self.order.order_id if self.order is not None else None


@dataclass(frozen=True)
class StrategyOutcome:
    result: NavigationResult
    reason: str
    controller: Any = None


@dataclass(frozen=True)
class StrategyAttempt:
    strategy: str
    result: NavigationResult
    reason: str


@dataclass(frozen=True)
class NavigationOutcome:
    request: NavigationRequest
    result: NavigationResult
    session_id: str | None = None
    strategy: str | None = None
    reason: str = ""
    reference_code: str | None = None
    controller: Any = None
    attempts: tuple[StrategyAttempt, ...] = ()
    finished_at: float = field(default_factory=time.time)

    @property
    def is_success(self) -> bool:
        return self.result.is_success()
