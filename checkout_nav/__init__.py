"""Checkout screen navigation: host registry, session preservation,
validation tracking, back-navigation history and the orchestrator that
ties them together.
"""
from __future__ import annotations

from .context import AppContext, build_context
from .errors import (
    HostUnavailable,
    NavigationError,
    PersistenceFailure,
    TransitionFailure,
    ValidationFailure,
)
from .history import HistoryStack, NavigationContext, SearchContext
from .host import HostRegistry
from .models import DeliveryInfo, Order, OrderItem, OrderStatus
from .navigation import NavigationOutcome, NavigationRequest, NavigationResult
from .orchestrator import NavigationOrchestrator
from .sessions import RecoveryResult, SessionStore
from .settings import Settings, load_settings
from .validation import ValidationOutcome, ValidationTracker

__all__ = [
    "AppContext",
    "DeliveryInfo",
    "HistoryStack",
    "HostRegistry",
    "HostUnavailable",
    "NavigationContext",
    "NavigationError",
    "NavigationOrchestrator",
    "NavigationOutcome",
    "NavigationRequest",
    "NavigationResult",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PersistenceFailure",
    "RecoveryResult",
    "SearchContext",
    "SessionStore",
    "Settings",
    "TransitionFailure",
    "ValidationFailure",
    "ValidationOutcome",
    "ValidationTracker",
    "build_context",
    "load_settings",
]
