"""Application-lifetime wiring of the navigation components."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from .collaborators import EmergencyNavigator, EventSink, OrderDataService, ViewLoader
from .history import HistoryStack
from .host import HostRegistry
from .maintenance import PeriodicSweeper
from .orchestrator import NavigationOrchestrator
from .sessions import SessionStore
from .settings import Settings, parse_monitored_transitions
from .strategies import EmergencyStrategy, FallbackStrategy, NavigationStrategy, PrimaryStrategy
from .validation import ValidationTracker

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Everything a host application holds on to for checkout navigation.

    Built once by `build_context` and passed to whoever needs it.
    """

    settings: Settings
    registry: HostRegistry
    sessions: SessionStore
    tracker: ValidationTracker
    history: HistoryStack
    orchestrator: NavigationOrchestrator
    sweepers: list[PeriodicSweeper] = field(default_factory=list)

    def start_maintenance(self) -> None:
        if not self.sweepers:
            self.sweepers = [
                PeriodicSweeper(
                    "sessions",
                    self.sessions.sweep_expired,
                    self.settings.CHECKOUT_SESSION_SWEEP_MINUTES * 60,
                ),
                PeriodicSweeper(
                    "validation",
                    self.tracker.sweep_expired,
                    self.settings.CHECKOUT_VALIDATION_SWEEP_MINUTES * 60,
                ),
            ]
        for sweeper in self.sweepers:
            sweeper.start()

    def close(self) -> None:
        for sweeper in self.sweepers:
            sweeper.stop()
        logger.debug("Checkout navigation context closed")


def build_strategies(
    registry: HostRegistry,
    settings: Settings,
    *,
    view_loader: ViewLoader | None = None,
    emergency: EmergencyNavigator | None = None,
) -> list[NavigationStrategy]:
    """Primary, then fallback (needs a view loader), then emergency (needs a router)."""
    chain: list[NavigationStrategy] = [PrimaryStrategy(registry, settings.CHECKOUT_HOST_TIMEOUT_SECONDS)]
    if view_loader is not None:
        chain.append(FallbackStrategy(registry, view_loader))
    if emergency is not None:
        chain.append(EmergencyStrategy(emergency))
    return chain


def build_context(
    settings: Settings,
    *,
    view_loader: ViewLoader | None = None,
    emergency: EmergencyNavigator | None = None,
    order_service: OrderDataService | None = None,
    event_sink: EventSink | None = None,
    clock: Callable[[], float] = time.time,
) -> AppContext:
    registry = HostRegistry(clock=clock)
    sessions = SessionStore(
        order_service,
        ttl_seconds=settings.CHECKOUT_SESSION_TTL_MINUTES * 60,
        max_sessions=settings.CHECKOUT_SESSION_MAX,
        refresh_after_seconds=settings.CHECKOUT_SESSION_REFRESH_MINUTES * 60,
        form_state_ttl_seconds=settings.CHECKOUT_FORM_STATE_TTL_MINUTES * 60,
        clock=clock,
    )
    tracker = ValidationTracker(
        expiry_seconds=settings.CHECKOUT_VALIDATION_EXPIRY_MINUTES * 60,
        max_states_per_order=settings.CHECKOUT_VALIDATION_MAX_PER_ORDER,
        monitored_transitions=parse_monitored_transitions(settings.CHECKOUT_MONITORED_TRANSITIONS),
        event_sink=event_sink,
        clock=clock,
    )
    history = HistoryStack(settings.CHECKOUT_HISTORY_MAX)
    orchestrator = NavigationOrchestrator(
        registry=registry,
        sessions=sessions,
        tracker=tracker,
        history=history,
        strategies=build_strategies(registry, settings, view_loader=view_loader, emergency=emergency),
        max_failures=settings.CHECKOUT_MAX_FAILURES,
        event_sink=event_sink,
    )
    logger.info(
        "Checkout navigation ready (strategies=%s)", ", ".join(s.name for s in orchestrator.strategies)
    )
    return AppContext(
        settings=settings,
        registry=registry,
        sessions=sessions,
        tracker=tracker,
        history=history,
        orchestrator=orchestrator,
    )
