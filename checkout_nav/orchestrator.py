"""Entry point for checkout screen transitions.

A navigation runs as a fixed pipeline:

1. validate the request (rejections are `FAILED_CRITICAL`, nothing else runs)
2. preserve the payload in the session store
3. push the previous screen onto the history stack
4. try the strategy chain in order, stopping at the first strategy that
   shows the screen (or, for the emergency strategy, preserves the data)
5. record the outcome: statistics, circuit breaker, bypass detection

The circuit breaker is an observability signal. `is_healthy()` turns false
after `max_failures` consecutive failed navigations and only a successful
navigation turns it back on; navigation is still attempted while it is open.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Iterable, Sequence

from .collaborators import EventSink
from .errors import NavigationError, PersistenceFailure, ValidationFailure, generate_reference_code
from .history import HistoryStack, NavigationContext
from .host import HostRegistry
from .models import Order
from .navigation import (
    NavigationOutcome,
    NavigationRequest,
    NavigationResult,
    StrategyAttempt,
    StrategyOutcome,
)
from .screens import ORDER_SUMMARY, PAYMENT_METHOD
from .sessions import RecoveryResult, SessionStore
from .strategies import NavigationStrategy
from .validation import ValidationTracker

logger = logging.getLogger(__name__)

__all__ = [
    "NavigationOrchestrator",
    "NavigationOutcome",
    "NavigationRequest",
    "NavigationResult",
    "SCREEN_PRECONDITIONS",
]

Precondition = Callable[[Order], "str | None"]


def _require_items(order: Order) -> str | None:
    if not order.items:
        return "Order summary requires at least one item"
    return None


def _require_delivery_info(order: Order) -> str | None:
    if order.delivery_info is None:
        return "Payment method selection requires delivery information"
    return None


def _require_positive_total(order: Order) -> str | None:
    if order.total_amount <= 0:
        return "Payment method selection requires a positive order total"
    return None


# Screen-specific checks run after the generic request checks.
SCREEN_PRECONDITIONS: dict[str, tuple[Precondition, ...]] = {
    ORDER_SUMMARY: (_require_items,),
    PAYMENT_METHOD: (_require_delivery_info, _require_positive_total),
}


class NavigationOrchestrator:
    def __init__(
        self,
        *,
        registry: HostRegistry,
        sessions: SessionStore,
        tracker: ValidationTracker,
        history: HistoryStack,
        strategies: Sequence[NavigationStrategy],
        max_failures: int = 3,
        preconditions: dict[str, Iterable[Precondition]] | None = None,
        event_sink: EventSink | None = None,
    ):
        if not strategies:
            raise ValueError("At least one navigation strategy is required")
        self.registry = registry
        self.sessions = sessions
        self.tracker = tracker
        self.history = history
        self.strategies = list(strategies)
        self.max_failures = max(1, int(max_failures))
        self.preconditions = {
            screen: tuple(checks)
            for screen, checks in (SCREEN_PRECONDITIONS if preconditions is None else preconditions).items()
        }
        self.event_sink = event_sink

        self._lock = threading.Lock()
        self._current: NavigationContext | None = None
        self.last_outcome: NavigationOutcome | None = None
        self._reset_counters_locked()

    # -- navigation -------------------------------------------------------

    def navigate_to(self, screen_id: str, order: Order | None, source: Any = None) -> NavigationResult:
        return self.navigate(NavigationRequest(screen_id, order, source)).result

    def navigate(self, request: NavigationRequest) -> NavigationOutcome:
        return self._run(request, record_history=True)

    def navigate_back(self, order: Order | None, source: Any = None) -> NavigationResult:
        """Navigate to the most recent history entry.

        `CANCELLED` when there is nothing to go back to. If the navigation
        does not succeed the entry is put back so a later retry can use it.
        """
        previous = self.history.pop()
        if previous is None:
            logger.info("Back navigation requested with empty history")
            request = NavigationRequest("", order, source)
            outcome = NavigationOutcome(
                request=request,
                result=NavigationResult.CANCELLED,
                reason="No previous screen in history",
            )
            self.last_outcome = outcome
            return outcome.result

        outcome = self._run(NavigationRequest(previous.screen_id, order, source), record_history=False)
        if not outcome.result.is_success():
            self.history.push(previous)
        return outcome.result

    def _run(self, request: NavigationRequest, *, record_history: bool) -> NavigationOutcome:
        with self._lock:
            previous = self._current
        from_screen = previous.screen_id if previous is not None else None

        logger.info(
            "Navigation %s: %s -> %s (order=%s)",
            request.request_id, from_screen or "-", request.target_screen or "-", request.order_id,
        )

        try:
            self._validate(request)
        except ValidationFailure as e:
            return self._reject(request, str(e))

        session_id = self._preserve(request)

        if record_history and previous is not None:
            self.history.push(previous)

        attempts: list[StrategyAttempt] = []
        for strategy in self.strategies:
            outcome = self._attempt(strategy, request, attempts)
            if outcome is None:
                continue
            if outcome.result is NavigationResult.DATA_PRESERVED and session_id is None:
                # Nothing was actually kept, so the user cannot be told otherwise.
                attempts[-1] = StrategyAttempt(
                    strategy.name, NavigationResult.FAILED_RECOVERABLE, "Order data could not be preserved"
                )
                logger.warning("%s strategy routed without preserved data, continuing", strategy.name)
                continue
            return self._conclude(
                request,
                outcome.result,
                from_screen=from_screen,
                session_id=session_id,
                strategy=strategy.name,
                reason=outcome.reason,
                controller=outcome.controller,
                attempts=attempts,
            )

        reference_code = generate_reference_code()
        logger.error(
            "All navigation strategies failed for %s (request=%s, ref=%s)",
            request.target_screen, request.request_id, reference_code,
        )
        return self._conclude(
            request,
            NavigationResult.FAILED_CRITICAL,
            from_screen=from_screen,
            session_id=session_id,
            strategy=None,
            reason="All navigation strategies failed",
            attempts=attempts,
            reference_code=reference_code,
        )

    def _attempt(
        self,
        strategy: NavigationStrategy,
        request: NavigationRequest,
        attempts: list[StrategyAttempt],
    ) -> StrategyOutcome | None:
        """Run one strategy; None means fall through to the next one."""
        try:
            outcome = strategy.attempt(request)
        except NavigationError as e:
            logger.warning("%s strategy failed for %s: %s", strategy.name, request.target_screen, e)
            attempts.append(StrategyAttempt(strategy.name, NavigationResult.FAILED_RECOVERABLE, str(e)))
            return None
        except Exception as e:
            logger.exception("%s strategy raised unexpectedly for %s", strategy.name, request.target_screen)
            attempts.append(
                StrategyAttempt(strategy.name, NavigationResult.FAILED_RECOVERABLE, f"{type(e).__name__}: {e}")
            )
            return None

        attempts.append(StrategyAttempt(strategy.name, outcome.result, outcome.reason))
        if outcome.result.is_success() or outcome.result is NavigationResult.DATA_PRESERVED:
            return outcome
        logger.warning(
            "%s strategy reported %s for %s: %s",
            strategy.name, outcome.result.value, request.target_screen, outcome.reason,
        )
        return None

    # -- steps ------------------------------------------------------------

    def _validate(self, request: NavigationRequest) -> None:
        if not request.target_screen or not request.target_screen.strip():
            raise ValidationFailure("Target screen is empty")
        order = request.order
        if order is None:
            raise ValidationFailure("Order payload is missing")
        if not order.order_id or not str(order.order_id).strip():
            raise ValidationFailure("Order ID is missing")
        for check in self.preconditions.get(request.target_screen, ()):
            problem = check(order)
            if problem:
                raise ValidationFailure(problem)

    def _preserve(self, request: NavigationRequest) -> str | None:
        session_id = self.sessions.generate_session_id(request.order_id)
        try:
            self.sessions.put(session_id, request.order)
        except PersistenceFailure as e:
            logger.warning("Could not preserve order %s, continuing without a session: %s", request.order_id, e)
            return None
        except Exception:
            logger.exception("Session store failed while preserving order %s", request.order_id)
            return None
        return session_id

    def _reject(self, request: NavigationRequest, reason: str) -> NavigationOutcome:
        reference_code = generate_reference_code()
        logger.warning(
            "Navigation %s to %s rejected: %s (ref=%s)",
            request.request_id, request.target_screen or "-", reason, reference_code,
        )
        outcome = NavigationOutcome(
            request=request,
            result=NavigationResult.FAILED_CRITICAL,
            reason=reason,
            reference_code=reference_code,
        )
        with self._lock:
            self._rejected += 1
            self._last_request_id = request.request_id
            self._last_result = outcome.result
            self._last_error = reason
        self.last_outcome = outcome
        self._emit("navigation.rejected", outcome)
        return outcome

    def _conclude(
        self,
        request: NavigationRequest,
        result: NavigationResult,
        *,
        from_screen: str | None,
        session_id: str | None,
        strategy: str | None,
        reason: str,
        attempts: list[StrategyAttempt],
        controller: Any = None,
        reference_code: str | None = None,
    ) -> NavigationOutcome:
        outcome = NavigationOutcome(
            request=request,
            result=result,
            session_id=session_id,
            strategy=strategy,
            reason=reason,
            reference_code=reference_code,
            controller=controller,
            attempts=tuple(attempts),
        )

        with self._lock:
            self._attempts += 1
            self._last_request_id = request.request_id
            self._last_result = result
            if result.is_success():
                self._successes += 1
                if self._consecutive_failures >= self.max_failures:
                    logger.info("Navigation circuit closed after a successful transition")
                self._consecutive_failures = 0
                self._current = NavigationContext(
                    request.target_screen,
                    data={"order_id": request.order_id, "session_id": session_id},
                )
            else:
                self._failures += 1
                self._consecutive_failures += 1
                self._last_error = reason
                if self._consecutive_failures == self.max_failures:
                    logger.error(
                        "Navigation circuit opened after %d consecutive failures", self._consecutive_failures
                    )

        if result.is_success():
            logger.info(
                "Navigation %s to %s: %s via %s",
                request.request_id, request.target_screen, result.value, strategy,
            )
            try:
                self.tracker.observe_transition(request.order_id, from_screen, request.target_screen)
            except Exception:
                logger.exception("Bypass detection failed for %s -> %s", from_screen, request.target_screen)
        elif result is NavigationResult.DATA_PRESERVED:
            logger.warning(
                "Navigation %s to %s: data preserved in session %s",
                request.request_id, request.target_screen, session_id,
            )

        self.last_outcome = outcome
        self._emit("navigation.completed", outcome)
        return outcome

    def _emit(self, event: str, outcome: NavigationOutcome) -> None:
        if self.event_sink is None:
            return
        try:
            self.event_sink.emit(
                event,
                request_id=outcome.request.request_id,
                target=outcome.request.target_screen,
                order_id=outcome.request.order_id,
                result=outcome.result,
                strategy=outcome.strategy,
                session_id=outcome.session_id,
                reference_code=outcome.reference_code,
            )
        except Exception:
            logger.exception("Event sink failed for %s", event)

    # -- recovery ---------------------------------------------------------

    def has_preserved_data(self, session_id: str) -> bool:
        return self.sessions.has(session_id)

    def recover_data(self, session_id: str) -> RecoveryResult:
        return self.sessions.attempt_recovery(session_id)

    # -- health and statistics ---------------------------------------------

    def is_healthy(self) -> bool:
        with self._lock:
            return self._consecutive_failures < self.max_failures

    @property
    def current_context(self) -> NavigationContext | None:
        with self._lock:
            return self._current

    @property
    def success_rate(self) -> float:
        """Percentage of strategy-chain navigations that succeeded (100.0 with none yet)."""
        with self._lock:
            if self._attempts == 0:
                return 100.0
            return self._successes / self._attempts * 100.0

    def stats(self) -> dict[str, Any]:
        rate = self.success_rate
        with self._lock:
            return {
                "attempts": self._attempts,
                "successes": self._successes,
                "failures": self._failures,
                "rejected": self._rejected,
                "consecutive_failures": self._consecutive_failures,
                "success_rate": round(rate, 1),
                "last_request_id": self._last_request_id,
                "last_result": self._last_result.value if self._last_result else None,
                "last_error": self._last_error,
            }

    def reset_statistics(self) -> None:
        with self._lock:
            self._reset_counters_locked()
        logger.info("Navigation statistics reset")

    def _reset_counters_locked(self) -> None:
        self._attempts = 0
        self._successes = 0
        self._failures = 0
        self._rejected = 0
        self._consecutive_failures = 0
        self._last_request_id: str | None = None
        self._last_result: NavigationResult | None = None
        self._last_error: str | None = None

    # -- diagnostics ------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        current = self.current_context
        return {
            "taken_at": time.time(),
            "healthy": self.is_healthy(),
            "circuit_open": not self.is_healthy(),
            "max_failures": self.max_failures,
            "current_screen": current.screen_id if current is not None else None,
            "strategies": [s.name for s in self.strategies],
            "statistics": self.stats(),
            "host": self.registry.debug_info(),
            "sessions": {"active": len(self.sessions), "forms": self.sessions.form_count()},
            "validation": {"states": len(self.tracker), "by_order": self.tracker.counts_by_order()},
            "history": {"size": len(self.history), "breadcrumbs": self.history.breadcrumbs()},
        }

    def get_debug_snapshot(self) -> str:
        snap = self.snapshot()
        stats = snap["statistics"]
        host = snap["host"]
        lines = [
            "=== Checkout Navigation ===",
            f"Healthy: {snap['healthy']} (consecutive failures {stats['consecutive_failures']}/{snap['max_failures']})",
            f"Current screen: {snap['current_screen'] or '-'}",
            f"Strategies: {' -> '.join(snap['strategies'])}",
            (
                f"Navigations: {stats['attempts']} (ok {stats['successes']}, failed {stats['failures']}, "
                f"rejected {stats['rejected']}, success rate {stats['success_rate']}%)"
            ),
            f"Last result: {stats['last_result'] or '-'}",
            f"Last error: {stats['last_error'] or '-'}",
            "",
            f"Host: {host['host'] or '-'} (initialized={host['initialized']}, validated={host['validated']})",
        ]
        if host["last_validation_error"]:
            lines.append(f"Host validation error: {host['last_validation_error']}")
        lines += [
            f"Sessions: {snap['sessions']['active']} active, {snap['sessions']['forms']} form snapshots",
            f"Validation states: {snap['validation']['states']}",
        ]
        for order_id, count in sorted(snap["validation"]["by_order"].items()):
            lines.append(f"  {order_id}: {count}")
        lines.append(f"History ({snap['history']['size']}): {snap['history']['breadcrumbs'] or '-'}")
        return "\n".join(lines)
