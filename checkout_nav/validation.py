"""Validation outcomes per (order, checkout step), with bypass detection."""
from __future__ import annotations

import itertools
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Mapping

from .collaborators import EventSink
from .models import Order, OrderStatus
from .screens import DEFAULT_MONITORED_TRANSITIONS, ValidationStep

logger = logging.getLogger(__name__)

TRANSITION_RETENTION_SECONDS = 60 * 60


class ValidationOutcome(str, Enum):
    PENDING = "pending"
    PASSED = "passed"
    FAILED = "failed"
    BYPASSED = "bypassed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


@dataclass
class ValidationState:
    state_id: str
    order_id: str
    step: ValidationStep
    outcome: ValidationOutcome
    context: str
    created_at: float
    expires_at: float
    invalidated: bool = False

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    def is_valid(self, now: float) -> bool:
        return not self.invalidated and not self.is_expired(now)


@dataclass
class ObservedTransition:
    order_id: str
    from_screen: str | None
    to_screen: str
    at: float
    preserved: dict[str, Any] = field(default_factory=dict)


@dataclass
class ValidationSummary:
    valid: bool
    message: str
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)

    def add_warning(self, warning: str) -> None:
        self.warnings.append(warning)

    def add_error(self, error: str) -> None:
        self.errors.append(error)
        self.valid = False

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


class ValidationTracker:
    """Records validation outcomes per (order, step) and infers skipped steps.

    At most `max_states_per_order` states are kept per order; the oldest go
    first. Bypass detection is an audit aid: it records a `BYPASSED` state
    when a monitored transition happens without a `PASSED` state for the
    step that should have been completed first. It never blocks navigation.
    """

    def __init__(
        self,
        *,
        expiry_seconds: float = 2 * 60 * 60,
        max_states_per_order: int = 10,
        monitored_transitions: Mapping[tuple[str, str], ValidationStep] | None = None,
        event_sink: EventSink | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.expiry_seconds = expiry_seconds
        self.max_states_per_order = max(1, int(max_states_per_order))
        self.monitored_transitions = dict(
            DEFAULT_MONITORED_TRANSITIONS if monitored_transitions is None else monitored_transitions
        )
        self.event_sink = event_sink
        self._clock = clock
        self._lock = threading.RLock()
        self._states: dict[str, ValidationState] = {}
        self._transitions: list[ObservedTransition] = []
        self._ids = itertools.count(1)

    def record(
        self,
        order_id: str,
        step: ValidationStep,
        outcome: ValidationOutcome,
        context: str = "",
    ) -> str:
        """Track a new validation state and return its id."""
        if not order_id or not str(order_id).strip():
            raise ValueError("Order ID cannot be empty")

        now = self._clock()
        with self._lock:
            state = ValidationState(
                state_id=self._next_state_id(now),
                order_id=order_id,
                step=step,
                outcome=outcome,
                context=context,
                created_at=now,
                expires_at=now + self.expiry_seconds,
            )
            self._trim_order_locked(order_id)
            self._states[state.state_id] = state

        logger.info(
            "Validation state %s: order=%s step=%s outcome=%s",
            state.state_id, order_id, step.value, outcome.value,
        )
        return state.state_id

    def update(self, state_id: str, outcome: ValidationOutcome, context: str = "") -> bool:
        """Replace the outcome of a live state. False if absent or no longer valid."""
        now = self._clock()
        with self._lock:
            existing = self._states.get(state_id)
            if existing is None or not existing.is_valid(now):
                logger.warning("Cannot update missing or invalid validation state %s", state_id)
                return False
            self._states[state_id] = ValidationState(
                state_id=state_id,
                order_id=existing.order_id,
                step=existing.step,
                outcome=outcome,
                context=context,
                created_at=now,
                expires_at=now + self.expiry_seconds,
            )
        logger.info("Validation state %s updated to %s", state_id, outcome.value)
        return True

    def get_state(self, state_id: str) -> ValidationState | None:
        with self._lock:
            state = self._states.get(state_id)
            if state is not None and state.is_valid(self._clock()):
                return state
        return None

    def states_for_order(self, order_id: str) -> list[ValidationState]:
        """Live states for an order, oldest first."""
        now = self._clock()
        with self._lock:
            states = [s for s in self._states.values() if s.order_id == order_id and s.is_valid(now)]
        return sorted(states, key=lambda s: s.created_at)

    def is_step_valid(self, order_id: str, step: ValidationStep) -> bool:
        return self._has_live(order_id, step, ValidationOutcome.PASSED)

    def has_record(self, order_id: str, step: ValidationStep) -> bool:
        """Any live state at all for (order, step), whatever its outcome."""
        now = self._clock()
        with self._lock:
            return any(
                s.order_id == order_id and s.step == step and s.is_valid(now)
                for s in self._states.values()
            )

    def invalidate_all(self, order_id: str) -> int:
        with self._lock:
            affected = [s for s in self._states.values() if s.order_id == order_id and not s.invalidated]
            for state in affected:
                state.invalidated = True
        logger.info("Invalidated %d validation states for order %s", len(affected), order_id)
        return len(affected)

    # -- navigation-driven ------------------------------------------------

    def observe_transition(self, order_id: str | None, from_screen: str | None, to_screen: str) -> str | None:
        """Log a screen transition and synthesize a BYPASSED state if a step was skipped.

        Returns the id of the synthesized state, or None.
        """
        if not order_id:
            return None
        now = self._clock()
        with self._lock:
            self._transitions.append(ObservedTransition(order_id, from_screen, to_screen, now))

        step = self.monitored_transitions.get((from_screen or "", to_screen))
        if step is None:
            return None
        with self._lock:
            if self.is_step_valid(order_id, step):
                return None
            if self._has_live(order_id, step, ValidationOutcome.BYPASSED):
                # Already on record for this (order, step); one audit entry is enough.
                return None
            state_id = self.record(
                order_id, step, ValidationOutcome.BYPASSED, "Navigation without proper validation"
            )

        logger.warning(
            "Possible validation bypass: order %s went %s -> %s without %s",
            order_id, from_screen, to_screen, step.description,
        )
        if self.event_sink is not None:
            try:
                self.event_sink.emit(
                    "validation.bypass",
                    order_id=order_id,
                    step=step,
                    from_screen=from_screen,
                    to_screen=to_screen,
                    state_id=state_id,
                )
            except Exception:
                logger.exception("Event sink failed for validation.bypass")
        return state_id

    def preserve_navigation_data(self, order_id: str, key: str, value: Any) -> bool:
        """Attach data to the most recent observed transition of an order."""
        with self._lock:
            latest = self._latest_transition_locked(order_id)
            if latest is None:
                return False
            latest.preserved[key] = value
            return True

    def get_navigation_data(self, order_id: str, key: str) -> Any | None:
        with self._lock:
            latest = self._latest_transition_locked(order_id)
            return None if latest is None else latest.preserved.get(key)

    def transitions_for_order(self, order_id: str) -> list[ObservedTransition]:
        with self._lock:
            return [t for t in self._transitions if t.order_id == order_id]

    # -- payment readiness ------------------------------------------------

    def summarize_for_payment(self, order: Order | None) -> ValidationSummary:
        """Aggregate recorded validation and business rules before payment."""
        if order is None or not order.order_id:
            return ValidationSummary(False, "Order information is missing")

        order_id = order.order_id
        summary = ValidationSummary(True, "Order validation successful")

        if not self.is_step_valid(order_id, ValidationStep.DELIVERY_INFO):
            if order.delivery_info is None:
                summary.add_error("Delivery information is missing")
            elif not self.has_record(order_id, ValidationStep.DELIVERY_INFO):
                # Delivery data is present and nobody recorded otherwise.
                self.record(
                    order_id,
                    ValidationStep.DELIVERY_INFO,
                    ValidationOutcome.PASSED,
                    "Auto-validated existing delivery info",
                )
            else:
                summary.add_warning("Delivery information validation has not passed")

        if not self.has_record(order_id, ValidationStep.ORDER_SUMMARY):
            summary.add_warning("Order summary validation missing")
        elif not self.is_step_valid(order_id, ValidationStep.ORDER_SUMMARY):
            summary.add_warning("Order summary validation has not passed")

        self._check_business_rules(order, summary)

        if not summary.valid:
            summary.message = "Order is not ready for payment"
        return summary

    # -- maintenance ------------------------------------------------------

    def sweep_expired(self) -> int:
        """Drop expired states and transitions older than an hour."""
        now = self._clock()
        with self._lock:
            expired = [sid for sid, s in self._states.items() if s.is_expired(now)]
            for sid in expired:
                del self._states[sid]
            cutoff = now - TRANSITION_RETENTION_SECONDS
            before = len(self._transitions)
            self._transitions = [t for t in self._transitions if t.at >= cutoff]
            dropped = before - len(self._transitions)
        if expired or dropped:
            logger.info(
                "Validation sweep removed %d expired states and %d old transitions", len(expired), dropped
            )
        return len(expired) + dropped

    def counts_by_order(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        with self._lock:
            for state in self._states.values():
                counts[state.order_id] = counts.get(state.order_id, 0) + 1
        return counts

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)

    # -- internals --------------------------------------------------------

    def _has_live(self, order_id: str, step: ValidationStep, outcome: ValidationOutcome) -> bool:
        now = self._clock()
        with self._lock:
            return any(
                s.order_id == order_id and s.step == step and s.outcome == outcome and s.is_valid(now)
                for s in self._states.values()
            )

    def _next_state_id(self, now: float) -> str:
        return f"VS_{int(now * 1000)}_{next(self._ids)}"

    def _trim_order_locked(self, order_id: str) -> None:
        states = sorted(
            (s for s in self._states.values() if s.order_id == order_id),
            key=lambda s: s.created_at,
        )
        overflow = len(states) - (self.max_states_per_order - 1)
        for state in states[:max(0, overflow)]:
            del self._states[state.state_id]
            logger.debug("Evicted validation state %s for order %s", state.state_id, order_id)

    def _latest_transition_locked(self, order_id: str) -> ObservedTransition | None:
        for transition in reversed(self._transitions):
            if transition.order_id == order_id:
                return transition
        return None

    @staticmethod
    def _check_business_rules(order: Order, summary: ValidationSummary) -> None:
        if not order.items:
            summary.add_error("Order must contain at least one item")
        if order.total_amount <= 0:
            summary.add_error("Order total amount must be greater than zero")
        if order.status != OrderStatus.PENDING_PAYMENT:
            summary.add_warning(f"Order status is not pending payment: {order.status.value}")

        delivery = order.delivery_info
        if delivery is not None:
            if not delivery.recipient_name.strip():
                summary.add_error("Recipient name is required")
            if not delivery.delivery_address.strip():
                summary.add_error("Delivery address is required")
            if not delivery.phone_number.strip():
                summary.add_error("Phone number is required")
