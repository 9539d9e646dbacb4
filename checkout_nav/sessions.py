"""Time-boxed storage for in-flight order data across screen transitions."""
from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from pydantic import ValidationError

from .collaborators import OrderDataService
from .errors import OrderNotFound, PersistenceFailure
from .models import DeliveryInfo, Order

logger = logging.getLogger(__name__)

SESSION_PREFIX = "CHECKOUT_"

DELIVERY_FIELDS = ("recipient_name", "phone_number", "delivery_address", "province", "email", "is_rush")


class SessionValidationStatus(str, Enum):
    UNKNOWN = "unknown"
    VALID = "valid"
    INVALID = "invalid"
    INCOMPLETE = "incomplete"
    CORRUPTED = "corrupted"


@dataclass
class SessionContext:
    """One preserved order payload. Only SessionStore mutates these."""

    session_id: str
    order: Order
    created_at: float
    last_accessed: float
    # When the payload was last written or reloaded; drives refresh-on-read.
    refreshed_at: float
    status: SessionValidationStatus = SessionValidationStatus.UNKNOWN
    metadata: dict[str, Any] = field(default_factory=dict)

    def is_expired(self, now: float, ttl: float) -> bool:
        return now - self.last_accessed > ttl


@dataclass(frozen=True)
class RecoveryResult:
    successful: bool
    order: Order | None
    message: str
    source: str | None = None


def generate_session_id(order_id: str | None) -> str:
    """CHECKOUT_<order id>_<8 hex>, or CHECKOUT__<8 hex> (empty order segment) without one."""
    suffix = uuid.uuid4().hex[:8]
    if order_id is not None and str(order_id).strip():
        return f"{SESSION_PREFIX}{order_id}_{suffix}"
    return f"{SESSION_PREFIX}_{suffix}"


def extract_order_id(session_id: str | None) -> str | None:
    """Inverse of `generate_session_id` for the embedded order id."""
    if not session_id or not session_id.startswith(SESSION_PREFIX):
        return None
    remaining = session_id[len(SESSION_PREFIX):]
    order_id, sep, suffix = remaining.rpartition("_")
    if not sep or not order_id or not suffix:
        return None
    return order_id


def inspect_order(order: Order) -> SessionValidationStatus:
    """Classify a payload for the session's validation-status tag."""
    try:
        if not order.order_id or not str(order.order_id).strip():
            return SessionValidationStatus.INCOMPLETE
        if not order.items:
            return SessionValidationStatus.INCOMPLETE
        if order.total_amount <= 0:
            return SessionValidationStatus.INVALID
        return SessionValidationStatus.VALID
    except Exception:
        return SessionValidationStatus.CORRUPTED


class SessionStore:
    """Key -> order payload store with idle TTL, capacity eviction and recovery.

    Expired entries are never returned: `get` and `has` evict them on sight,
    and a periodic sweep (see `sweep_expired`) removes the rest. Capacity
    pressure is resolved inline by `put`, before the write that caused it.
    """

    def __init__(
        self,
        order_service: OrderDataService | None = None,
        *,
        ttl_seconds: float = 30 * 60,
        max_sessions: int = 100,
        refresh_after_seconds: float = 5 * 60,
        form_state_ttl_seconds: float = 2 * 60 * 60,
        clock: Callable[[], float] = time.time,
    ):
        self.order_service = order_service
        self.ttl_seconds = ttl_seconds
        self.max_sessions = max(1, int(max_sessions))
        self.refresh_after_seconds = refresh_after_seconds
        self.form_state_ttl_seconds = form_state_ttl_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._sessions: dict[str, SessionContext] = {}
        self._forms: dict[str, dict[str, Any]] = {}

    # -- sessions ---------------------------------------------------------

    def put(self, session_id: str, order: Order) -> SessionContext:
        """Create or replace the context for `session_id`.

        Raises PersistenceFailure for an empty session id or missing payload.
        The payload is stored as a deep copy, so later edits by the caller do
        not reach the preserved data.
        """
        if not session_id or not str(session_id).strip():
            raise PersistenceFailure("Session ID is empty")
        if order is None:
            raise PersistenceFailure("Order payload is missing")

        now = self._clock()
        status = inspect_order(order)
        context = SessionContext(
            session_id=session_id,
            order=order.model_copy(deep=True),
            created_at=now,
            last_accessed=now,
            refreshed_at=now,
            status=status,
            metadata={
                "order_id": order.order_id,
                "preserved_at": now,
                "has_delivery_info": order.delivery_info is not None,
                "item_count": len(order.items),
            },
        )

        with self._lock:
            self._evict_expired_locked(now)
            if session_id not in self._sessions and len(self._sessions) >= self.max_sessions:
                self._evict_oldest_locked()
            self._sessions[session_id] = context

        logger.info(
            "Preserved order %s in session %s (status=%s)", order.order_id, session_id, status.value
        )
        return context

    def get(self, session_id: str) -> Order | None:
        """Return the payload, or None if absent or expired.

        Entries older than the freshness threshold are reloaded from the
        order-data service when one is configured.
        """
        if not session_id:
            return None
        now = self._clock()
        with self._lock:
            context = self._live_context_locked(session_id, now)
            if context is None:
                return None
            context.last_accessed = now
            stale = now - context.refreshed_at > self.refresh_after_seconds
            order = context.order

        if stale and order.order_id:
            refreshed = self._reload(order.order_id)
            if refreshed is not None:
                with self._lock:
                    current = self._sessions.get(session_id)
                    if current is context:
                        context.order = refreshed.model_copy(deep=True)
                        context.refreshed_at = self._clock()
                        context.status = inspect_order(refreshed)
                logger.info("Refreshed order %s for session %s", order.order_id, session_id)
                return refreshed.model_copy(deep=True)
        return order.model_copy(deep=True)

    def has(self, session_id: str) -> bool:
        if not session_id:
            return False
        with self._lock:
            return self._live_context_locked(session_id, self._clock()) is not None

    def context(self, session_id: str) -> SessionContext | None:
        """The live context itself (for diagnostics); does not touch `last_accessed`."""
        with self._lock:
            return self._live_context_locked(session_id, self._clock())

    def clear(self, session_id: str) -> bool:
        with self._lock:
            removed = self._sessions.pop(session_id, None)
        if removed is not None:
            logger.info("Cleared session %s", session_id)
        return removed is not None

    def sweep_expired(self) -> int:
        """Remove every expired session and form state; returns how many were dropped."""
        now = self._clock()
        with self._lock:
            removed = self._evict_expired_locked(now)
            removed += self._evict_expired_forms_locked(now)
        if removed:
            logger.info("Session sweep removed %d expired entries", removed)
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    generate_session_id = staticmethod(generate_session_id)
    extract_order_id = staticmethod(extract_order_id)

    # -- form state -------------------------------------------------------

    def preserve_form_state(self, form_id: str, data: dict[str, Any]) -> None:
        """Snapshot partially-filled form fields under `form_id`."""
        if not form_id or not str(form_id).strip():
            logger.warning("Form state not preserved: form id is empty")
            return
        if not data:
            logger.warning("Form state not preserved for %s: no data", form_id)
            return
        now = self._clock()
        snapshot = dict(data)
        snapshot["preserved_at"] = now
        snapshot["form_id"] = form_id
        with self._lock:
            self._forms[form_id] = snapshot
        logger.info("Preserved form state for %s (%d fields)", form_id, len(data))

    def get_form_state(self, form_id: str) -> dict[str, Any] | None:
        with self._lock:
            snapshot = self._forms.get(form_id)
            if snapshot is None:
                return None
            if self._clock() - snapshot["preserved_at"] > self.form_state_ttl_seconds:
                del self._forms[form_id]
                return None
            return dict(snapshot)

    def clear_form_state(self, form_id: str) -> None:
        with self._lock:
            self._forms.pop(form_id, None)

    def form_count(self) -> int:
        with self._lock:
            return len(self._forms)

    # -- recovery ---------------------------------------------------------

    def can_recover(self, session_id: str) -> bool:
        if not session_id:
            return False
        with self._lock:
            if session_id in self._sessions:
                return True
        if extract_order_id(session_id) and self.order_service is not None:
            return True
        return self.get_form_state(session_id) is not None

    def attempt_recovery(self, session_id: str) -> RecoveryResult:
        """Recover a payload: resident context, then order service, then form state."""
        if not session_id or not str(session_id).strip():
            return RecoveryResult(False, None, "Session ID is empty")

        # 1. Still resident, even if nominally near (or past) expiry.
        with self._lock:
            context = self._sessions.get(session_id)
            if context is not None:
                context.last_accessed = self._clock()
                logger.info("Recovered session %s from resident context", session_id)
                return RecoveryResult(
                    True, context.order.model_copy(deep=True), "Recovered from existing session", "session"
                )

        # 2. Reload by the order id embedded in the session id.
        order_id = extract_order_id(session_id)
        if order_id and self.order_service is not None:
            order = self._reload(order_id)
            if order is not None:
                self.put(session_id, order)
                logger.info("Recovered session %s from order service (%s)", session_id, order_id)
                return RecoveryResult(True, order, "Recovered from order data service", "order_service")

        # 3. Rebuild a minimal payload from preserved form fields.
        form = self.get_form_state(session_id)
        if form:
            order = self._order_from_form(form, fallback_order_id=order_id)
            if order is not None:
                self.put(session_id, order)
                logger.info("Partially recovered session %s from form state", session_id)
                return RecoveryResult(True, order, "Partially recovered from form state", "form_state")

        logger.warning("All recovery strategies failed for session %s", session_id)
        return RecoveryResult(False, None, "All recovery strategies failed")

    # -- internals --------------------------------------------------------

    def _live_context_locked(self, session_id: str, now: float) -> SessionContext | None:
        context = self._sessions.get(session_id)
        if context is None:
            return None
        if context.is_expired(now, self.ttl_seconds):
            del self._sessions[session_id]
            logger.info("Session %s expired", session_id)
            return None
        return context

    def _evict_expired_locked(self, now: float) -> int:
        expired = [sid for sid, ctx in self._sessions.items() if ctx.is_expired(now, self.ttl_seconds)]
        for sid in expired:
            del self._sessions[sid]
        return len(expired)

    def _evict_expired_forms_locked(self, now: float) -> int:
        expired = [
            fid for fid, snap in self._forms.items()
            if now - snap["preserved_at"] > self.form_state_ttl_seconds
        ]
        for fid in expired:
            del self._forms[fid]
        return len(expired)

    def _evict_oldest_locked(self) -> None:
        quota = max(1, self.max_sessions // 4)
        oldest = sorted(self._sessions.values(), key=lambda ctx: ctx.created_at)[:quota]
        for ctx in oldest:
            del self._sessions[ctx.session_id]
        logger.warning("Session store at capacity (%d), evicted %d oldest sessions", self.max_sessions, len(oldest))

    def _reload(self, order_id: str) -> Order | None:
        if self.order_service is None:
            return None
        try:
            return self.order_service.load_complete_order(order_id)
        except OrderNotFound:
            logger.info("Order %s not found while reloading session data", order_id)
        except Exception as e:
            logger.warning("Reloading order %s failed: %s", order_id, e)
        return None

    def _order_from_form(self, form: dict[str, Any], fallback_order_id: str | None) -> Order | None:
        order_id = form.get("order_id") or fallback_order_id
        if order_id and self.order_service is not None:
            loaded = self._reload(str(order_id))
            if loaded is not None:
                return loaded
        if not order_id:
            return None
        delivery_fields = {k: form[k] for k in DELIVERY_FIELDS if form.get(k) is not None}
        try:
            return Order(
                order_id=str(order_id),
                delivery_info=DeliveryInfo(**delivery_fields) if delivery_fields else None,
            )
        except ValidationError as e:
            logger.info("Form state for %s could not be rebuilt into an order: %s", order_id, e)
            return None
