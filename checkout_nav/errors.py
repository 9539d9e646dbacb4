"""Error taxonomy for checkout navigation."""
from __future__ import annotations

import uuid
from datetime import datetime


class NavigationError(Exception):
    """Base class for navigation-layer failures."""


class ValidationFailure(NavigationError):
    """Request or screen precondition violation. Never retried automatically."""


class HostUnavailable(NavigationError):
    """No validated screen host could be obtained."""


class TransitionFailure(NavigationError):
    """Loading or displaying the target screen failed."""


class ViewNotFound(TransitionFailure):
    """The view loader has no view registered for a screen id."""

    def __init__(self, screen_id: str):
        super().__init__(f"No view registered for screen '{screen_id}'")
        self.screen_id = screen_id


class PayloadInjectionFailure(TransitionFailure):
    """The screen was shown but the payload could not be handed to its controller."""


class PersistenceFailure(NavigationError):
    """Writing the payload to the session store failed."""


class HostRegistryError(NavigationError):
    pass


class InvalidHost(HostRegistryError):
    """The host failed structural validation."""


class AlreadyInitialized(HostRegistryError):
    """A host was already registered."""


class OrderNotFound(LookupError):
    """Raised by order-data services for unknown order ids."""

    def __init__(self, order_id: str):
        super().__init__(f"Order not found: {order_id}")
        self.order_id = order_id


def generate_reference_code(now: datetime | None = None) -> str:
    """Support reference code like NAV-20260101120000-1A2B3C4D."""
    stamp = (now or datetime.now()).strftime("%Y%m%d%H%M%S")
    return f"NAV-{stamp}-{uuid.uuid4().hex[:8].upper()}"
