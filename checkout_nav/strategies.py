"""Transition strategies, tried in order by the orchestrator.

Each strategy either returns a StrategyOutcome or raises a NavigationError
explaining why the next strategy should be tried.
"""
from __future__ import annotations

import logging
from typing import Any, Protocol

from .collaborators import AcceptsHost, AcceptsPayload, EmergencyNavigator, ScreenHost, ViewLoader
from .errors import HostUnavailable, NavigationError, PayloadInjectionFailure, TransitionFailure
from .host import HostRegistry
from .models import Order
from .navigation import NavigationRequest, NavigationResult, StrategyOutcome
from .screens import screen_title

logger = logging.getLogger(__name__)


class NavigationStrategy(Protocol):
    name: str

    def attempt(self, request: NavigationRequest) -> StrategyOutcome: ...


def inject_payload(controller: Any, order: Order | None, host: ScreenHost | None = None) -> bool:
    """Hand the order (and host) to a freshly created screen controller.

    Returns False when the controller does not accept order payloads.
    Raises PayloadInjectionFailure if the controller rejects the payload.
    """
    if controller is None or order is None:
        return False
    try:
        if host is not None and isinstance(controller, AcceptsHost):
            controller.attach_host(host)
        if isinstance(controller, AcceptsPayload):
            controller.accept_order(order)
            logger.info("Order %s injected into %s", order.order_id, type(controller).__name__)
            return True
    except Exception as e:
        raise PayloadInjectionFailure(
            f"{type(controller).__name__} rejected order {order.order_id}: {e}"
        ) from e
    logger.warning("%s does not accept order payloads", type(controller).__name__)
    return False


def _finish(controller: Any, request: NavigationRequest, host: ScreenHost, via: str) -> StrategyOutcome:
    try:
        injected = inject_payload(controller, request.order, host)
    except PayloadInjectionFailure as e:
        logger.warning("%s: screen shown but payload injection failed: %s", via, e)
        return StrategyOutcome(NavigationResult.PARTIAL_SUCCESS, str(e), controller)
    if not injected:
        return StrategyOutcome(
            NavigationResult.PARTIAL_SUCCESS,
            f"{type(controller).__name__} does not accept order payloads",
            controller,
        )
    return StrategyOutcome(NavigationResult.SUCCESS, f"{via} transition completed", controller)


class PrimaryStrategy:
    """Transition through the registered host's own `load_content`."""

    name = "primary"

    def __init__(self, registry: HostRegistry, timeout: float = 2.5):
        self.registry = registry
        self.timeout = timeout

    def attempt(self, request: NavigationRequest) -> StrategyOutcome:
        host = self.registry.get_host(self.timeout)
        if host is None:
            raise HostUnavailable(f"No validated screen host within {self.timeout:.1f}s")

        try:
            controller = host.load_content(request.target_screen)
        except TransitionFailure:
            raise
        except Exception as e:
            raise TransitionFailure(f"Host transition to {request.target_screen} failed: {e}") from e
        if controller is None:
            raise TransitionFailure(f"Host returned no controller for {request.target_screen}")

        host.set_title(screen_title(request.target_screen))
        return _finish(controller, request, host, self.name)


class FallbackStrategy:
    """Drive the view loader directly, reusing the host's content region."""

    name = "fallback"

    def __init__(self, registry: HostRegistry, view_loader: ViewLoader):
        self.registry = registry
        self.view_loader = view_loader

    def attempt(self, request: NavigationRequest) -> StrategyOutcome:
        host = self.registry.get_host_immediate()
        if host is None:
            raise HostUnavailable("Screen host is not reachable for direct view loading")
        region = host.get_content_region()
        if region is None:
            raise HostUnavailable("Screen host content region is not reachable")

        try:
            view = self.view_loader.load_view(request.target_screen)
            region.show(view.root)
        except NavigationError:
            raise
        except Exception as e:
            raise TransitionFailure(f"Loading view {request.target_screen} failed: {e}") from e

        host.set_title(screen_title(request.target_screen))
        return _finish(view.controller, request, host, self.name)


class EmergencyStrategy:
    """Host-independent routing by order id; the payload stays in the session store."""

    name = "emergency"

    def __init__(self, navigator: EmergencyNavigator):
        self.navigator = navigator

    def attempt(self, request: NavigationRequest) -> StrategyOutcome:
        try:
            self.navigator.route_to(request.target_screen, request.order_id)
        except Exception as e:
            raise TransitionFailure(f"Emergency routing to {request.target_screen} failed: {e}") from e
        return StrategyOutcome(
            NavigationResult.DATA_PRESERVED,
            "Routed without a screen host; order data kept for recovery",
        )
