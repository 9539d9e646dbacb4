"""Interfaces of the collaborators the navigation layer talks to.

None of these are implemented here (the terminal host in `checkout_nav.tui`
is a reference implementation); they only describe the shape the
orchestration code relies on.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from .models import Order


class ContentRegion(Protocol):
    """The part of the host window that displays the current screen."""

    def show(self, root: Any) -> None: ...


class ScreenHost(Protocol):
    """Application-level object that swaps visible screen content.

    Borrowed, never owned: its lifecycle belongs to the host application.
    """

    def get_content_region(self) -> ContentRegion | None: ...

    def get_outer_container(self) -> Any | None: ...

    def set_content(self, root: Any) -> None: ...

    def set_title(self, text: str) -> None: ...

    def load_content(self, screen_id: str) -> Any:
        """Host's own transition: load `screen_id`, display it, return its controller."""
        ...


@dataclass(frozen=True)
class LoadedView:
    controller: Any
    root: Any


class ViewLoader(Protocol):
    def load_view(self, screen_id: str) -> LoadedView:
        """Raises ViewNotFound or TransitionFailure."""
        ...


class OrderDataService(Protocol):
    def load_complete_order(self, order_id: str) -> Order:
        """Raises OrderNotFound."""
        ...


class EmergencyNavigator(Protocol):
    """Host-independent, best-effort routing by order id alone."""

    def route_to(self, screen_id: str, order_id: str | None) -> None: ...


class EventSink(Protocol):
    def emit(self, event: str, **fields: object) -> None: ...


@runtime_checkable
class AcceptsPayload(Protocol):
    """Screen controllers that can receive the in-flight order."""

    def accept_order(self, order: Order) -> None: ...


@runtime_checkable
class AcceptsHost(Protocol):
    """Screen controllers that want a reference to the screen host."""

    def attach_host(self, host: ScreenHost) -> None: ...
