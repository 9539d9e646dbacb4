"""Screen registry and the view loader built on it."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from ..collaborators import LoadedView
from ..errors import TransitionFailure, ViewNotFound

if TYPE_CHECKING:
    from .screens import CheckoutScreen

logger = logging.getLogger(__name__)


# Screen registry - maps screen IDs to screen controller classes
# Populated by the @register_screen decorators in screens.py
SCREENS: dict[str, Callable[[], CheckoutScreen]] = {}


def register_screen(screen_id: str):
    """Decorator to register a screen controller class.

    Usage:
        @register_screen("order_summary")
        class OrderSummaryScreen(CheckoutScreen):
            ...
    """
    def decorator(cls):
        SCREENS[screen_id] = cls
        cls.screen_id = screen_id
        return cls
    return decorator


class RegistryViewLoader:
    """View loader that instantiates registered screen controllers.

    The controller doubles as the root node: the console region renders it
    once it has been handed an order.
    """

    def __init__(self, screens: dict[str, Callable[[], CheckoutScreen]] | None = None):
        self.screens = SCREENS if screens is None else screens

    def load_view(self, screen_id: str) -> LoadedView:
        factory = self.screens.get(screen_id)
        if factory is None:
            raise ViewNotFound(screen_id)
        try:
            controller = factory()
        except Exception as e:
            raise TransitionFailure(f"Could not create screen '{screen_id}': {e}") from e
        logger.debug("Loaded view %s (%s)", screen_id, type(controller).__name__)
        return LoadedView(controller=controller, root=controller)
