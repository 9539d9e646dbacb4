"""Terminal host for checkout navigation.

Importing this package registers the checkout screens.
"""
from __future__ import annotations

from . import screens  # noqa: F401  (registers screens)
from .host import ConsoleEmergencyRouter, ConsoleHost, ConsoleRegion
from .router import SCREENS, RegistryViewLoader, register_screen

__all__ = [
    "SCREENS",
    "ConsoleEmergencyRouter",
    "ConsoleHost",
    "ConsoleRegion",
    "RegistryViewLoader",
    "register_screen",
]
