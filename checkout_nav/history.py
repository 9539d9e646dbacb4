"""Bounded back-navigation history of screen contexts."""
from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, TypeVar

from .screens import screen_title

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class SearchContext:
    """Catalog search state to restore when navigating back to a listing."""

    term: str | None = None
    category: str | None = None
    sort_by: str | None = None
    page: int = 1
    total_pages: int = 1

    def __post_init__(self) -> None:
        object.__setattr__(self, "page", max(1, int(self.page)))
        object.__setattr__(self, "total_pages", max(1, int(self.total_pages)))


@dataclass
class NavigationContext:
    """One history entry: a screen plus whatever is needed to restore it."""

    screen_id: str
    title: str = ""
    search: SearchContext | None = None
    data: dict[str, Any] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        if not self.title:
            self.title = screen_title(self.screen_id)

    def with_data(self, key: str, value: Any) -> NavigationContext:
        self.data[key] = value
        return self

    def get(self, key: str, expected: type[T] | None = None) -> T | Any | None:
        """Side-channel value for `key`; None if missing or not of `expected` type."""
        value = self.data.get(key)
        if expected is not None and not isinstance(value, expected):
            return None
        return value

    @property
    def has_search(self) -> bool:
        return self.search is not None and any(
            (self.search.term, self.search.category, self.search.sort_by)
        )


class HistoryStack:
    """Stack-based back navigation with breadcrumbs.

    - Pushing the screen already on top replaces it (no growth).
    - The stack never holds more than `max_size` entries; the oldest go first.
    """

    def __init__(self, max_size: int = 10):
        self.max_size = max(1, int(max_size))
        self._lock = threading.RLock()
        self._stack: deque[NavigationContext] = deque()

    def push(self, context: NavigationContext | None) -> None:
        if context is None:
            logger.debug("Ignoring empty history entry")
            return
        with self._lock:
            if self._stack and self._stack[-1].screen_id == context.screen_id:
                self._stack[-1] = context
                logger.debug("Replaced top history entry for %s", context.screen_id)
                return
            self._stack.append(context)
            while len(self._stack) > self.max_size:
                dropped = self._stack.popleft()
                logger.debug("History full, dropped oldest entry %s", dropped.screen_id)

    def pop(self) -> NavigationContext | None:
        with self._lock:
            if not self._stack:
                return None
            return self._stack.pop()

    def peek(self) -> NavigationContext | None:
        with self._lock:
            return self._stack[-1] if self._stack else None

    def has_previous(self) -> bool:
        with self._lock:
            return bool(self._stack)

    def find_most_recent(self, screen_id: str) -> NavigationContext | None:
        """Most recent entry for `screen_id`, scanning from the top."""
        with self._lock:
            for context in reversed(self._stack):
                if context.screen_id == screen_id:
                    return context
        return None

    def remove_all(self, screen_id: str) -> int:
        """Drop every entry for a screen that is no longer reachable."""
        with self._lock:
            kept = [c for c in self._stack if c.screen_id != screen_id]
            removed = len(self._stack) - len(kept)
            self._stack = deque(kept)
        if removed:
            logger.info("Removed %d history entries for %s", removed, screen_id)
        return removed

    def clear(self) -> None:
        with self._lock:
            self._stack.clear()

    def entries(self) -> list[NavigationContext]:
        """Oldest to newest."""
        with self._lock:
            return list(self._stack)

    def breadcrumbs(self) -> str:
        """Breadcrumb path like "Cart > Delivery Information > Order Summary"."""
        return " > ".join(c.title for c in self.entries())

    def __len__(self) -> int:
        with self._lock:
            return len(self._stack)
