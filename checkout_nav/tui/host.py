"""Terminal screen host backed by a rich Console."""
from __future__ import annotations

import logging
from typing import Any

from rich.console import Console

from ..collaborators import ViewLoader
from ..screens import screen_title

logger = logging.getLogger(__name__)


class ConsoleRegion:
    """Content region: remembers the shown root and prints its title bar."""

    def __init__(self, console: Console):
        self.console = console
        self.current: Any = None

    def show(self, root: Any) -> None:
        self.current = root
        screen_id = getattr(root, "screen_id", None)
        if screen_id:
            self.console.print(f"[dim]» {screen_title(screen_id)}[/dim]")


class ConsoleHost:
    """Host application for the terminal demo.

    `detach()` drops the content region, which is how the demo (and tests)
    simulate a host that is no longer usable.
    """

    def __init__(self, console: Console, loader: ViewLoader):
        self.console = console
        self.loader = loader
        self.title = ""
        self._region: ConsoleRegion | None = ConsoleRegion(console)

    def get_content_region(self) -> ConsoleRegion | None:
        return self._region

    def get_outer_container(self) -> Console:
        return self.console

    def set_content(self, root: Any) -> None:
        if self._region is None:
            raise RuntimeError("Console host has no content region")
        self._region.show(root)

    def set_title(self, text: str) -> None:
        self.title = text
        self.console.rule(f"[bold cyan]{text}[/bold cyan]")

    def load_content(self, screen_id: str) -> Any:
        view = self.loader.load_view(screen_id)
        self.set_content(view.root)
        return view.controller

    def detach(self) -> None:
        self._region = None
        logger.info("Console host detached its content region")

    @property
    def current(self) -> Any:
        return self._region.current if self._region is not None else None


class ConsoleEmergencyRouter:
    """Host-independent router: announces the target screen in minimal mode."""

    def __init__(self, console: Console):
        self.console = console
        self.routes: list[tuple[str, str | None]] = []

    def route_to(self, screen_id: str, order_id: str | None) -> None:
        self.routes.append((screen_id, order_id))
        self.console.print(
            f"[yellow]Minimal mode:[/yellow] continuing to [bold]{screen_title(screen_id)}[/bold]"
            f" for order [cyan]{order_id or '-'}[/cyan]"
        )
