from __future__ import annotations

import json
from typing import Any

import questionary
import typer
from questionary import Choice
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .context import AppContext, build_context
from .logging import LoggingEventSink, setup_logging
from .models import Order
from .navigation import NavigationOutcome, NavigationRequest, NavigationResult
from .screens import CHECKOUT_FLOW, SCREEN_STEPS, screen_title
from .services import InMemoryOrderService, sample_order
from .settings import Settings, load_settings
from .tui import ConsoleEmergencyRouter, ConsoleHost, RegistryViewLoader
from .tui.components import BRAND_STYLE, nav_choices, render_outcome, render_stats_table
from .validation import ValidationOutcome

app = typer.Typer(
    add_completion=False,
    help="checkout-nav: checkout screen navigation with fallbacks and recovery",
    rich_markup_mode="rich",
)
console = Console()


# ═══════════════════════════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════════════════════════

def _build(
    settings: Settings,
    view_console: Console,
    *,
    with_host: bool = True,
    orders: InMemoryOrderService | None = None,
) -> tuple[AppContext, ConsoleHost]:
    """Wire a context around the terminal host.

    Without a host the primary and fallback strategies have nothing to work
    with, so every navigation ends up on the emergency router.
    """
    loader = RegistryViewLoader()
    ctx = build_context(
        settings,
        view_loader=loader,
        emergency=ConsoleEmergencyRouter(view_console),
        order_service=orders,
        event_sink=LoggingEventSink(),
    )
    host = ConsoleHost(view_console, loader)
    if with_host:
        ctx.registry.set_host(host, strict=True)
    return ctx, host


def _outcome_row(outcome: NavigationOutcome) -> dict[str, Any]:
    return {
        "screen": outcome.request.target_screen,
        "result": outcome.result.value,
        "strategy": outcome.strategy,
        "session_id": outcome.session_id,
        "reason": outcome.reason,
        "reference_code": outcome.reference_code,
    }


def _confirm_step(ctx: AppContext, order: Order, screen_id: str, passed: bool = True) -> None:
    step = SCREEN_STEPS.get(screen_id)
    if step is None or not order.order_id:
        return
    outcome = ValidationOutcome.PASSED if passed else ValidationOutcome.FAILED
    ctx.tracker.record(order.order_id, step, outcome, f"Confirmed on {screen_title(screen_id)}")


# ═══════════════════════════════════════════════════════════════════════════════
# COMMANDS
# ═══════════════════════════════════════════════════════════════════════════════

@app.command("demo", help="[bold cyan]R[/bold cyan]un a scripted checkout through every screen")
def demo(
    no_host: bool = typer.Option(False, "--no-host", help="Never register a screen host (emergency path)"),
    json_out: bool = typer.Option(False, "--json", help="Output outcomes and snapshot as JSON"),
    log: bool = typer.Option(True, "--log/--no-log", help="Write the diagnostic log file"),
):
    """Walk a sample order through the checkout flow and print what happened."""
    s = load_settings()
    if no_host:
        s = s.model_copy(update={"CHECKOUT_HOST_TIMEOUT_SECONDS": 0.0})
    if log:
        setup_logging(s, console=False)

    view_console = Console(quiet=True) if json_out else console
    orders = InMemoryOrderService([sample_order()])
    order = orders.load_complete_order("ORD-1001")
    ctx, _host = _build(s, view_console, with_host=not no_host, orders=orders)

    rows: list[dict[str, Any]] = []
    try:
        for screen_id in CHECKOUT_FLOW:
            outcome = ctx.orchestrator.navigate(NavigationRequest(screen_id, order, source="demo"))
            rows.append(_outcome_row(outcome))
            if not json_out:
                render_outcome(console, outcome)
            if outcome.result.is_success():
                _confirm_step(ctx, order, screen_id)
        summary = ctx.tracker.summarize_for_payment(order)
        snapshot = ctx.orchestrator.snapshot()
    finally:
        ctx.close()

    if json_out:
        payload = {
            "outcomes": rows,
            "payment_ready": {"valid": summary.valid, "message": summary.message,
                              "warnings": summary.warnings, "errors": summary.errors},
            "snapshot": snapshot,
        }
        print(json.dumps(payload, indent=2, default=str))
        return

    style = "green" if summary.valid else "red"
    console.print(f"\n[bold {style}]{summary.message}[/bold {style}]")
    for warning in summary.warnings:
        console.print(f"  [yellow]![/yellow] {warning}")
    for error in summary.errors:
        console.print(f"  [red]✗[/red] {error}")
    console.print()
    console.print(Panel.fit(ctx.orchestrator.get_debug_snapshot(), title="[bold]Diagnostics[/bold]"))


@app.command("walkthrough", help="[bold cyan]W[/bold cyan]alk through checkout interactively")
def walkthrough(
    log: bool = typer.Option(True, "--log/--no-log", help="Write the diagnostic log file"),
):
    """Pick the next screen yourself, go back, and confirm each step."""
    s = load_settings()
    if log:
        setup_logging(s, console=False)

    orders = InMemoryOrderService([sample_order()])
    order = orders.load_complete_order("ORD-1001")
    ctx, _host = _build(s, console, orders=orders)
    ctx.start_maintenance()

    choices = [Choice(title=screen_title(screen_id), value=screen_id) for screen_id in CHECKOUT_FLOW]
    choices.append(Choice(title="Diagnostics", value="diagnostics"))
    choices.extend(nav_choices())

    try:
        while True:
            crumbs = ctx.history.breadcrumbs()
            if crumbs:
                console.print(f"[dim]{crumbs}[/dim]")
            answer = questionary.select("Where to next?", choices=choices, style=BRAND_STYLE).ask()
            if answer is None or answer == "quit":
                break
            if answer == "diagnostics":
                console.print(Panel.fit(ctx.orchestrator.get_debug_snapshot(), title="[bold]Diagnostics[/bold]"))
                continue

            if answer == "back":
                result = ctx.orchestrator.navigate_back(order, source="walkthrough")
                if result is NavigationResult.CANCELLED:
                    console.print("[dim]Nothing to go back to.[/dim]")
                    continue
            else:
                result = ctx.orchestrator.navigate_to(answer, order, source="walkthrough")

            outcome = ctx.orchestrator.last_outcome
            if outcome is not None:
                render_outcome(console, outcome)
            if result.is_success() and outcome is not None:
                screen_id = outcome.request.target_screen
                if screen_id in SCREEN_STEPS:
                    ok = questionary.confirm(
                        f"Confirm {SCREEN_STEPS[screen_id].description}?", default=True, style=BRAND_STYLE
                    ).ask()
                    _confirm_step(ctx, order, screen_id, passed=bool(ok))
    except KeyboardInterrupt:
        console.print("\n[dim]👋 Interrupted.[/dim]")
    finally:
        ctx.close()

    console.print("\n[dim]👋 Goodbye![/dim]")


@app.command("config", help="[bold cyan]S[/bold cyan]how the effective settings")
def config(
    json_out: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Print settings as loaded from the environment and `.env`."""
    s = load_settings()
    values = s.model_dump(mode="json")
    if json_out:
        print(json.dumps(values, indent=2))
        return
    render_stats_table(
        console,
        {k: json.dumps(v) if isinstance(v, dict) else v for k, v in values.items()},
        title="Settings",
    )
