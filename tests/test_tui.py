"""Tests for the terminal host, screen registry and components."""
from __future__ import annotations

import pytest
from rich.console import Console

from checkout_nav.context import build_context
from checkout_nav.errors import ViewNotFound
from checkout_nav.navigation import NavigationOutcome, NavigationRequest, NavigationResult, StrategyAttempt
from checkout_nav.settings import Settings
from checkout_nav.tui import SCREENS, ConsoleEmergencyRouter, ConsoleHost, RegistryViewLoader, register_screen
from checkout_nav.tui.components import render_data_preserved, render_failure
from checkout_nav.tui.screens import CheckoutScreen, OrderSummaryScreen


def _console() -> Console:
    return Console(record=True, width=100, force_terminal=False, color_system=None)


def test_checkout_screens_are_registered():
    """Test all four checkout screens are in the registry."""
    for screen_id in ["delivery_info", "order_summary", "payment_method", "payment_processing"]:
        assert screen_id in SCREENS


def test_register_screen_decorator():
    """Test decorator adds the class and stamps its screen id."""
    try:
        @register_screen("gift_wrap")
        class GiftWrapScreen(CheckoutScreen):
            pass

        assert SCREENS["gift_wrap"] is GiftWrapScreen
        assert GiftWrapScreen.screen_id == "gift_wrap"
        assert GiftWrapScreen().title == "Gift Wrap"
    finally:
        SCREENS.pop("gift_wrap", None)


def test_view_loader():
    loader = RegistryViewLoader()
    view = loader.load_view("order_summary")
    assert isinstance(view.controller, OrderSummaryScreen)
    assert view.root is view.controller

    with pytest.raises(ViewNotFound):
        loader.load_view("gift_wrap")


def test_order_summary_screen_rejects_empty_orders(ready_order):
    screen = OrderSummaryScreen()
    with pytest.raises(ValueError):
        screen.accept_order(ready_order.model_copy(update={"items": []}))


def test_console_host_renders_screens(ready_order):
    console = _console()
    loader = RegistryViewLoader()
    host = ConsoleHost(console, loader)
    ctx = build_context(Settings(_env_file=None), view_loader=loader, emergency=ConsoleEmergencyRouter(console))
    ctx.registry.set_host(host)

    outcome = ctx.orchestrator.navigate(NavigationRequest("order_summary", ready_order))

    assert outcome.result is NavigationResult.SUCCESS
    assert isinstance(host.current, OrderSummaryScreen)
    assert host.title == "Order Summary"
    text = console.export_text()
    assert "Order Summary" in text
    assert "Widget" in text
    assert "$20.00" in text


def test_detached_host_falls_back_to_emergency_router(ready_order):
    console = _console()
    loader = RegistryViewLoader()
    host = ConsoleHost(console, loader)
    router = ConsoleEmergencyRouter(console)
    ctx = build_context(
        Settings(_env_file=None, CHECKOUT_HOST_TIMEOUT_SECONDS=0.0), view_loader=loader, emergency=router
    )
    ctx.registry.set_host(host)
    host.detach()

    outcome = ctx.orchestrator.navigate(NavigationRequest("payment_method", ready_order))

    assert outcome.result is NavigationResult.DATA_PRESERVED
    assert router.routes == [("payment_method", "O1")]
    assert "Minimal mode" in console.export_text()


def test_render_failure_offers_retry_alternate_and_reference(ready_order):
    console = _console()
    outcome = NavigationOutcome(
        request=NavigationRequest("payment_method", ready_order),
        result=NavigationResult.FAILED_CRITICAL,
        reason="All navigation strategies failed",
        reference_code="NAV-20260101120000-ABCDEF12",
        attempts=(StrategyAttempt("primary", NavigationResult.FAILED_RECOVERABLE, "no host"),),
    )

    render_failure(console, outcome)

    text = console.export_text()
    assert "Retry" in text
    assert "Go back to your cart" in text
    assert "NAV-20260101120000-ABCDEF12" in text
    assert "primary: no host" in text


def test_render_data_preserved_mentions_session(ready_order):
    console = _console()
    outcome = NavigationOutcome(
        request=NavigationRequest("payment_method", ready_order),
        result=NavigationResult.DATA_PRESERVED,
        session_id="CHECKOUT_O1_deadbeef",
    )

    render_data_preserved(console, outcome)

    text = console.export_text()
    assert "saved" in text
    assert "CHECKOUT_O1_deadbeef" in text
