"""Checkout screen controllers for the terminal host."""
from __future__ import annotations

from typing import Any

from rich.console import Group
from rich.panel import Panel
from rich.table import Table

from ..models import Order
from ..screens import DELIVERY_INFO, ORDER_SUMMARY, PAYMENT_METHOD, PAYMENT_PROCESSING, screen_title
from .components import money
from .router import register_screen


class CheckoutScreen:
    """Base controller: receives the order and host, renders a rich panel."""

    screen_id = ""

    def __init__(self):
        self.order: Order | None = None
        self.host: Any = None

    def attach_host(self, host: Any) -> None:
        self.host = host

    def accept_order(self, order: Order) -> None:
        self.check_order(order)
        self.order = order
        self.refresh()

    def check_order(self, order: Order) -> None:
        """Raise ValueError if this screen cannot display `order`."""
        if order is None:
            raise ValueError("No order to display")

    def refresh(self) -> None:
        console = getattr(self.host, "console", None)
        if console is not None and self.order is not None:
            console.print(self.render())

    @property
    def title(self) -> str:
        return screen_title(self.screen_id)

    def render(self) -> Panel:
        return Panel.fit(self.body(), title=self.title, border_style="cyan")

    def body(self) -> Any:
        return f"Order [cyan]{self.order.order_id if self.order else '-'}[/cyan]"


@register_screen(DELIVERY_INFO)
class DeliveryInfoScreen(CheckoutScreen):
    def body(self) -> Any:
        info = self.order.delivery_info if self.order else None
        if info is None:
            return "[yellow]No delivery information yet.[/yellow]"
        lines = [
            f"[bold]Recipient[/bold] {info.recipient_name or '-'}",
            f"[bold]Phone[/bold]     {info.phone_number or '-'}",
            f"[bold]Address[/bold]   {info.delivery_address or '-'}, {info.province or '-'}",
        ]
        if info.email:
            lines.append(f"[bold]Email[/bold]     {info.email}")
        if info.is_rush:
            lines.append("[magenta]Rush delivery[/magenta]")
        return "\n".join(lines)


@register_screen(ORDER_SUMMARY)
class OrderSummaryScreen(CheckoutScreen):
    def check_order(self, order: Order) -> None:
        super().check_order(order)
        if not order.items:
            raise ValueError("Order summary needs at least one item")

    def body(self) -> Any:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Item")
        table.add_column("Qty", justify="right")
        table.add_column("Price", justify="right")
        table.add_column("Total", justify="right", style="cyan")
        for item in self.order.items:
            table.add_row(item.title or item.product_id, str(item.quantity), money(item.unit_price), money(item.line_total))
        return Group(table, f"[bold]Order total[/bold] {money(self.order.total_amount)}")


@register_screen(PAYMENT_METHOD)
class PaymentMethodScreen(CheckoutScreen):
    methods = ("Credit card", "Bank transfer", "Cash on delivery")

    def body(self) -> Any:
        lines = [f"Amount due: [bold cyan]{money(self.order.total_amount)}[/bold cyan]", ""]
        lines += [f"  {n}. {method}" for n, method in enumerate(self.methods, start=1)]
        return "\n".join(lines)


@register_screen(PAYMENT_PROCESSING)
class PaymentProcessingScreen(CheckoutScreen):
    def check_order(self, order: Order) -> None:
        super().check_order(order)
        if order.total_amount <= 0:
            raise ValueError("Nothing to charge for this order")

    def body(self) -> Any:
        return (
            f"Charging [bold cyan]{money(self.order.total_amount)}[/bold cyan]"
            f" for order [cyan]{self.order.order_id}[/cyan]..."
        )
