from __future__ import annotations

import os
import sys

import pytest


def _ensure_project_root_on_path() -> None:
    # When running via the venv's pytest entrypoint, the CWD is not guaranteed to
    # be on sys.path. Ensure the repository root (containing `checkout_nav/`) is importable.
    project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    if project_root not in sys.path:
        sys.path.insert(0, project_root)


_ensure_project_root_on_path()

from checkout_nav.collaborators import LoadedView  # noqa: E402
from checkout_nav.errors import ViewNotFound  # noqa: E402
from checkout_nav.models import DeliveryInfo, Order, OrderItem  # noqa: E402


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRegion:
    def __init__(self):
        self.shown = []

    def show(self, root):
        self.shown.append(root)


class FakeController:
    def __init__(self, screen_id: str):
        self.screen_id = screen_id
        self.order = None
        self.host = None

    def accept_order(self, order):
        self.order = order

    def attach_host(self, host):
        self.host = host


class FakeHost:
    """Screen host whose parts can be knocked out by tests."""

    def __init__(self):
        self.region = FakeRegion()
        self.outer = object()
        self.titles: list[str] = []
        self.loaded: list[str] = []
        self.fail_load: Exception | None = None
        self.make_controller = FakeController

    def get_content_region(self):
        return self.region

    def get_outer_container(self):
        return self.outer

    def set_content(self, root):
        self.region.show(root)

    def set_title(self, text):
        self.titles.append(text)

    def load_content(self, screen_id):
        if self.fail_load is not None:
            raise self.fail_load
        self.loaded.append(screen_id)
        controller = self.make_controller(screen_id)
        self.set_content(controller)
        return controller


class FakeLoader:
    def __init__(self, missing: tuple[str, ...] = ()):
        self.missing = set(missing)
        self.loaded: list[str] = []

    def load_view(self, screen_id):
        if screen_id in self.missing:
            raise ViewNotFound(screen_id)
        self.loaded.append(screen_id)
        return LoadedView(controller=FakeController(screen_id), root=f"root:{screen_id}")


class FakeRouter:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.routes: list[tuple[str, str | None]] = []

    def route_to(self, screen_id, order_id):
        if self.fail:
            raise RuntimeError("router offline")
        self.routes.append((screen_id, order_id))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def host():
    return FakeHost()


@pytest.fixture
def loader():
    return FakeLoader()


@pytest.fixture
def router():
    return FakeRouter()


@pytest.fixture
def ready_order():
    """Order that satisfies every screen precondition."""
    return Order(
        order_id="O1",
        items=[OrderItem(product_id="P1", title="Widget", quantity=2, unit_price=10.0)],
        delivery_info=DeliveryInfo(
            recipient_name="Ann Lee",
            phone_number="0900000000",
            delivery_address="1 Main Street",
            province="Hanoi",
        ),
        total_amount=20.0,
    )
