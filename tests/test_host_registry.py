"""Tests for HostRegistry registration, waiting and validation."""
from __future__ import annotations

import threading
import time

import pytest

from checkout_nav.errors import AlreadyInitialized, InvalidHost
from checkout_nav.host import HostRegistry


def test_get_host_times_out_before_registration():
    registry = HostRegistry()
    assert registry.get_host(timeout=0) is None
    assert registry.get_host_immediate() is None
    assert registry.is_available() is False


def test_set_host_then_get_host(host):
    registry = HostRegistry()
    assert registry.set_host(host) is True
    assert registry.get_host(timeout=0) is host
    assert registry.get_host_immediate() is host
    assert registry.is_initialized


def test_duplicate_registration_is_ignored(host):
    registry = HostRegistry()
    registry.set_host(host)
    assert registry.set_host(type(host)()) is False
    assert registry.get_host(timeout=0) is host


def test_strict_duplicate_registration_raises(host):
    registry = HostRegistry()
    assert registry.set_host(host, strict=True) is True

    with pytest.raises(AlreadyInitialized):
        registry.set_host(type(host)(), strict=True)
    assert registry.get_host(timeout=0) is host


def test_rejects_missing_and_invalid_hosts(host):
    registry = HostRegistry()
    with pytest.raises(InvalidHost):
        registry.set_host(None)

    host.outer = None
    with pytest.raises(InvalidHost):
        registry.set_host(host)
    assert registry.is_initialized is False
    assert registry.last_validation_error == "outer container is missing"


def test_waiting_caller_is_released_by_registration(host):
    registry = HostRegistry()
    got = {}

    def _wait():
        got["host"] = registry.get_host(timeout=5)

    waiter = threading.Thread(target=_wait)
    waiter.start()
    time.sleep(0.05)
    registry.set_host(host)
    waiter.join(timeout=5)

    assert got["host"] is host


def test_quick_validation_failure_marks_host_stale(host):
    registry = HostRegistry()
    registry.set_host(host)

    region = host.region
    host.region = None
    assert registry.get_host(timeout=0) is None
    assert registry.get_host_immediate() is None

    # Region is back: the next call pays for a full validation and succeeds.
    host.region = region
    assert registry.get_host(timeout=0) is host
    assert registry.is_available()


def test_gate_stays_open_after_failed_revalidation(host):
    registry = HostRegistry()
    registry.set_host(host)

    host.outer = None
    assert registry.revalidate() is False

    started = time.monotonic()
    assert registry.get_host(timeout=5) is None
    assert time.monotonic() - started < 1.0


def test_validation_errors_are_contained(host):
    registry = HostRegistry()
    registry.set_host(host)

    def _boom():
        raise RuntimeError("window closed")

    host.get_outer_container = _boom
    assert registry.revalidate() is False
    assert "window closed" in registry.last_validation_error


def test_recent_initialization_and_debug_info(host, clock):
    registry = HostRegistry(clock=clock)
    assert registry.is_recently_initialized(60) is False
    registry.set_host(host)

    clock.advance(30)
    assert registry.is_recently_initialized(60) is True
    clock.advance(60)
    assert registry.is_recently_initialized(60) is False

    info = registry.debug_info()
    assert info["initialized"] is True
    assert info["gate_open"] is True
    assert info["host"] == "FakeHost"
