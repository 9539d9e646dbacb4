from __future__ import annotations

import threading
from unittest.mock import MagicMock

import pytest

from checkout_nav.models import Order, OrderStatus
from checkout_nav.screens import ValidationStep
from checkout_nav.validation import TRANSITION_RETENTION_SECONDS, ValidationOutcome, ValidationTracker

DELIVERY = ValidationStep.DELIVERY_INFO
SUMMARY = ValidationStep.ORDER_SUMMARY


def _bypassed(tracker, order_id, step):
    return [
        s for s in tracker.states_for_order(order_id)
        if s.step == step and s.outcome == ValidationOutcome.BYPASSED
    ]


def test_only_passed_states_count_as_valid(clock):
    tracker = ValidationTracker(clock=clock)
    tracker.record("O1", DELIVERY, ValidationOutcome.FAILED)
    assert tracker.is_step_valid("O1", DELIVERY) is False
    assert tracker.has_record("O1", DELIVERY) is True

    tracker.record("O1", DELIVERY, ValidationOutcome.PASSED)
    assert tracker.is_step_valid("O1", DELIVERY) is True
    assert tracker.is_step_valid("O2", DELIVERY) is False


def test_record_requires_order_id():
    tracker = ValidationTracker()
    with pytest.raises(ValueError):
        tracker.record("", DELIVERY, ValidationOutcome.PASSED)
    with pytest.raises(ValueError):
        tracker.record("   ", DELIVERY, ValidationOutcome.PASSED)


def test_states_expire(clock):
    tracker = ValidationTracker(expiry_seconds=60, clock=clock)
    state_id = tracker.record("O1", DELIVERY, ValidationOutcome.PASSED)

    clock.advance(59)
    assert tracker.is_step_valid("O1", DELIVERY)
    clock.advance(1)
    assert tracker.is_step_valid("O1", DELIVERY) is False
    assert tracker.get_state(state_id) is None


def test_invalidate_all(clock):
    tracker = ValidationTracker(clock=clock)
    first = tracker.record("O1", DELIVERY, ValidationOutcome.PASSED)
    tracker.record("O1", SUMMARY, ValidationOutcome.PASSED)
    tracker.record("O2", DELIVERY, ValidationOutcome.PASSED)

    assert tracker.invalidate_all("O1") == 2
    assert tracker.is_step_valid("O1", DELIVERY) is False
    assert tracker.is_step_valid("O2", DELIVERY) is True
    assert tracker.update(first, ValidationOutcome.PASSED) is False


def test_update(clock):
    tracker = ValidationTracker(clock=clock)
    state_id = tracker.record("O1", DELIVERY, ValidationOutcome.PENDING)

    assert tracker.update(state_id, ValidationOutcome.PASSED, "confirmed") is True
    state = tracker.get_state(state_id)
    assert state.outcome == ValidationOutcome.PASSED
    assert state.context == "confirmed"
    assert tracker.update("VS_missing", ValidationOutcome.PASSED) is False


def test_keeps_newest_states_per_order(clock):
    tracker = ValidationTracker(max_states_per_order=3, clock=clock)
    ids = []
    for _ in range(5):
        ids.append(tracker.record("O1", DELIVERY, ValidationOutcome.FAILED))
        clock.advance(1)

    assert [s.state_id for s in tracker.states_for_order("O1")] == ids[-3:]
    assert tracker.counts_by_order() == {"O1": 3}


def test_monitored_transition_without_validation_records_one_bypass(clock):
    sink = MagicMock()
    tracker = ValidationTracker(event_sink=sink, clock=clock)

    state_id = tracker.observe_transition("O1", "delivery_info", "order_summary")
    again = tracker.observe_transition("O1", "delivery_info", "order_summary")

    assert state_id is not None
    assert again is None
    assert len(_bypassed(tracker, "O1", DELIVERY)) == 1
    assert sink.emit.call_count == 1
    assert sink.emit.call_args.args[0] == "validation.bypass"
    assert sink.emit.call_args.kwargs["step"] == DELIVERY


def test_failing_event_sink_does_not_break_bypass_detection(clock):
    sink = MagicMock()
    sink.emit.side_effect = RuntimeError("sink down")
    tracker = ValidationTracker(event_sink=sink, clock=clock)

    state_id = tracker.observe_transition("O1", "delivery_info", "order_summary")

    assert state_id is not None
    assert len(_bypassed(tracker, "O1", DELIVERY)) == 1
    sink.emit.assert_called_once()


def test_no_bypass_when_step_passed(clock):
    tracker = ValidationTracker(clock=clock)
    tracker.record("O1", SUMMARY, ValidationOutcome.PASSED)

    assert tracker.observe_transition("O1", "order_summary", "payment_method") is None
    assert _bypassed(tracker, "O1", SUMMARY) == []


def test_unmonitored_transitions_are_only_logged(clock):
    tracker = ValidationTracker(clock=clock)
    assert tracker.observe_transition("O1", "cart", "delivery_info") is None
    assert tracker.observe_transition("O1", None, "order_summary") is None
    assert tracker.observe_transition(None, "delivery_info", "order_summary") is None
    assert len(tracker) == 0
    assert len(tracker.transitions_for_order("O1")) == 2


def test_monitored_transitions_are_configurable(clock):
    tracker = ValidationTracker(
        monitored_transitions={("cart", "delivery_info"): ValidationStep.ORDER_SUMMARY}, clock=clock
    )
    assert tracker.observe_transition("O1", "delivery_info", "order_summary") is None
    assert tracker.observe_transition("O1", "cart", "delivery_info") is not None


def test_navigation_data_attaches_to_latest_transition(clock):
    tracker = ValidationTracker(clock=clock)
    assert tracker.preserve_navigation_data("O1", "coupon", "SPRING") is False

    tracker.observe_transition("O1", "cart", "delivery_info")
    assert tracker.preserve_navigation_data("O1", "coupon", "SPRING") is True
    assert tracker.get_navigation_data("O1", "coupon") == "SPRING"
    assert tracker.get_navigation_data("O1", "missing") is None
    assert tracker.get_navigation_data("O2", "coupon") is None


def test_summary_auto_passes_existing_delivery_info(clock, ready_order):
    tracker = ValidationTracker(clock=clock)

    summary = tracker.summarize_for_payment(ready_order)

    assert summary.valid is True
    assert summary.errors == []
    assert "Order summary validation missing" in summary.warnings
    assert tracker.is_step_valid("O1", DELIVERY)


def test_summary_does_not_override_recorded_delivery_failure(clock, ready_order):
    tracker = ValidationTracker(clock=clock)
    tracker.record("O1", DELIVERY, ValidationOutcome.FAILED)
    tracker.record("O1", SUMMARY, ValidationOutcome.PASSED)

    summary = tracker.summarize_for_payment(ready_order)

    assert summary.valid is True
    assert summary.warnings == ["Delivery information validation has not passed"]
    assert tracker.is_step_valid("O1", DELIVERY) is False


def test_summary_reports_business_rule_errors(clock):
    tracker = ValidationTracker(clock=clock)
    order = Order(order_id="O2", total_amount=0, status=OrderStatus.PAID)

    summary = tracker.summarize_for_payment(order)

    assert summary.valid is False
    assert summary.message == "Order is not ready for payment"
    assert "Delivery information is missing" in summary.errors
    assert "Order must contain at least one item" in summary.errors
    assert "Order total amount must be greater than zero" in summary.errors
    assert any("not pending payment" in w for w in summary.warnings)


def test_summary_requires_contact_fields(clock, ready_order):
    tracker = ValidationTracker(clock=clock)
    order = ready_order.model_copy(
        update={"delivery_info": ready_order.delivery_info.model_copy(update={"phone_number": " "})}
    )
    summary = tracker.summarize_for_payment(order)
    assert summary.errors == ["Phone number is required"]


def test_summary_without_order():
    summary = ValidationTracker().summarize_for_payment(None)
    assert summary.valid is False
    assert summary.message == "Order information is missing"


def test_sweep_drops_expired_states_and_old_transitions(clock):
    tracker = ValidationTracker(expiry_seconds=60, clock=clock)
    tracker.record("O1", DELIVERY, ValidationOutcome.PASSED)
    tracker.observe_transition("O1", "cart", "delivery_info")

    clock.advance(61)
    assert tracker.sweep_expired() == 1
    assert len(tracker.transitions_for_order("O1")) == 1

    clock.advance(TRANSITION_RETENTION_SECONDS)
    assert tracker.sweep_expired() == 1
    assert tracker.transitions_for_order("O1") == []


def test_concurrent_records_keep_per_order_cap_and_unique_ids():
    tracker = ValidationTracker(max_states_per_order=5)
    ids = []
    errors = []

    def worker(n):
        try:
            for i in range(100):
                ids.append(tracker.record(f"O{i % 4}", DELIVERY, ValidationOutcome.PASSED))
        except Exception as e:  # pragma: no cover - reported below
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert len(set(ids)) == 800
    assert all(count <= 5 for count in tracker.counts_by_order().values())


def test_concurrent_transitions_record_a_single_bypass():
    tracker = ValidationTracker()
    barrier = threading.Barrier(8)
    results = []

    def worker():
        barrier.wait()
        results.append(tracker.observe_transition("O1", "delivery_info", "order_summary"))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len([r for r in results if r is not None]) == 1
    assert len(_bypassed(tracker, "O1", DELIVERY)) == 1
