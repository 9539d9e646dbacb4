from __future__ import annotations

import json
from types import SimpleNamespace

from typer.testing import CliRunner

import checkout_nav.cli as cli

runner = CliRunner()


def test_demo_json_output():
    result = runner.invoke(cli.app, ["demo", "--json", "--no-log"])
    assert result.exit_code == 0, result.output

    obj = json.loads(result.stdout)
    assert [row["result"] for row in obj["outcomes"]] == ["success"] * 4
    assert [row["strategy"] for row in obj["outcomes"]] == ["primary"] * 4
    assert obj["payment_ready"]["valid"] is True
    assert obj["snapshot"]["healthy"] is True
    assert obj["snapshot"]["statistics"]["successes"] == 4


def test_demo_without_host_preserves_data(capsys):
    cli.demo(no_host=True, json_out=True, log=False)

    obj = json.loads(capsys.readouterr().out)
    assert [row["result"] for row in obj["outcomes"]] == ["data_preserved"] * 4
    assert all(row["session_id"].startswith("CHECKOUT_ORD-1001_") for row in obj["outcomes"])
    # Four consecutive failures: breaker is open.
    assert obj["snapshot"]["circuit_open"] is True


def test_demo_text_output(capsys):
    cli.demo(no_host=False, json_out=False, log=False)

    out = capsys.readouterr().out
    assert "Delivery Information" in out
    assert "Order validation successful" in out
    assert "Checkout Navigation" in out


def test_config_json():
    result = runner.invoke(cli.app, ["config", "--json"])
    assert result.exit_code == 0, result.output

    obj = json.loads(result.stdout)
    assert "CHECKOUT_MAX_FAILURES" in obj
    assert "CHECKOUT_MONITORED_TRANSITIONS" in obj


def test_config_table(capsys):
    cli.config(json_out=False)
    assert "CHECKOUT_SESSION_TTL_MINUTES" in capsys.readouterr().out


def test_walkthrough_navigates_and_goes_back(monkeypatch, capsys):
    answers = iter(["delivery_info", "order_summary", "back", "back", "diagnostics", "quit"])
    confirmations = []

    def _select(*args, **kwargs):
        return SimpleNamespace(ask=lambda: next(answers))

    def _confirm(message, **kwargs):
        confirmations.append(message)
        return SimpleNamespace(ask=lambda: True)

    monkeypatch.setattr(cli.questionary, "select", _select)
    monkeypatch.setattr(cli.questionary, "confirm", _confirm)

    cli.walkthrough(log=False)

    out = capsys.readouterr().out
    assert confirmations == [
        "Confirm Delivery Information Validation?",
        "Confirm Order Summary Validation?",
        "Confirm Delivery Information Validation?",
    ]
    assert "Nothing to go back to." in out
    assert "Healthy: True" in out
    assert "Goodbye" in out
