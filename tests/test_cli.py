import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from arnelify_broker import __version__
from arnelify_broker.cli.commands import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def home(tmp_path, monkeypatch):
    monkeypatch.setattr(Path, "home", lambda: tmp_path)
    return tmp_path


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert f"v{__version__}" in result.stdout


def test_demo_runs_welcome_chain():
    result = runner.invoke(app, ["demo"])

    assert result.exit_code == 0
    assert json.loads(result.stdout) == {"code": 200, "success": "Welcome to Arnelify Broker"}


def test_call_with_setup_entry_point():
    result = runner.invoke(app, [
        "call", "second.welcome",
        "--app", "arnelify_broker.demo:setup",
        "--params", '{"code": 7}',
    ])

    assert result.exit_code == 0
    assert json.loads(result.stdout) == {"code": 7, "success": "Welcome to Arnelify Broker"}


def test_call_rejects_invalid_json():
    result = runner.invoke(app, [
        "call", "first.welcome", "--app", "arnelify_broker.demo:setup", "--params", "{bad",
    ])

    assert result.exit_code == 1
    assert "Invalid JSON" in result.stdout


def test_call_unknown_topic_times_out():
    result = runner.invoke(app, [
        "call", "nobody", "--app", "arnelify_broker.demo:setup", "--timeout", "0.1",
    ])

    assert result.exit_code == 1
    assert "timed" in result.stdout


def test_onboard_and_status(home):
    result = runner.invoke(app, ["onboard"])
    assert result.exit_code == 0
    assert (home / ".arnelify-broker" / "config.json").exists()

    result = runner.invoke(app, ["status"])
    assert result.exit_code == 0
    assert "codec" in result.stdout
    assert "json" in result.stdout


def test_call_unknown_topic_on_direct_transport_fails_fast(monkeypatch):
    monkeypatch.setenv("ARNELIFY_BROKER_BROKER__TRANSPORT", "direct")

    result = runner.invoke(app, ["call", "nobody", "--app", "arnelify_broker.demo:setup"])

    assert result.exit_code == 1
    assert "No consumer" in result.stdout
