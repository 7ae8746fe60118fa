"""Tests for the CLI commands."""

from datetime import date

from click.testing import CliRunner

from proposal_api import cli as cli_module
from proposal_api.core.security import decode_access_token
from proposal_api.services import follow_up_sweep_service


class _FakeSession:
    def __init__(self):
        self.closed = False
        self.rolled_back = False

    def close(self):
        self.closed = True

    def rollback(self):
        self.rolled_back = True


def test_run_follow_up_sweep_passes_date(monkeypatch):
    session = _FakeSession()
    captured = {}

    def fake_sweep(db, today=None):
        captured["today"] = today
        return {"processed_count": 2, "errors": []}

    monkeypatch.setattr(cli_module, "SessionLocal", lambda: session)
    monkeypatch.setattr(follow_up_sweep_service, "process_missed_follow_ups", fake_sweep)

    result = CliRunner().invoke(cli_module.cli, ["run-follow-up-sweep", "--date", "2024-01-05"])

    assert result.exit_code == 0
    assert captured["today"] == date(2024, 1, 5)
    assert '"processed_count": 2' in result.output
    assert session.closed is True


def test_sweep_failure_exits_non_zero(monkeypatch):
    session = _FakeSession()

    def broken(db, **kwargs):
        raise RuntimeError("database unreachable")

    monkeypatch.setattr(cli_module, "SessionLocal", lambda: session)
    monkeypatch.setattr(follow_up_sweep_service, "process_stale_proposal_reminders", broken)

    result = CliRunner().invoke(cli_module.cli, ["run-stale-reminders"])

    assert result.exit_code == 1
    assert session.rolled_back is True
    assert session.closed is True


def test_run_upcoming_reminders_defaults_to_today(monkeypatch):
    captured = {}

    def fake_upcoming(db, today=None):
        captured["today"] = today
        return {"processed_count": 0, "errors": []}

    monkeypatch.setattr(cli_module, "SessionLocal", _FakeSession)
    monkeypatch.setattr(follow_up_sweep_service, "process_upcoming_follow_up_reminders", fake_upcoming)

    result = CliRunner().invoke(cli_module.cli, ["run-upcoming-reminders"])

    assert result.exit_code == 0
    assert captured["today"] is None


def test_create_profile_then_issue_token(db):
    runner = CliRunner()

    created = runner.invoke(
        cli_module.cli,
        ["create-profile", "--email", "Rep@Test.com", "--full-name", "Rep", "--role", "manager"],
    )
    assert created.exit_code == 0
    assert "Created manager profile" in created.output

    duplicate = runner.invoke(cli_module.cli, ["create-profile", "--email", "rep@test.com"])
    assert "already exists" in duplicate.output

    issued = runner.invoke(cli_module.cli, ["issue-token", "--email", "rep@test.com"])
    assert issued.exit_code == 0
    claims = decode_access_token(issued.output.strip())
    assert claims["role"] == "manager"


def test_issue_token_unknown_profile(db):
    result = CliRunner().invoke(cli_module.cli, ["issue-token", "--email", "nobody@test.com"])

    assert "No profile" in result.output
