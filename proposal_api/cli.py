"""CLI tools for follow-up administration and scheduled sweeps."""

import json
import logging
import sys
from datetime import date

import click

from proposal_api.core.security import create_access_token
from proposal_api.db.enums import Role
from proposal_api.db.models import Profile
from proposal_api.db.session import SessionLocal
from proposal_api.services import follow_up_sweep_service


@click.group()
@click.option("--log-level", default="INFO", show_default=True, help="Logging level")
def cli(log_level: str):
    """Proposal follow-up CLI tools."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _run_sweep(fn, **kwargs):
    db = SessionLocal()
    try:
        result = fn(db, **kwargs)
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Sweep failed: {e}", err=True)
        sys.exit(1)
    finally:
        db.close()

    click.echo(json.dumps(result, indent=2, default=str))
    if result.get("errors"):
        click.echo(f"⚠ {len(result['errors'])} item(s) failed", err=True)


@cli.command()
@click.option(
    "--date", "run_date", type=click.DateTime(formats=["%Y-%m-%d"]), default=None,
    help="Treat this day as today (YYYY-MM-DD)",
)
def run_follow_up_sweep(run_date):
    """
    Mark overdue follow-ups as missed and notify representatives.

    Example:
        proposal-api run-follow-up-sweep --date 2024-01-05
    """
    _run_sweep(
        follow_up_sweep_service.process_missed_follow_ups,
        today=run_date.date() if run_date else None,
    )


@cli.command()
def run_stale_reminders():
    """Remind representatives about proposals with no recent activity."""
    _run_sweep(follow_up_sweep_service.process_stale_proposal_reminders)


@cli.command()
@click.option(
    "--date", "run_date", type=click.DateTime(formats=["%Y-%m-%d"]), default=None,
    help="Treat this day as today (YYYY-MM-DD)",
)
def run_upcoming_reminders(run_date):
    """Remind representatives of follow-ups due tomorrow."""
    _run_sweep(
        follow_up_sweep_service.process_upcoming_follow_up_reminders,
        today=run_date.date() if run_date else None,
    )


@cli.command()
@click.option("--email", required=True, help="Profile email")
@click.option("--full-name", default=None, help="Display name")
@click.option(
    "--role",
    type=click.Choice([r.value for r in Role]),
    default=Role.REPRESENTATIVE.value,
    show_default=True,
)
def create_profile(email: str, full_name: str | None, role: str):
    """Create a profile (dev/bootstrap)."""
    db = SessionLocal()
    try:
        existing = db.query(Profile).filter(Profile.email == email.lower()).first()
        if existing:
            click.echo(f"❌ Profile already exists for {email}")
            return
        profile = Profile(email=email.lower(), full_name=full_name, role=role)
        db.add(profile)
        db.commit()
        click.echo(f"✓ Created {role} profile: {profile.id}")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="Profile email")
@click.option("--hours", default=1, show_default=True, help="Token lifetime in hours")
def issue_token(email: str, hours: int):
    """Issue an access token for a profile (dev/testing)."""
    db = SessionLocal()
    try:
        profile = db.query(Profile).filter(Profile.email == email.lower()).first()
        if not profile:
            click.echo(f"❌ No profile for {email}")
            return
        click.echo(create_access_token(profile.id, profile.role, expires_hours=hours))
    finally:
        db.close()


if __name__ == "__main__":
    cli()
