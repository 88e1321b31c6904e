"""Flask CLI commands for maintenance jobs run by cron."""
from __future__ import annotations

from datetime import datetime, time, timezone

import click
from flask.cli import with_appcontext

from .appointments import expire_stale
from .availability import parse_date
from .errors import InvalidInput
from .extensions import db


@click.command("init-db")
@with_appcontext
def init_db_command() -> None:
    """Create database tables."""
    db.create_all()
    click.echo("Database tables initialized")


@click.command("expire-stale")
@click.option("--today", default=None, help="Treat this YYYY-MM-DD date as today.")
@with_appcontext
def expire_stale_command(today: str | None) -> None:
    """Cancel SCHEDULED appointments whose date has passed."""
    now = None
    if today:
        try:
            now = datetime.combine(parse_date(today), time.min, tzinfo=timezone.utc)
        except InvalidInput as exc:
            raise click.BadParameter(exc.message, param_hint="--today") from None

    cancelled = expire_stale(now=now)
    click.echo(f"Cancelled {len(cancelled)} stale pending appointments")


def register_commands(app) -> None:
    app.cli.add_command(init_db_command)
    app.cli.add_command(expire_stale_command)
