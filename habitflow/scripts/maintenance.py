"""Maintenance CLI commands.

Usage:
    flask refresh-summaries                 # Recompute every user's habit summaries
    flask refresh-summaries --user 1 --today 2024-03-10
    flask dispatch-outbox --limit 100       # Publish ready outbox messages
"""

from __future__ import annotations

import click
from flask.cli import with_appcontext


@click.command("refresh-summaries")
@click.option("--user", "-u", type=int, help="Refresh for specific user ID only")
@click.option("--today", "-t", type=click.DateTime(formats=["%Y-%m-%d"]), help="Day to compute streaks against")
@with_appcontext
def refresh_summaries_command(user: int | None, today):
    """Recompute streaks and rates from the completion ledger."""
    from habitflow.core.users.models import User
    from habitflow.domains.habits.services import refresh_summaries

    day = today.date() if today else None
    user_ids = [user] if user else [row.id for row in User.query.order_by(User.id).all()]
    total = 0
    for user_id in user_ids:
        total += len(refresh_summaries(user_id, day))
    click.echo(f"Refreshed {total} habits for {len(user_ids)} users")


@click.command("dispatch-outbox")
@click.option("--limit", "-l", type=int, default=50, show_default=True, help="Max messages per batch")
@with_appcontext
def dispatch_outbox_command(limit: int):
    """Publish ready outbox messages onto the event bus."""
    from habitflow.platform.outbox import dispatch_ready

    sent = dispatch_ready(limit=limit)
    click.echo(f"Dispatched {len(sent)} messages")


def register_commands(app):
    """Register CLI commands with the app."""
    app.cli.add_command(refresh_summaries_command)
    app.cli.add_command(dispatch_outbox_command)
