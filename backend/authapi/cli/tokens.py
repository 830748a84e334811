"""Flask CLI commands for token store maintenance."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

import click
from flask.cli import with_appcontext

from authapi.wiring import get_services

LOGGER = logging.getLogger(__name__)


def retention_cutoff(
    now: datetime,
    *,
    older_than: timedelta,
    access_ttl: timedelta,
    refresh_ttl: timedelta,
) -> datetime:
    """Return the creation time before which pairs may be purged.

    The cutoff is at least both token lifetimes in the past, so only pairs
    whose tokens can no longer verify are removed.
    """
    return now - max(older_than, access_ttl, refresh_ttl)


@click.group("tokens")
def tokens_cli() -> None:
    """Token store maintenance commands."""


@tokens_cli.command("purge")
@click.option(
    "--older-than-days",
    type=click.IntRange(min=0),
    default=None,
    help="Minimum age in days (defaults to TOKEN_RETENTION_DAYS).",
)
@click.option("--dry-run", is_flag=True, help="Only print the cutoff.")
@with_appcontext
def purge(older_than_days: int | None, dry_run: bool) -> None:
    """Delete token pairs whose tokens have all expired."""
    from flask import current_app

    services = get_services()
    days = (
        older_than_days
        if older_than_days is not None
        else int(current_app.config.get("TOKEN_RETENTION_DAYS", 30))
    )
    cutoff = retention_cutoff(
        datetime.now(UTC),
        older_than=timedelta(days=days),
        access_ttl=services.settings.access_ttl,
        refresh_ttl=services.settings.refresh_ttl,
    )
    if dry_run:
        click.echo(f"Would purge token pairs created before {cutoff.isoformat()}")
        return

    removed = services.store.purge_created_before(cutoff)
    LOGGER.info("token.purge removed=%s cutoff=%s", removed, cutoff.isoformat())
    click.echo(f"Purged {removed} token pair(s) created before {cutoff.isoformat()}")
