"""Maintenance commands registered on the Flask CLI."""

import click
from flask import current_app
from flask.cli import with_appcontext

from talenthub.admin.services import get_gateway
from talenthub.core import constants

KIND_COLLECTIONS = {"group": constants.GROUPS, "company": constants.COMPANIES}


@click.command("reconcile-counts")
@click.option(
    "--kind",
    type=click.Choice(sorted(KIND_COLLECTIONS)),
    default=None,
    help="Only reconcile groups or only companies.",
)
@click.argument("parent_ids", nargs=-1)
@with_appcontext
def reconcile_counts_command(kind, parent_ids):
    """Recompute memberCount from the live membership rows.

    With no PARENT_IDS every group and company is checked.
    """
    if parent_ids and not kind:
        raise click.UsageError("--kind is required when PARENT_IDS are given.")
    gateway = get_gateway()
    kinds = [kind] if kind else sorted(KIND_COLLECTIONS)
    drifted = 0
    for k in kinds:
        ids = parent_ids or [
            s.id for s in gateway.store.query(KIND_COLLECTIONS[k]) if s.exists
        ]
        for parent_id in ids:
            counts = gateway.membership.reconcile_member_count(k, parent_id)
            if counts["previous"] != counts["current"]:
                drifted += 1
                click.echo(
                    f"{k} {parent_id}: {counts['previous']} -> {counts['current']}"
                )
    current_app.logger.info(f"reconcile-counts fixed {drifted} record(s)")
    click.echo(f"Reconciled {drifted} drifted member count(s).")


def init_app(app):
    """Register the maintenance commands with ``app``."""
    app.cli.add_command(reconcile_counts_command)
