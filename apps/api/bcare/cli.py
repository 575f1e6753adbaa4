"""CLI tools for B-Care administration."""

import logging

import click

from bcare.core.async_utils import run_async
from bcare.core.security import create_access_token
from bcare.db.seed import seed_reference_data
from bcare.db.session import SessionLocal
from bcare.schemas.auth import Actor, ActorKind
from bcare.services import sla_monitor_service


@click.group()
def cli():
    """B-Care CLI tools."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@cli.command()
@click.option("--with-policies", is_flag=True, help="Also seed sample complaint policies")
def seed_reference(with_policies: bool):
    """
    Seed lookup tables (statuses, priorities, channels, divisions, ...).

    Safe to re-run: existing rows are updated in place.

    Example:
        python -m bcare.cli seed-reference --with-policies
    """
    db = SessionLocal()
    try:
        count = seed_reference_data(db, include_policies=with_policies)
        click.echo(f"✓ Seeded {count} reference rows")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
        raise SystemExit(1)
    finally:
        db.close()


@cli.command()
@click.option(
    "--kind",
    type=click.Choice(["warnings", "overdue"]),
    required=True,
    help="Which SLA sweep to run",
)
def sla_check(kind: str):
    """Run one SLA sweep inline (bypasses the job queue)."""
    db = SessionLocal()
    try:
        if kind == "warnings":
            result = run_async(sla_monitor_service.run_sla_warning_sweep(db))
        else:
            result = run_async(sla_monitor_service.run_overdue_sweep(db))
        click.echo(
            f"✓ {kind}: candidates={result.candidates} sent={result.sent} "
            f"skipped={result.skipped} failed={result.failed}"
        )
    finally:
        db.close()


@cli.command()
@click.option("--actor-id", type=int, required=True, help="Customer or employee id")
@click.option(
    "--kind",
    type=click.Choice([k.value for k in ActorKind]),
    default=ActorKind.EMPLOYEE.value,
    help="Token owner type",
)
@click.option("--role-id", type=int, default=None, help="Employee role id")
@click.option("--division-id", type=int, default=None, help="Employee division id")
@click.option("--hours", type=int, default=None, help="Lifetime in hours")
def issue_token(actor_id: int, kind: str, role_id: int | None, division_id: int | None, hours: int | None):
    """
    Mint a bearer token for local testing.

    Example:
        python -m bcare.cli issue-token --actor-id 1 --role-id 1 --division-id 1
    """
    actor = Actor(id=actor_id, kind=ActorKind(kind), role_id=role_id, division_id=division_id)
    click.echo(create_access_token(actor, expires_hours=hours))


if __name__ == "__main__":
    cli()
