"""
Run the directory sync from the shell on behalf of an administrator.

The operator's role is verified against the primary store exactly as the
HTTP route does before any member data is read.

Usage:
    uv run python -m scripts.sync_directory OPERATOR_USER_ID --direction source-to-dest
"""
import asyncio

import typer

from app.core import config
from app.core.database.engine import AsyncSessionLocal, create_secondary_engine, engine
from app.features.directory_sync.service import DirectorySyncJob, SyncDirection
from app.features.directory_sync.stores import PrimaryMemberStore, SecondaryMemberStore
from app.features.permissions.dependencies import resolve_user_role
from app.features.permissions.policy import PermissionResolver
from app.utils import get_logger


log = get_logger(__name__)
cli = typer.Typer(add_completion=False)


async def run_sync(operator_id: str, direction: SyncDirection) -> bool:
    async with AsyncSessionLocal() as db:
        role = await resolve_user_role(db, operator_id)
    if not PermissionResolver(role).is_administrator:
        log.error(f"User {operator_id} is not an administrator")
        return False

    secondary_engine = create_secondary_engine()
    if secondary_engine is None:
        log.error("Secondary database is not configured")
        return False

    try:
        job = DirectorySyncJob(
            PrimaryMemberStore(engine, batch_size=config.SYNC_BATCH_SIZE),
            SecondaryMemberStore(secondary_engine, batch_size=config.SYNC_BATCH_SIZE),
        )
        outcome = await job.run(direction)
    finally:
        await secondary_engine.dispose()

    for transfer in outcome.transfers:
        log.info(
            f"{transfer.source} -> {transfer.destination}: read={transfer.rows_read} "
            f"written={transfer.rows_written} failed={transfer.rows_failed}"
        )
        for failure in transfer.failures:
            log.info(f"  failed member {failure.member_id}: {failure.error}")

    if outcome.success:
        log.info(outcome.message)
    else:
        log.error(f"Sync failed: {outcome.error}")
    return outcome.success


@cli.command()
def main(
    operator_id: str = typer.Argument(..., help="User id of the administrator running the sync"),
    direction: str = typer.Option(
        SyncDirection.BIDIRECTIONAL.value,
        help="bidirectional, source-to-dest (primary to MySQL) or dest-to-source (MySQL to primary)",
    ),
):
    try:
        sync_direction = SyncDirection(direction)
    except ValueError:
        raise typer.BadParameter(f"Unknown direction {direction!r}", param_hint="--direction")

    if not asyncio.run(run_sync(operator_id, sync_direction)):
        raise typer.Exit(code=1)


if __name__ == "__main__":
    cli()
