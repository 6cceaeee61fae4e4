"""
Assign a role to a user from the shell.

Role changes are otherwise administrator-only, so this is how the first
administrator gets their role. Any existing roles of the user are replaced.

Usage:
    uv run python -m scripts.grant_role USER_ID administrator
"""
import asyncio

import typer

from app.core.database.engine import AsyncSessionLocal, init_db
from app.features.permissions.dependencies import replace_user_role
from app.features.permissions.policy import ASSIGNABLE_ROLES, AppRole
from app.utils import get_logger


log = get_logger(__name__)
cli = typer.Typer(add_completion=False)


async def grant_role(user_id: str, role: AppRole) -> None:
    """Replace the user's roles with ``role`` in the primary store."""
    log.info("Initializing database tables...")
    await init_db()
    
    async with AsyncSessionLocal() as db:
        try:
            await replace_user_role(db, user_id, role)
            await db.commit()
        except Exception as e:
            log.error(f"Error assigning role: {e}", exc_info=True)
            await db.rollback()
            raise
    
    log.info(f"User {user_id} now has role '{role.value}'")


@cli.command()
def main(
    user_id: str = typer.Argument(..., help="Auth service user id"),
    role: AppRole = typer.Argument(AppRole.ADMINISTRATOR, help="Role to assign"),
):
    if role not in ASSIGNABLE_ROLES:
        raise typer.BadParameter(f"Role '{role.value}' cannot be assigned", param_hint="ROLE")
    asyncio.run(grant_role(user_id, role))


if __name__ == "__main__":
    cli()
