"""Management CLI.

Usage:
    python -m kpiboard.cli init-db                  # Create missing tables
    python -m kpiboard.cli create-user EMAIL ROLE   # ROLE: admin | editor | viewer
    python -m kpiboard.cli issue-token USER_ID      # Print a bearer token
    python -m kpiboard.cli cleanup-share-links      # Sweep expired share links
"""

import asyncio
import sys

from kpiboard.auth.jwt import create_access_token
from kpiboard.container import ServiceFactory
from kpiboard.database import async_session, create_all_tables, engine
from kpiboard.models.user import UserRole
from kpiboard.repositories import UserDirectory

USAGE = (
    "Usage: python -m kpiboard.cli "
    "[init-db|create-user EMAIL ROLE|issue-token USER_ID|cleanup-share-links]"
)


async def init_db():
    await create_all_tables()
    print("Tables created.")


async def create_user(email: str, role: str):
    try:
        user_role = UserRole(role)
    except ValueError:
        print(f"Unknown role {role!r} (expected one of: {', '.join(r.value for r in UserRole)})")
        return 1

    async with async_session() as db:
        users = UserDirectory(db)
        if await users.get_by_email(email):
            print(f"User {email} already exists.")
            return 1
        user = await users.create(email, user_role)
        await db.commit()
        print(f"  {user.id}  {user.email}  {user.role.value}")
    return 0


async def issue_token(user_id: str):
    async with async_session() as db:
        user = await UserDirectory(db).get(user_id)
    if not user or not user.is_active:
        print(f"User {user_id} not found or inactive.")
        return 1
    print(create_access_token(user.id, user.role.value))
    return 0


async def cleanup_share_links():
    async with async_session() as db:
        removed = await ServiceFactory().build(db).share_links.cleanup_expired()
        await db.commit()
    print(f"Removed {removed} expired share link(s).")
    return 0


async def _run(cmd: str, args: list[str]) -> int:
    try:
        if cmd == "init-db":
            await init_db()
            return 0
        if cmd == "create-user" and len(args) == 2:
            return await create_user(*args)
        if cmd == "issue-token" and len(args) == 1:
            return await issue_token(*args)
        if cmd == "cleanup-share-links":
            return await cleanup_share_links()
        print(USAGE)
        return 2
    finally:
        await engine.dispose()


if __name__ == "__main__":
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""
    sys.exit(asyncio.run(_run(cmd, sys.argv[2:])))
