"""User administration (admin only).

Every operation requires an admin caller. The system always keeps at
least one active admin: demoting, deactivating or deleting the last one
is refused with a ValidationError.

Users who still own dashboards or KPIs cannot be deleted (Conflict);
deactivate them instead.
"""

from __future__ import annotations

import logging

from kpiboard.auth.permissions import PermissionResolver
from kpiboard.errors import Conflict, NotFound, ValidationError
from kpiboard.models.user import User, UserRole
from kpiboard.repositories import UserDirectory

logger = logging.getLogger(__name__)


def parse_role(role: UserRole | str) -> UserRole:
    try:
        return UserRole(role)
    except ValueError:
        raise ValidationError(
            f"Unknown role: {role!r}",
            details={"allowed": [r.value for r in UserRole]},
        ) from None


class UserService:
    def __init__(self, users: UserDirectory, permissions: PermissionResolver):
        self.users = users
        self.permissions = permissions

    async def _target(self, admin: User | None, user_id: str) -> User:
        self.permissions.require_role(admin, UserRole.ADMIN)
        target = await self.users.get(user_id)
        if target is None:
            raise NotFound("User", user_id)
        return target

    async def _is_last_admin(self, target: User) -> bool:
        if target.role != UserRole.ADMIN or not target.is_active:
            return False
        return await self.users.count_active_admins() <= 1

    # ── Reads ───────────────────────────────────────────────

    async def list(self, admin: User | None) -> list[User]:
        self.permissions.require_role(admin, UserRole.ADMIN)
        return await self.users.list_all()

    async def get(self, admin: User | None, user_id: str) -> User:
        return await self._target(admin, user_id)

    async def find_by_email(self, admin: User | None, email: str) -> User:
        self.permissions.require_role(admin, UserRole.ADMIN)
        target = await self.users.get_by_email(email.strip())
        if target is None:
            raise NotFound("User", email)
        return target

    # ── Writes ──────────────────────────────────────────────

    async def update_role(self, admin: User | None, user_id: str, role: UserRole | str) -> User:
        target = await self._target(admin, user_id)
        new_role = parse_role(role)
        if target.role == new_role:
            return target
        if new_role != UserRole.ADMIN and await self._is_last_admin(target):
            raise ValidationError("Cannot remove the last admin")

        old_role = target.role
        await self.users.update(target, {"role": new_role})
        logger.info(
            "User %s role changed %s → %s by %s",
            target.id, old_role.value, new_role.value, admin.id,
        )
        return target

    async def set_active(self, admin: User | None, user_id: str, active: bool) -> User:
        target = await self._target(admin, user_id)
        if target.is_active == active:
            return target
        if not active and await self._is_last_admin(target):
            raise ValidationError("Cannot deactivate the last admin")

        await self.users.update(target, {"is_active": active})
        logger.info(
            "User %s %s by %s", target.id, "activated" if active else "deactivated", admin.id
        )
        return target

    async def delete(self, admin: User | None, user_id: str) -> None:
        target = await self._target(admin, user_id)
        if await self._is_last_admin(target):
            raise ValidationError("Cannot delete the last admin")

        owned = await self.users.owned_counts(target.id)
        if owned["dashboards"] or owned["kpis"]:
            raise Conflict(
                "User still owns dashboards or KPIs; deactivate instead",
                details=owned,
            )

        await self.users.delete(target)
        logger.info("User %s deleted by %s", target.id, admin.id)
