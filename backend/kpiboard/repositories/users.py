from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from kpiboard.models.dashboard import Dashboard, DashboardAccess
from kpiboard.models.kpi import Kpi
from kpiboard.models.user import User, UserRole


class UserDirectory:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, user_id: str) -> User | None:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def list_all(self) -> list[User]:
        result = await self.db.execute(select(User).order_by(User.created_at.desc(), User.email))
        return list(result.scalars().all())

    async def create(self, email: str, role: UserRole) -> User:
        user = User(email=email, role=role)
        self.db.add(user)
        await self.db.flush()
        return user

    async def update(self, user: User, changes: dict) -> User:
        for field, value in changes.items():
            setattr(user, field, value)
        await self.db.flush()
        return user

    async def count_active_admins(self) -> int:
        result = await self.db.execute(
            select(func.count(User.id)).where(
                User.role == UserRole.ADMIN, User.is_active.is_(True)
            )
        )
        return int(result.scalar() or 0)

    async def owned_counts(self, user_id: str) -> dict:
        dashboards = await self.db.execute(
            select(func.count(Dashboard.id)).where(Dashboard.owner_id == user_id)
        )
        kpis = await self.db.execute(
            select(func.count(Kpi.id)).where(Kpi.owner_id == user_id)
        )
        return {
            "dashboards": int(dashboards.scalar() or 0),
            "kpis": int(kpis.scalar() or 0),
        }

    async def delete(self, user: User) -> None:
        """Remove a user and every access grant they hold."""
        await self.db.execute(
            delete(DashboardAccess)
            .where(DashboardAccess.user_id == user.id)
            .execution_options(synchronize_session=False)
        )
        await self.db.delete(user)
        await self.db.flush()
