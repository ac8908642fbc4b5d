from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from kpiboard.models.share_token import ShareToken


class TokenStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self, dashboard_id: str, token: str, expires_at: datetime, created_at: datetime
    ) -> ShareToken:
        row = ShareToken(
            dashboard_id=dashboard_id,
            token=token,
            expires_at=expires_at,
            created_at=created_at,
        )
        self.db.add(row)
        await self.db.flush()
        return row

    async def get(self, token_id: str) -> ShareToken | None:
        result = await self.db.execute(
            select(ShareToken).where(ShareToken.id == token_id)
        )
        return result.scalar_one_or_none()

    async def find_by_token(self, token: str) -> ShareToken | None:
        result = await self.db.execute(
            select(ShareToken).where(ShareToken.token == token)
        )
        return result.scalar_one_or_none()

    async def find_by_dashboard(self, dashboard_id: str) -> list[ShareToken]:
        result = await self.db.execute(
            select(ShareToken)
            .where(ShareToken.dashboard_id == dashboard_id)
            .order_by(ShareToken.created_at.desc())
        )
        return list(result.scalars().all())

    async def delete_if_active(self, token_id: str, now: datetime) -> bool:
        """Conditionally delete an unexpired token.

        Returns True only for the caller whose DELETE removed the row.
        Concurrent callers block on the row lock and then see 0 rows.
        """
        result = await self.db.execute(
            delete(ShareToken)
            .where(ShareToken.id == token_id, ShareToken.expires_at > now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def delete(self, token_id: str) -> bool:
        result = await self.db.execute(
            delete(ShareToken)
            .where(ShareToken.id == token_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def delete_expired(self, now: datetime) -> int:
        result = await self.db.execute(
            delete(ShareToken)
            .where(ShareToken.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def delete_for_dashboard(self, dashboard_id: str) -> None:
        await self.db.execute(
            delete(ShareToken)
            .where(ShareToken.dashboard_id == dashboard_id)
            .execution_options(synchronize_session=False)
        )

    async def counts_for_dashboard(self, dashboard_id: str, now: datetime) -> dict:
        result = await self.db.execute(
            select(
                func.count(ShareToken.id),
                func.count(ShareToken.id).filter(ShareToken.expires_at > now),
            ).where(ShareToken.dashboard_id == dashboard_id)
        )
        total, active = result.one()
        total = int(total or 0)
        active = int(active or 0)
        return {"total": total, "active": active, "expired": total - active}
