"""Share link router — redeeming and checking links.

Endpoints:
    POST /api/share-links/redeem           Consume a link, grant viewer access
    GET  /api/share-links/validate?token=  Check a link without consuming it

Issuing, listing and revoking live under /api/dashboards/{id}/share-links.
"""

from fastapi import APIRouter, Depends, Query

from kpiboard.auth.deps import get_current_user, get_services
from kpiboard.container import Services
from kpiboard.models.user import User
from kpiboard.schemas.share_link import (
    ShareLinkRedeem,
    ShareLinkRedeemed,
    ShareLinkValidation,
)

router = APIRouter()


@router.post("/redeem", response_model=ShareLinkRedeemed)
async def redeem_share_link(
    body: ShareLinkRedeem,
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    dashboard_id = await services.share_links.redeem(user, body.token)
    return ShareLinkRedeemed(dashboard_id=dashboard_id)


@router.get("/validate", response_model=ShareLinkValidation)
async def validate_share_link(
    token: str = Query(...),
    services: Services = Depends(get_services),
):
    """Anonymous check used by the landing page before sign-in."""
    row = await services.share_links.validate(token)
    return ShareLinkValidation(valid=True, dashboard_id=row.dashboard_id, expires_at=row.expires_at)
