"""Dashboard router — CRUD, access grants, and share links.

Endpoints:
    GET    /api/dashboards/                                   Dashboards visible to caller
    POST   /api/dashboards/                                   Create a dashboard
    GET    /api/dashboards/{dashboard_id}                     Detail + effective level
    PATCH  /api/dashboards/{dashboard_id}                     Update name/description/layout
    DELETE /api/dashboards/{dashboard_id}                     Delete (owner level)
    GET    /api/dashboards/{dashboard_id}/users               List access grants
    PUT    /api/dashboards/{dashboard_id}/users/{user_id}     Grant / change a level
    DELETE /api/dashboards/{dashboard_id}/users/{user_id}     Revoke a grant
    POST   /api/dashboards/{dashboard_id}/share-links         Issue a share link
    GET    /api/dashboards/{dashboard_id}/share-links         List share links
    GET    /api/dashboards/{dashboard_id}/share-links/stats   Active / expired counts
    DELETE /api/dashboards/{dashboard_id}/share-links/{token_id}  Revoke a share link
"""

from fastapi import APIRouter, Depends, status

from kpiboard.auth.deps import get_current_user, get_services
from kpiboard.container import Services
from kpiboard.models.dashboard import DashboardAccess
from kpiboard.models.user import User
from kpiboard.schemas.dashboard import (
    AccessLevelUpdate,
    DashboardCreate,
    DashboardDetail,
    DashboardOut,
    DashboardUpdate,
    DashboardUserOut,
)
from kpiboard.schemas.share_link import ShareLinkCreate, ShareLinkOut, ShareLinkStats

router = APIRouter()


def _user_out(grant: DashboardAccess, user: User) -> DashboardUserOut:
    return DashboardUserOut(
        user_id=user.id,
        email=user.email,
        permission_level=grant.permission_level,
        granted_at=grant.created_at,
    )


# ── CRUD ─────────────────────────────────────────────────────

@router.get("/", response_model=list[DashboardOut])
async def list_dashboards(
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return await services.dashboards.list(user)


@router.post("/", response_model=DashboardOut, status_code=status.HTTP_201_CREATED)
async def create_dashboard(
    body: DashboardCreate,
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return await services.dashboards.create(
        user, body.name, body.layout, description=body.description
    )


@router.get("/{dashboard_id}", response_model=DashboardDetail)
async def get_dashboard(
    dashboard_id: str,
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    detail = await services.dashboards.get(user, dashboard_id)
    base = DashboardOut.model_validate(detail["dashboard"])
    return DashboardDetail(
        **base.model_dump(),
        permission_level=detail["permission_level"],
        users=[_user_out(grant, member) for grant, member in detail["users"]],
    )


@router.patch("/{dashboard_id}", response_model=DashboardOut)
async def update_dashboard(
    dashboard_id: str,
    body: DashboardUpdate,
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return await services.dashboards.update(
        user, dashboard_id, body.model_dump(exclude_unset=True)
    )


@router.delete("/{dashboard_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_dashboard(
    dashboard_id: str,
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    await services.dashboards.delete(user, dashboard_id)


# ── Access grants ────────────────────────────────────────────

@router.get("/{dashboard_id}/users", response_model=list[DashboardUserOut])
async def list_dashboard_users(
    dashboard_id: str,
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    rows = await services.dashboards.list_users(user, dashboard_id)
    return [_user_out(grant, member) for grant, member in rows]


@router.put("/{dashboard_id}/users/{user_id}", response_model=DashboardUserOut)
async def set_dashboard_user(
    dashboard_id: str,
    user_id: str,
    body: AccessLevelUpdate,
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    grant = await services.dashboards.set_user_access(
        user, dashboard_id, user_id, body.permission_level
    )
    member = await services.users.get(user_id)
    return _user_out(grant, member)


@router.delete("/{dashboard_id}/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_dashboard_user(
    dashboard_id: str,
    user_id: str,
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    await services.dashboards.remove_viewer(user, dashboard_id, user_id)


# ── Share links ──────────────────────────────────────────────

@router.post(
    "/{dashboard_id}/share-links",
    response_model=ShareLinkOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_share_link(
    dashboard_id: str,
    body: ShareLinkCreate | None = None,
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    ttl_days = body.ttl_days if body else None
    return await services.share_links.generate(user, dashboard_id, ttl_days)


@router.get("/{dashboard_id}/share-links", response_model=list[ShareLinkOut])
async def list_share_links(
    dashboard_id: str,
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return await services.share_links.list_for_dashboard(user, dashboard_id)


@router.get("/{dashboard_id}/share-links/stats", response_model=ShareLinkStats)
async def share_link_stats(
    dashboard_id: str,
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return await services.share_links.stats(user, dashboard_id)


@router.delete(
    "/{dashboard_id}/share-links/{token_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def revoke_share_link(
    dashboard_id: str,
    token_id: str,
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    await services.share_links.revoke(user, dashboard_id, token_id)
