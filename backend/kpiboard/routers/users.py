"""User router — admin-only user management.

Endpoints:
    GET    /api/users/                        List all users
    GET    /api/users/lookup?email=           Find a user by email
    GET    /api/users/{user_id}               Get one user
    PATCH  /api/users/{user_id}               Change role
    POST   /api/users/{user_id}/deactivate    Deactivate user
    POST   /api/users/{user_id}/activate      Reactivate user
    DELETE /api/users/{user_id}               Delete user (must own nothing)
"""

from fastapi import APIRouter, Depends, Query, status

from kpiboard.auth.deps import get_current_user, get_services
from kpiboard.container import Services
from kpiboard.models.user import User
from kpiboard.schemas.user import UserOut, UserRoleUpdate

router = APIRouter()


@router.get("/", response_model=list[UserOut])
async def list_users(
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return await services.user_admin.list(user)


@router.get("/lookup", response_model=UserOut)
async def find_user_by_email(
    email: str = Query(..., min_length=1),
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return await services.user_admin.find_by_email(user, email)


@router.get("/{user_id}", response_model=UserOut)
async def get_user(
    user_id: str,
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return await services.user_admin.get(user, user_id)


@router.patch("/{user_id}", response_model=UserOut)
async def update_user_role(
    user_id: str,
    body: UserRoleUpdate,
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return await services.user_admin.update_role(user, user_id, body.role)


@router.post("/{user_id}/deactivate", response_model=UserOut)
async def deactivate_user(
    user_id: str,
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return await services.user_admin.set_active(user, user_id, False)


@router.post("/{user_id}/activate", response_model=UserOut)
async def activate_user(
    user_id: str,
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return await services.user_admin.set_active(user, user_id, True)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    await services.user_admin.delete(user, user_id)
