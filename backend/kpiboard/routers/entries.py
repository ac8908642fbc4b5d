"""Entry router — changes to a single KPI entry.

Endpoints:
    PATCH  /api/entries/{entry_id}   Change date and/or value
    DELETE /api/entries/{entry_id}   Remove the entry
"""

from fastapi import APIRouter, Depends, status

from kpiboard.auth.deps import get_current_user, get_services
from kpiboard.container import Services
from kpiboard.models.user import User
from kpiboard.schemas.entry import EntryOut, EntryUpdate

router = APIRouter()


@router.patch("/{entry_id}", response_model=EntryOut)
async def update_entry(
    entry_id: int,
    body: EntryUpdate,
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return await services.entries.update(user, entry_id, body.model_dump(exclude_unset=True))


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_entry(
    entry_id: int,
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    await services.entries.delete(user, entry_id)
