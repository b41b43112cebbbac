"""Routes Annulation rapide / Quick-undo API routes."""

from fastapi import APIRouter, Depends, Query

from rewind.api.deps import get_current_user, get_services
from rewind.models.user import User
from rewind.schemas.undo_log import QuickUndoResponse, UndoLogRead
from rewind.services.factory import Services

router = APIRouter()


@router.get("", response_model=list[UndoLogRead])
async def list_quick_undo(
    limit: int | None = Query(default=None),
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Entrees non expirees et non utilisees / Entries neither expired nor used."""
    return await services.quick_undo.list_entries(user.username, limit)


@router.post("/{entry_id}", response_model=QuickUndoResponse)
async def perform_quick_undo(
    entry_id: int,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    result = await services.quick_undo.perform(entry_id, user.username)
    return QuickUndoResponse(
        status=result.status,
        entity_type=result.entity_type,
        entity_id=result.entity_id,
    )
