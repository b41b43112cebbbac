"""Routes Historique des changements / Change history API routes."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from rewind.api.deps import get_current_user, get_services
from rewind.database import get_db
from rewind.models.user import User
from rewind.schemas.change import ChangeEntryRead, UndoResponse
from rewind.services.factory import Services

router = APIRouter()


@router.get("/recent", response_model=list[ChangeEntryRead])
async def list_recent_changes(
    limit: int | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Derniers changements de l'utilisateur / The current user's latest changes."""
    return await services.recorder.list_recent(db, user.username, limit)


@router.post("/{change_id}/undo", response_model=UndoResponse)
async def undo_change(
    change_id: int,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Annuler un changement ; refaire = annuler l'entree `redo_id` /
    Undo a change; redo = undo the `redo_id` entry.
    """
    result = await services.undo.undo(change_id, user.username, is_superadmin=user.is_superadmin)
    return UndoResponse(
        status=result.status,
        entity_type=result.entity_type,
        entity_id=result.entity_id,
        operation=result.operation,
        redo_id=result.redo_id,
    )
