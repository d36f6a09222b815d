"""
User endpoints.
"""
from fastapi import APIRouter, Depends

from cardwise.api.v1.dependencies import get_scheduling_engine
from cardwise.schemas.card import DeleteUserResponse
from cardwise.services.scheduling_service import SchedulingEngine

router = APIRouter(prefix="/users", tags=["users"])


@router.delete("/{user_id}", response_model=DeleteUserResponse)
def delete_user(
    user_id: str,
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """Delete a user and, by cascade, all of their cards and labels."""
    cards_deleted = engine.delete_user(user_id)
    return DeleteUserResponse(user_id=user_id, cards_deleted=cards_deleted)
