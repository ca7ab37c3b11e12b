"""
Current user's preferences.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from zena.api.core.security import CurrentUser, get_current_user
from zena.api.db.session import get_db
from zena.api.schemas.preferences import PreferencesPatch, PreferencesResponse
from zena.api.services import settings_service

router = APIRouter(prefix="/api/v1/me/preferences", tags=["me"])


@router.get("", response_model=PreferencesResponse)
def get_my_preferences(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    return settings_service.get_preferences(db, current_user.id)


@router.patch("", response_model=PreferencesResponse)
def patch_my_preferences(
    data: PreferencesPatch,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Deep-merge a partial document; concurrent patches do not overwrite each other."""
    return settings_service.update_preferences(db, current_user.id, data.preferences)
