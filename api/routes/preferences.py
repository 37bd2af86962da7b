"""Device preference endpoints."""

from fastapi import APIRouter

from api.schemas import PreferencesModel, PreferencesUpdate
from preferences import get_preferences_manager

router = APIRouter()


@router.get("")
async def get_preferences() -> PreferencesModel:
    prefs = get_preferences_manager().preferences
    return PreferencesModel(**prefs.to_dict())


@router.patch("")
async def update_preferences(request: PreferencesUpdate) -> PreferencesModel:
    """Change only the fields sent and persist them."""
    prefs = get_preferences_manager().update(**request.model_dump(exclude_none=True))
    return PreferencesModel(**prefs.to_dict())


@router.post("/reset")
async def reset_preferences() -> PreferencesModel:
    manager = get_preferences_manager()
    manager.reset_to_defaults()
    return PreferencesModel(**manager.preferences.to_dict())
