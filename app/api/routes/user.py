from fastapi import APIRouter, Depends, HTTPException

from app.api.dependencies import get_current_user, get_factory
from app.core.exceptions import AppError
from app.core.logger import logger
from app.models import User
from app.repositories.factory import RepositoryFactory
from app.schemas.user import PreferencesIn, PreferencesOut, UserOut
from app.services import user_service

router = APIRouter()


@router.get("/data", response_model=UserOut)
def get_user_data(
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return user_service.get_user_data(factory, user.user_id)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"get_user_data failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load user")


@router.get("/preferences", response_model=PreferencesOut)
def get_preferences(
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return user_service.get_preferences(factory, user.user_id)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"get_preferences failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load preferences")


@router.put("/preferences", response_model=PreferencesOut)
def update_preferences(
        payload: PreferencesIn,
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return user_service.update_preferences(factory, user.user_id, payload.model_dump(exclude_unset=True))
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"update_preferences failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to update preferences")
