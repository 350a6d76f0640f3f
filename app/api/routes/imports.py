from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from app.api.dependencies import get_current_user, get_factory
from app.core.exceptions import AppError
from app.core.logger import logger
from app.models import User
from app.repositories.factory import RepositoryFactory
from app.schemas.transactions import ReleaseStagingIn, StagingOut
from app.services import import_service

router = APIRouter()


@router.post("/transactions/csv")
async def upload_transactions_csv(
        file: UploadFile = File(...),
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    """date, type, ticker, quantity, price[, fees, currency, exchange, strategy, notes]"""
    try:
        content = await file.read()
        return import_service.stage_transactions_csv(factory, user.user_id, content)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"upload_transactions_csv failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to upload transactions CSV")


@router.get("/staging", response_model=List[StagingOut])
def list_staging(
        status: Optional[str] = None,
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return import_service.list_staging(factory, user.user_id, status)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"list_staging failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load staging rows")


@router.post("/staging/release")
def release_staging(
        payload: ReleaseStagingIn,
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return import_service.release_staging(factory, user.user_id, payload.staging_ids)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"release_staging failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to release staging rows")


@router.delete("/staging/clear-rejected")
def clear_rejected(
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return import_service.clear_rejected(factory, user.user_id)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"clear_rejected failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to clear rejected rows")
