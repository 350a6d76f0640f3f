from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.dependencies import get_current_user, get_factory
from app.core.exceptions import AppError
from app.core.logger import logger
from app.models import User
from app.repositories.factory import RepositoryFactory
from app.schemas.classifications import ClassificationIn, ClassificationOut
from app.schemas.common import SuccessOut
from app.services import classification_service

router = APIRouter()


@router.get("/asset-classes")
def list_asset_classes(factory: RepositoryFactory = Depends(get_factory)):
    try:
        return classification_service.list_asset_classes(factory)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"list_asset_classes failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load asset classes")


@router.get("/asset-types")
def list_asset_types(
        class_id: Optional[int] = Query(None, alias="classId"),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return classification_service.list_asset_types(factory, class_id)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"list_asset_types failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load asset types")


@router.get("/exchanges")
def list_exchanges(factory: RepositoryFactory = Depends(get_factory)):
    try:
        return classification_service.list_exchanges(factory)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"list_exchanges failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load exchanges")


@router.get("/currencies", response_model=List[str])
def list_currencies(factory: RepositoryFactory = Depends(get_factory)):
    try:
        return classification_service.list_currencies(factory)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"list_currencies failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load currencies")


@router.get("/asset-classifications", response_model=List[ClassificationOut])
def list_classifications(
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return classification_service.list_classifications(factory, user.user_id)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"list_classifications failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load classifications")


@router.post("/asset-classifications", response_model=ClassificationOut, status_code=status.HTTP_201_CREATED)
def upsert_classification(
        payload: ClassificationIn,
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    """Create the classification of (ticker, exchange) or replace its class and type."""
    try:
        classification = classification_service.upsert_classification(
            factory, user.user_id, payload.model_dump(exclude_unset=True)
        )
        return classification_service.classification_row(classification)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"upsert_classification failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to save classification")


@router.delete("/asset-classifications/{classification_id}", response_model=SuccessOut)
def delete_classification(
        classification_id: str,
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        classification_service.delete_classification(factory, user.user_id, classification_id)
        return {"success": True}
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"delete_classification failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to delete classification")
