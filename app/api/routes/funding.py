from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.dependencies import get_current_user, get_factory
from app.core.exceptions import AppError
from app.core.logger import logger
from app.models import User
from app.repositories.factory import RepositoryFactory
from app.schemas.common import Page, SuccessOut
from app.schemas.funding import (
    CashMovementDirectionOut,
    CashMovementIn,
    CashMovementOut,
    CashMovementResult,
    FundingOut,
    PeriodOut,
)
from app.services import cash_movement_service

router = APIRouter()


@router.get("", response_model=FundingOut)
def get_funding(
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    """Currencies, the full movement ledger and per-period statistics."""
    try:
        return {
            "currencies": cash_movement_service.get_user_currencies(factory, user.user_id),
            "movements": cash_movement_service.get_cash_movements(factory, user.user_id),
            "periodStats": cash_movement_service.get_period_stats(factory, user.user_id),
        }
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"get_funding failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load funding data")


@router.get("/periods", response_model=List[PeriodOut])
def get_periods(
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return cash_movement_service.get_unique_periods(factory, user.user_id)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"get_periods failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load funding periods")


@router.get("/period-movements", response_model=List[CashMovementOut])
def get_period_movements(
        period_from: date,
        period_to: Optional[date] = None,
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    """Movements of exactly one period window. Omitting period_to selects the open period."""
    try:
        return cash_movement_service.get_movements_for_period(factory, user.user_id, period_from, period_to)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"get_period_movements failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load period movements")


@router.get("/all-movements", response_model=Page[CashMovementOut])
def get_all_movements(
        page: int = Query(1, ge=1),
        page_size: int = Query(20, ge=1, le=500, alias="pageSize"),
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return cash_movement_service.get_all_movements_page(factory, user.user_id, page, page_size)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"get_all_movements failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load movements")


@router.get("/directions", response_model=List[CashMovementDirectionOut])
def get_directions(
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return factory.get_cash_movement_direction_repository().get_directions()
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"get_directions failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load directions")


@router.post("/movement", response_model=CashMovementResult)
def create_movement(
        payload: CashMovementIn,
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        fields = payload.model_dump(exclude_unset=True)
        movement = cash_movement_service.create_cash_movement(
            factory,
            user.user_id,
            fields,
            fields.pop("home_currency_code", None),
            fields.pop("trading_currency_code", None),
        )
        return {"success": True, "data": movement}
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"create_movement failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to create cash movement")


@router.put("/movement/{movement_id}", response_model=CashMovementResult)
def update_movement(
        movement_id: str,
        payload: CashMovementIn,
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        movement = cash_movement_service.update_cash_movement(
            factory, user.user_id, movement_id, payload.model_dump(exclude_unset=True)
        )
        return {"success": True, "data": movement}
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"update_movement failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to update cash movement")


@router.delete("/movement/{movement_id}", response_model=SuccessOut)
def delete_movement(
        movement_id: str,
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        cash_movement_service.delete_cash_movement(factory, user.user_id, movement_id)
        return {"success": True}
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"delete_movement failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to delete cash movement")
