from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.dependencies import get_current_user, get_factory, require_feature
from app.core.exceptions import AppError, NotFound
from app.core.logger import logger
from app.models import User
from app.repositories.factory import RepositoryFactory
from app.schemas.positions import PositionOut, TradeStrategyOut, UpdateStrategyIn
from app.services import position_service

router = APIRouter()
positions_enabled = Depends(require_feature("positions"))


@router.get("/positions", response_model=List[PositionOut], dependencies=[positions_enabled])
def list_positions(
        is_active: Optional[bool] = Query(None, alias="isActive"),
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    """Positions with their classification names, filtered by activity when isActive is given."""
    try:
        return position_service.list_positions(factory, user.user_id, is_active)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"list_positions failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to list positions")


@router.post("/positions/update-prices", dependencies=[positions_enabled])
def update_prices(
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return position_service.update_prices(factory, user.user_id)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"update_prices failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to update prices")


@router.put("/positions/update-strategy", response_model=PositionOut, dependencies=[positions_enabled])
def update_strategy(
        payload: UpdateStrategyIn,
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        position = position_service.update_strategy(factory, user.user_id, payload.position_id, payload.strategy_id)
        return position_service.position_row(position)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"update_strategy failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to update strategy")


@router.get("/positions/{ticker}", response_model=PositionOut, dependencies=[positions_enabled])
def get_position(
        ticker: str,
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        position = position_service.get_active_position(factory, user.user_id, ticker)
        if position is None:
            raise NotFound(f"No active position for {ticker.upper()}")
        return position_service.position_row(position)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"get_position failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load position")


@router.get("/strategies", response_model=List[TradeStrategyOut])
def list_strategies(factory: RepositoryFactory = Depends(get_factory)):
    try:
        return position_service.list_strategies(factory)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"list_strategies failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load strategies")
