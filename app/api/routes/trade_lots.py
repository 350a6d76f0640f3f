from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from app.api.dependencies import get_current_user, get_factory, require_feature
from app.core.exceptions import AppError
from app.core.logger import logger
from app.models import User
from app.repositories.factory import RepositoryFactory
from app.schemas.transactions import CloseTradeLotIn, RealizedPnLIn, RealizedPnLOut, TradeLotOut
from app.services import transaction_service

router = APIRouter(dependencies=[Depends(require_feature("trade_lots"))])


@router.get("/trade-lots", response_model=List[TradeLotOut])
def list_trade_lots(
        ticker: Optional[str] = None,
        status: Optional[str] = None,
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return transaction_service.list_trade_lots(factory, user.user_id, ticker, status)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"list_trade_lots failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to list trade lots")


@router.post("/trade-lots/{lot_id}/close", response_model=TradeLotOut)
def close_trade_lot(
        lot_id: str,
        payload: CloseTradeLotIn,
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return transaction_service.close_trade_lot(factory, user.user_id, lot_id, payload.model_dump(exclude_unset=True))
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"close_trade_lot failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to close trade lot")


@router.get("/trades/realized-history", response_model=List[RealizedPnLOut])
def realized_history(
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return transaction_service.list_realized_history(factory, user.user_id)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"realized_history failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load realized history")


@router.put("/trades/realized-history/{realization_id}", response_model=RealizedPnLOut)
def update_realized(
        realization_id: int,
        payload: RealizedPnLIn,
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    """Totals sent by the client are ignored and recomputed."""
    try:
        return transaction_service.update_realized(
            factory, user.user_id, realization_id, payload.model_dump(exclude_unset=True)
        )
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"update_realized failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to update realized history")
