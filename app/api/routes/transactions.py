from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.dependencies import get_current_user, get_factory, require_feature
from app.core.exceptions import AppError
from app.core.logger import logger
from app.models import User
from app.repositories.factory import RepositoryFactory
from app.schemas.common import SuccessOut
from app.schemas.transactions import TransactionIn, TransactionOut, TransactionPatch, TransactionTypeOut
from app.services import transaction_service

router = APIRouter()
transactions_enabled = Depends(require_feature("transactions"))


@router.get("/transactions", response_model=List[TransactionOut], dependencies=[transactions_enabled])
def list_transactions(
        ticker: Optional[str] = None,
        start_date: Optional[date] = Query(None, alias="startDate"),
        end_date: Optional[date] = Query(None, alias="endDate"),
        transaction_type: Optional[str] = Query(None, alias="type"),
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return transaction_service.list_transactions(
            factory, user.user_id, ticker, start_date, end_date, transaction_type
        )
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"list_transactions failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to list transactions")


@router.post(
    "/transactions",
    response_model=TransactionOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[transactions_enabled],
)
def create_transaction(
        payload: TransactionIn,
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    """Record a BUY or SELL and update the position it belongs to."""
    try:
        return transaction_service.record_transaction(factory, user.user_id, payload.model_dump(exclude_unset=True))
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"create_transaction failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to record transaction")


@router.get("/transactions/summary", dependencies=[transactions_enabled])
def transaction_summary(
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return transaction_service.transaction_summary(factory, user.user_id)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"transaction_summary failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to summarise transactions")


@router.get("/transactions/{transaction_id}", response_model=TransactionOut, dependencies=[transactions_enabled])
def get_transaction(
        transaction_id: str,
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return transaction_service.get_transaction(factory, user.user_id, transaction_id)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"get_transaction failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load transaction")


@router.patch("/transactions/{transaction_id}", response_model=TransactionOut, dependencies=[transactions_enabled])
def update_transaction(
        transaction_id: str,
        payload: TransactionPatch,
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return transaction_service.update_transaction(
            factory, user.user_id, transaction_id, payload.model_dump(exclude_unset=True)
        )
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"update_transaction failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to update transaction")


@router.delete("/transactions/{transaction_id}", response_model=SuccessOut, dependencies=[transactions_enabled])
def delete_transaction(
        transaction_id: str,
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        transaction_service.delete_transaction(factory, user.user_id, transaction_id)
        return {"success": True}
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"delete_transaction failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to delete transaction")


@router.get("/transaction-types", response_model=List[TransactionTypeOut])
def list_transaction_types(factory: RepositoryFactory = Depends(get_factory)):
    try:
        return transaction_service.list_transaction_types(factory)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"list_transaction_types failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load transaction types")
