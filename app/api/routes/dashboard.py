from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.dependencies import get_current_user, get_factory, require_feature
from app.core.exceptions import AppError
from app.core.logger import logger
from app.models import User
from app.repositories.factory import RepositoryFactory
from app.services import cash_movement_service, dividend_service, position_service

router = APIRouter(dependencies=[Depends(require_feature("dashboard"))])


@router.get("/funding")
def dashboard_funding(
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return cash_movement_service.get_balance_summary(factory, user.user_id)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"dashboard_funding failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load funding summary")


@router.get("/investments")
def dashboard_investments(
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return position_service.dashboard_investments(factory, user.user_id)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"dashboard_investments failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load investments")


@router.get("/dividends")
def dashboard_dividends(
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return dividend_service.dashboard_dividends(factory, user.user_id)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"dashboard_dividends failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load dividend summary")


@router.get("/charts")
def dashboard_charts(
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return {"data": position_service.dashboard_charts(factory, user.user_id)}
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"dashboard_charts failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load chart data")


@router.get("/charts/asset-type-details")
def asset_type_details(
        type_code: str = Query(..., alias="typeCode"),
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return position_service.asset_type_details(factory, user.user_id, type_code)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"asset_type_details failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load asset type details")


@router.get("/strategies")
def dashboard_strategies(
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return {"data": position_service.dashboard_strategies(factory, user.user_id)}
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"dashboard_strategies failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load strategies")
