from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.dependencies import get_current_user, get_factory
from app.core.exceptions import AppError
from app.core.logger import logger
from app.models import User
from app.repositories.factory import RepositoryFactory
from app.schemas.common import SuccessOut
from app.schemas.dividends import DividendIn, DividendOut, LatestDividendOut, UpcomingDividendOut
from app.services import dividend_service

router = APIRouter()


def _detail_or_summary(result: dict) -> dict:
    if "total" in result:
        result["data"] = [DividendOut.model_validate(r) for r in result["data"]]
    return result


@router.get("/dividends", response_model=List[DividendOut])
def list_dividends(
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return dividend_service.list_dividends(factory, user.user_id)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"list_dividends failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to list dividends")


@router.post("/dividends", response_model=DividendOut, status_code=status.HTTP_201_CREATED)
def create_dividend(
        payload: DividendIn,
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return dividend_service.create_dividend(factory, user.user_id, payload.model_dump(exclude_unset=True))
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"create_dividend failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to create dividend")


@router.get("/dividends/latest", response_model=LatestDividendOut)
def latest_dividend(
        ticker: str,
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return dividend_service.latest_dividend(factory, user.user_id, ticker)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"latest_dividend failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load latest dividend")


@router.get("/dividends/upcoming", response_model=List[UpcomingDividendOut])
def upcoming_dividends(
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return dividend_service.upcoming_dividends(factory, user.user_id)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"upcoming_dividends failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load upcoming dividends")


@router.get("/dividends/open-positions")
def dividend_open_positions(
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return {"data": dividend_service.open_positions_for_dividends(factory, user.user_id)}
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"dividend_open_positions failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load open positions")


@router.get("/dividends/{dividend_id}", response_model=DividendOut)
def get_dividend(
        dividend_id: str,
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return dividend_service.get_dividend(factory, user.user_id, dividend_id)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"get_dividend failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load dividend")


@router.put("/dividends/{dividend_id}", response_model=DividendOut)
def update_dividend(
        dividend_id: str,
        payload: DividendIn,
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return dividend_service.update_dividend(
            factory, user.user_id, dividend_id, payload.model_dump(exclude_unset=True)
        )
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"update_dividend failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to update dividend")


@router.delete("/dividends/{dividend_id}", response_model=SuccessOut)
def delete_dividend(
        dividend_id: str,
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        dividend_service.delete_dividend(factory, user.user_id, dividend_id)
        return {"success": True}
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"delete_dividend failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to delete dividend")


@router.get("/dividends-by-ticker")
def dividends_by_ticker(
        ticker: Optional[str] = None,
        page: int = Query(1, ge=1),
        page_size: int = Query(20, ge=1, le=500, alias="pageSize"),
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    """Paged dividends of one ticker, or the per-ticker summary when no ticker is given."""
    try:
        return _detail_or_summary(
            dividend_service.dividends_by_ticker(factory, user.user_id, ticker, page, page_size)
        )
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"dividends_by_ticker failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load dividends by ticker")


@router.get("/dividends-by-year")
def dividends_by_year(
        year: Optional[int] = None,
        page: int = Query(1, ge=1),
        page_size: int = Query(20, ge=1, le=500, alias="pageSize"),
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return _detail_or_summary(
            dividend_service.dividends_by_year(factory, user.user_id, year, page, page_size)
        )
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"dividends_by_year failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load dividends by year")


@router.get("/dividends-by-quarter")
def dividends_by_quarter(
        year: Optional[int] = None,
        quarter: Optional[int] = None,
        page: int = Query(1, ge=1),
        page_size: int = Query(5, ge=1, le=500, alias="pageSize"),
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return _detail_or_summary(
            dividend_service.dividends_by_quarter(factory, user.user_id, year, quarter, page, page_size)
        )
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"dividends_by_quarter failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load dividends by quarter")
