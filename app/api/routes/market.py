from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.dependencies import get_features
from app.core.config import FeatureFlags
from app.core.exceptions import AppError
from app.core.logger import logger
from app.schemas.dividends import YahooDividendOut
from app.services import fx_service

router = APIRouter()


@router.get("/currency-conversion")
def currency_conversion(
        from_currency: str = Query(..., alias="from"),
        to_currency: str = Query(..., alias="to"),
        amount: float = 1.0,
):
    try:
        return fx_service.convert(from_currency, to_currency, amount)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"currency_conversion failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to convert currency")


@router.get("/ticker-lookup")
def ticker_lookup(ticker: str):
    try:
        return fx_service.ticker_lookup(ticker)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"ticker_lookup failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to look up ticker")


@router.get("/yahoo-dividend", response_model=YahooDividendOut)
def yahoo_dividend(
        ticker: str,
        ex_dividend_date: Optional[date] = Query(None, alias="exDividendDate"),
):
    try:
        return fx_service.yahoo_dividend(ticker, ex_dividend_date)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"yahoo_dividend failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to fetch dividend data")


@router.get("/features")
def list_features(features: FeatureFlags = Depends(get_features)):
    return features.model_dump()
