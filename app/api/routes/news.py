from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.dependencies import get_current_user, get_factory
from app.core.exceptions import AppError
from app.core.logger import logger
from app.models import User
from app.repositories.factory import RepositoryFactory
from app.schemas.common import Page, SuccessOut
from app.schemas.news import NewsIn, NewsOut, NewsTypeOut
from app.services import news_service

router = APIRouter()


@router.get("/news/types", response_model=List[NewsTypeOut])
def list_news_types(factory: RepositoryFactory = Depends(get_factory)):
    try:
        return news_service.news_types(factory)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"list_news_types failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load news types")


@router.get("/news/all-news", response_model=Page[NewsOut])
def all_news(
        page: int = Query(1, ge=1),
        page_size: int = Query(20, ge=1, le=500, alias="pageSize"),
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return news_service.all_news(factory, user.user_id, page, page_size)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"all_news failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load news")


@router.post("/news", response_model=NewsOut, status_code=status.HTTP_201_CREATED)
def create_news(
        payload: NewsIn,
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return news_service.create_news(factory, user.user_id, payload.model_dump(exclude_unset=True))
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"create_news failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to create news")


@router.get("/news/{news_id}", response_model=NewsOut)
def get_news(
        news_id: str,
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return news_service.get_news(factory, user.user_id, news_id)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"get_news failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load news")


@router.put("/news/{news_id}", response_model=NewsOut)
def update_news(
        news_id: str,
        payload: NewsIn,
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return news_service.update_news(factory, user.user_id, news_id, payload.model_dump(exclude_unset=True))
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"update_news failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to update news")


@router.delete("/news/{news_id}", response_model=SuccessOut)
def delete_news(
        news_id: str,
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        news_service.delete_news(factory, user.user_id, news_id)
        return {"success": True}
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"delete_news failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to delete news")


@router.get("/news-by-ticker")
def news_by_ticker(
        ticker: Optional[str] = None,
        page: int = Query(1, ge=1),
        page_size: int = Query(20, ge=1, le=500, alias="pageSize"),
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    """Paged news of one ticker, or per-ticker counts when no ticker is given."""
    try:
        result = news_service.news_by_ticker(factory, user.user_id, ticker, page, page_size)
        if "total" in result:
            result["data"] = [NewsOut.model_validate(r) for r in result["data"]]
        return result
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"news_by_ticker failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load news by ticker")


@router.get("/news-by-type")
def news_by_type(
        type_name: Optional[str] = Query(None, alias="typeName"),
        page: int = Query(1, ge=1),
        page_size: int = Query(20, ge=1, le=500, alias="pageSize"),
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        result = news_service.news_by_type(factory, user.user_id, type_name, page, page_size)
        if "total" in result:
            result["data"] = [NewsOut.model_validate(r) for r in result["data"]]
        return result
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"news_by_type failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load news by type")


@router.get("/alerts")
def get_alerts(
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return news_service.alerts(factory, user.user_id)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"get_alerts failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to load alerts")


@router.get("/has-open-position")
def has_open_position(
        ticker: str,
        user: User = Depends(get_current_user),
        factory: RepositoryFactory = Depends(get_factory),
):
    try:
        return {"ticker": ticker.upper(), "hasOpenPosition": news_service.has_open_position(factory, user.user_id, ticker)}
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"has_open_position failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to check open position")
