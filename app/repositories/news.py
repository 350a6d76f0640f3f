from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import desc, func
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from app.models import News, NewsType
from app.repositories.base import BaseRepository, RepositoryError
import logging

logger = logging.getLogger(__name__)


class NewsTypeRepository(BaseRepository[NewsType]):
    def __init__(self, db: Session):
        super().__init__(db, NewsType)

    def get_types(self) -> List[NewsType]:
        try:
            return self.db.query(NewsType).order_by(NewsType.type_name).all()
        except SQLAlchemyError as e:
            logger.error(f"Error getting news types: {e}")
            raise RepositoryError("Failed to get news types") from e

    def get_by_name(self, type_name: str) -> Optional[NewsType]:
        try:
            return (
                self.db.query(NewsType)
                .filter(func.lower(NewsType.type_name) == type_name.strip().lower())
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error getting news type {type_name}: {e}")
            raise RepositoryError("Failed to get news type") from e


class NewsRepository(BaseRepository[News]):
    def __init__(self, db: Session):
        super().__init__(db, News)

    def _user_query(self, user_id: str):
        return self.db.query(News).filter(News.user_id == user_id)

    def _page(self, query, offset: int, limit: int) -> Tuple[List[News], int]:
        total = query.count()
        rows = (
            query.order_by(desc(News.news_date), desc(News.created_at))
            .offset(offset)
            .limit(limit)
            .all()
        )
        return rows, total

    def get_page(self, user_id: str, offset: int, limit: int) -> Tuple[List[News], int]:
        try:
            return self._page(self._user_query(user_id), offset, limit)
        except SQLAlchemyError as e:
            logger.error(f"Error paging news for user {user_id}: {e}")
            raise RepositoryError("Failed to get news") from e

    def get_by_ticker_page(self, user_id: str, ticker: str, offset: int, limit: int) -> Tuple[List[News], int]:
        try:
            query = self._user_query(user_id).filter(func.upper(News.ticker) == ticker.upper())
            return self._page(query, offset, limit)
        except SQLAlchemyError as e:
            logger.error(f"Error getting news for ticker {ticker}: {e}")
            raise RepositoryError(f"Failed to get news for {ticker}") from e

    def get_by_type_page(self, user_id: str, news_type_id: int, offset: int, limit: int) -> Tuple[List[News], int]:
        try:
            query = self._user_query(user_id).filter(News.news_type_id == news_type_id)
            return self._page(query, offset, limit)
        except SQLAlchemyError as e:
            logger.error(f"Error getting news for type {news_type_id}: {e}")
            raise RepositoryError("Failed to get news for type") from e

    def get_ticker_summary(self, user_id: str) -> List[dict]:
        try:
            latest = func.max(News.news_date).label("latest_news_date")
            rows = (
                self.db.query(
                    News.ticker,
                    func.max(News.company_name).label("company_name"),
                    func.count(News.news_id).label("total_news"),
                    latest,
                )
                .filter(News.user_id == user_id)
                .group_by(News.ticker)
                .order_by(desc(latest))
                .all()
            )
            return [
                {
                    "ticker": r.ticker,
                    "company_name": r.company_name,
                    "total_news": int(r.total_news),
                    "latest_news_date": r.latest_news_date,
                }
                for r in rows
            ]
        except SQLAlchemyError as e:
            logger.error(f"Error summarising news by ticker: {e}")
            raise RepositoryError("Failed to summarise news by ticker") from e

    def get_type_summary(self, user_id: str) -> List[dict]:
        try:
            total = func.count(News.news_id).label("total_news")
            rows = (
                self.db.query(
                    NewsType.news_type_id,
                    NewsType.type_code,
                    NewsType.type_name,
                    total,
                    func.max(News.news_date).label("latest_news_date"),
                )
                .join(News, News.news_type_id == NewsType.news_type_id)
                .filter(News.user_id == user_id)
                .group_by(NewsType.news_type_id, NewsType.type_code, NewsType.type_name)
                .order_by(desc(total))
                .all()
            )
            return [
                {
                    "news_type_id": r.news_type_id,
                    "type_code": r.type_code,
                    "type_name": r.type_name,
                    "total_news": int(r.total_news),
                    "latest_news_date": r.latest_news_date,
                }
                for r in rows
            ]
        except SQLAlchemyError as e:
            logger.error(f"Error summarising news by type: {e}")
            raise RepositoryError("Failed to summarise news by type") from e

    def get_alerts(self, user_id: str) -> List[News]:
        try:
            return (
                self._user_query(user_id)
                .filter(News.alert_date.isnot(None))
                .order_by(News.alert_date)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error getting alerts for user {user_id}: {e}")
            raise RepositoryError("Failed to get alerts") from e
