from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import desc, func
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from app.models import Dividend
from app.repositories.base import BaseRepository, RepositoryError
import logging

logger = logging.getLogger(__name__)


class DividendRepository(BaseRepository[Dividend]):
    def __init__(self, db: Session):
        super().__init__(db, Dividend)

    def _user_query(self, user_id: str):
        return self.db.query(Dividend).filter(Dividend.user_id == user_id)

    def get_user_dividends(self, user_id: str) -> List[Dividend]:
        try:
            return self._user_query(user_id).order_by(desc(Dividend.ex_dividend_date)).all()
        except SQLAlchemyError as e:
            logger.error(f"Error getting dividends for user {user_id}: {e}")
            raise RepositoryError("Failed to get dividends") from e

    def get_by_ticker_page(
        self, user_id: str, ticker: str, offset: int, limit: int
    ) -> Tuple[List[Dividend], int]:
        """
        Dividends of one ticker, latest payment first.
        """
        try:
            query = self._user_query(user_id).filter(func.upper(Dividend.ticker) == ticker.upper())
            total = query.count()
            rows = (
                query.order_by(desc(Dividend.payment_date), desc(Dividend.ex_dividend_date))
                .offset(offset)
                .limit(limit)
                .all()
            )
            return rows, total
        except SQLAlchemyError as e:
            logger.error(f"Error getting dividends for ticker {ticker}: {e}")
            raise RepositoryError(f"Failed to get dividends for {ticker}") from e

    def get_by_ex_date_range_page(
        self, user_id: str, start: date, end: date, offset: int, limit: int
    ) -> Tuple[List[Dividend], int]:
        """
        Dividends whose ex-dividend date falls in [start, end), latest first.
        """
        try:
            query = self._user_query(user_id).filter(
                Dividend.ex_dividend_date >= start, Dividend.ex_dividend_date < end
            )
            total = query.count()
            rows = query.order_by(desc(Dividend.ex_dividend_date)).offset(offset).limit(limit).all()
            return rows, total
        except SQLAlchemyError as e:
            logger.error(f"Error getting dividends between {start} and {end}: {e}")
            raise RepositoryError("Failed to get dividends for range") from e

    def get_latest_for_ticker(self, user_id: str, ticker: str) -> Optional[Dividend]:
        try:
            return (
                self._user_query(user_id)
                .filter(func.upper(Dividend.ticker) == ticker.upper())
                .order_by(desc(Dividend.ex_dividend_date))
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error getting latest dividend for {ticker}: {e}")
            raise RepositoryError(f"Failed to get latest dividend for {ticker}") from e

    def get_upcoming(self, user_id: str, after: date, limit: int = 20) -> List[Dividend]:
        try:
            return (
                self._user_query(user_id)
                .filter(Dividend.ex_dividend_date > after)
                .order_by(Dividend.ex_dividend_date)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error getting upcoming dividends: {e}")
            raise RepositoryError("Failed to get upcoming dividends") from e
