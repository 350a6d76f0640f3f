from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import desc
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from app.models import CashMovement, CashMovementDirection
from app.repositories.base import BaseRepository, RepositoryError
import logging

logger = logging.getLogger(__name__)


class CashMovementDirectionRepository(BaseRepository[CashMovementDirection]):
    def __init__(self, db: Session):
        super().__init__(db, CashMovementDirection)

    def get_directions(self) -> List[CashMovementDirection]:
        try:
            return self.db.query(CashMovementDirection).order_by(CashMovementDirection.direction_id).all()
        except SQLAlchemyError as e:
            logger.error(f"Error getting cash movement directions: {e}")
            raise RepositoryError("Failed to get cash movement directions") from e


class CashMovementRepository(BaseRepository[CashMovement]):
    def __init__(self, db: Session):
        super().__init__(db, CashMovement)

    def _user_query(self, user_id: str):
        return self.db.query(CashMovement).filter(CashMovement.user_id == user_id)

    def get_user_movements(self, user_id: str) -> List[CashMovement]:
        """
        All movements of a user, newest first.
        """
        try:
            return (
                self._user_query(user_id)
                .order_by(desc(CashMovement.transaction_date), desc(CashMovement.created_at))
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error getting cash movements for user {user_id}: {e}")
            raise RepositoryError("Failed to get cash movements") from e

    def get_movements_page(self, user_id: str, offset: int, limit: int) -> Tuple[List[CashMovement], int]:
        try:
            query = self._user_query(user_id)
            total = query.count()
            rows = (
                query.order_by(desc(CashMovement.transaction_date), desc(CashMovement.created_at))
                .offset(offset)
                .limit(limit)
                .all()
            )
            return rows, total
        except SQLAlchemyError as e:
            logger.error(f"Error paging cash movements for user {user_id}: {e}")
            raise RepositoryError("Failed to get cash movements") from e

    def get_movements_for_period(
        self,
        user_id: str,
        period_from: date,
        period_to: Optional[date],
    ) -> List[CashMovement]:
        """
        Movements stored with exactly this period window. A missing period_to
        matches only the open period, never a closed one.
        """
        try:
            query = self._user_query(user_id).filter(CashMovement.period_from == period_from)
            if period_to is None:
                query = query.filter(CashMovement.period_to.is_(None))
            else:
                query = query.filter(CashMovement.period_to == period_to)
            return query.order_by(desc(CashMovement.transaction_date)).all()
        except SQLAlchemyError as e:
            logger.error(f"Error getting cash movements for period {period_from}..{period_to}: {e}")
            raise RepositoryError("Failed to get cash movements for period") from e

    def get_distinct_periods(self, user_id: str) -> List[Tuple[date, Optional[date]]]:
        try:
            rows = (
                self.db.query(CashMovement.period_from, CashMovement.period_to)
                .filter(CashMovement.user_id == user_id, CashMovement.period_from.isnot(None))
                .distinct()
                .order_by(CashMovement.period_from, CashMovement.period_to)
                .all()
            )
            return [(r.period_from, r.period_to) for r in rows]
        except SQLAlchemyError as e:
            logger.error(f"Error getting periods for user {user_id}: {e}")
            raise RepositoryError("Failed to get periods") from e

    def get_trading_currencies(self, user_id: str) -> List[str]:
        try:
            rows = (
                self.db.query(CashMovement.trading_currency_code)
                .filter(CashMovement.user_id == user_id)
                .distinct()
                .order_by(CashMovement.trading_currency_code)
                .all()
            )
            return [r[0] for r in rows]
        except SQLAlchemyError as e:
            logger.error(f"Error getting trading currencies for user {user_id}: {e}")
            raise RepositoryError("Failed to get trading currencies") from e
