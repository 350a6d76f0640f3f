from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import desc, func, or_
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from app.models import Transaction, TransactionType, TradeLot, RealizedPnLHistory, ImportStaging
from app.repositories.base import BaseRepository, RepositoryError
import logging

logger = logging.getLogger(__name__)


class TransactionTypeRepository(BaseRepository[TransactionType]):
    def __init__(self, db: Session):
        super().__init__(db, TransactionType)

    def get_types(self) -> List[TransactionType]:
        try:
            return self.db.query(TransactionType).order_by(TransactionType.type_id).all()
        except SQLAlchemyError as e:
            logger.error(f"Error getting transaction types: {e}")
            raise RepositoryError("Failed to get transaction types") from e

    def get_by_name(self, type_name: str) -> Optional[TransactionType]:
        try:
            return (
                self.db.query(TransactionType)
                .filter(func.upper(TransactionType.type_name) == type_name.strip().upper())
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error getting transaction type {type_name}: {e}")
            raise RepositoryError("Failed to get transaction type") from e


class TransactionRepository(BaseRepository[Transaction]):
    def __init__(self, db: Session):
        super().__init__(db, Transaction)

    def get_transactions(
        self,
        user_id: str,
        ticker: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        type_name: Optional[str] = None,
    ) -> List[Transaction]:
        """
        User transactions filtered by optional ticker, date range and type.
        """
        try:
            query = self.db.query(Transaction).filter(Transaction.user_id == user_id)

            if ticker:
                query = query.filter(func.upper(Transaction.ticker) == ticker.upper())
            if start:
                query = query.filter(Transaction.transaction_date >= start)
            if end:
                query = query.filter(Transaction.transaction_date <= end)
            if type_name:
                query = query.join(TransactionType).filter(
                    func.upper(TransactionType.type_name) == type_name.upper()
                )

            return query.order_by(desc(Transaction.transaction_date), desc(Transaction.created_at)).all()
        except SQLAlchemyError as e:
            logger.error(f"Error getting transactions for user {user_id}: {e}")
            raise RepositoryError("Failed to get transactions") from e

    def find_duplicate(
        self, user_id: str, ticker: str, transaction_date: date, type_id: int, quantity: float, price: float
    ) -> Optional[Transaction]:
        try:
            return (
                self.db.query(Transaction)
                .filter(
                    Transaction.user_id == user_id,
                    func.upper(Transaction.ticker) == ticker.upper(),
                    Transaction.transaction_date == transaction_date,
                    Transaction.transaction_type_id == type_id,
                    Transaction.quantity == quantity,
                    Transaction.price == price,
                )
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error checking duplicate transaction: {e}")
            raise RepositoryError("Failed to check duplicate transaction") from e


class TradeLotRepository(BaseRepository[TradeLot]):
    def __init__(self, db: Session):
        super().__init__(db, TradeLot)

    def get_lots(self, user_id: str, ticker: Optional[str] = None, status: Optional[str] = None) -> List[TradeLot]:
        """
        Trade lots of a user. An OPEN status filter also matches PARTIAL lots.
        """
        try:
            query = self.db.query(TradeLot).filter(TradeLot.user_id == user_id)
            if ticker:
                query = query.filter(func.upper(TradeLot.ticker) == ticker.upper())
            if status:
                status = status.upper()
                if status == "OPEN":
                    query = query.filter(or_(TradeLot.lot_status == "OPEN", TradeLot.lot_status == "PARTIAL"))
                else:
                    query = query.filter(TradeLot.lot_status == status)
            return query.order_by(desc(TradeLot.entry_date)).all()
        except SQLAlchemyError as e:
            logger.error(f"Error getting trade lots for user {user_id}: {e}")
            raise RepositoryError("Failed to get trade lots") from e


class RealizedPnLRepository(BaseRepository[RealizedPnLHistory]):
    def __init__(self, db: Session):
        super().__init__(db, RealizedPnLHistory)

    def get_history(self, user_id: str) -> List[RealizedPnLHistory]:
        try:
            return (
                self.db.query(RealizedPnLHistory)
                .filter(RealizedPnLHistory.user_id == user_id)
                .order_by(desc(RealizedPnLHistory.sale_date), desc(RealizedPnLHistory.realization_id))
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error getting realized history for user {user_id}: {e}")
            raise RepositoryError("Failed to get realized history") from e

    def get_total_realized(self, user_id: str) -> float:
        try:
            total = (
                self.db.query(func.coalesce(func.sum(RealizedPnLHistory.realized_pnl), 0))
                .filter(RealizedPnLHistory.user_id == user_id)
                .scalar()
            )
            return float(total or 0)
        except SQLAlchemyError as e:
            logger.error(f"Error summing realized P&L for user {user_id}: {e}")
            raise RepositoryError("Failed to sum realized P&L") from e


class ImportStagingRepository(BaseRepository[ImportStaging]):
    REJECTED_STATUSES = ("rejected_duplicate", "rejected_error")

    def __init__(self, db: Session):
        super().__init__(db, ImportStaging)

    def get_staging(self, user_id: str, status: Optional[str] = None) -> List[ImportStaging]:
        try:
            query = self.db.query(ImportStaging).filter(ImportStaging.user_id == user_id)
            if status:
                query = query.filter(ImportStaging.status == status)
            return query.order_by(desc(ImportStaging.created_at), desc(ImportStaging.staging_id)).all()
        except SQLAlchemyError as e:
            logger.error(f"Error getting staging rows for user {user_id}: {e}")
            raise RepositoryError("Failed to get staging rows") from e

    def find_duplicate(
        self, user_id: str, ticker: str, transaction_date: date, type_id: int, quantity: float, price: float
    ) -> Optional[ImportStaging]:
        try:
            return (
                self.db.query(ImportStaging)
                .filter(
                    ImportStaging.user_id == user_id,
                    ImportStaging.ticker == ticker,
                    ImportStaging.transaction_date == transaction_date,
                    ImportStaging.transaction_type_id == type_id,
                    ImportStaging.quantity == quantity,
                    ImportStaging.price == price,
                    ImportStaging.status.notin_(self.REJECTED_STATUSES),
                )
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error checking duplicate staging row: {e}")
            raise RepositoryError("Failed to check duplicate staging row") from e

    def delete_rejected(self, user_id: str) -> int:
        try:
            deleted = (
                self.db.query(ImportStaging)
                .filter(ImportStaging.user_id == user_id, ImportStaging.status.in_(self.REJECTED_STATUSES))
                .delete(synchronize_session=False)
            )
            self.db.commit()
            return int(deleted or 0)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error clearing rejected staging rows for user {user_id}: {e}")
            raise RepositoryError("Failed to clear rejected staging rows") from e
