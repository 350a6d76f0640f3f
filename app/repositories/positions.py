from typing import List, Optional, Tuple

from sqlalchemy import desc, func
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from app.models import Position, TradeStrategy, AssetClassification, AssetClass, AssetType
from app.repositories.base import BaseRepository, RepositoryError
import logging

logger = logging.getLogger(__name__)


class TradeStrategyRepository(BaseRepository[TradeStrategy]):
    def __init__(self, db: Session):
        super().__init__(db, TradeStrategy)

    def get_strategies(self) -> List[TradeStrategy]:
        try:
            return self.db.query(TradeStrategy).order_by(TradeStrategy.strategy_name).all()
        except SQLAlchemyError as e:
            logger.error(f"Error getting trade strategies: {e}")
            raise RepositoryError("Failed to get trade strategies") from e

    def get_by_code(self, strategy_code: str) -> Optional[TradeStrategy]:
        try:
            return (
                self.db.query(TradeStrategy)
                .filter(func.upper(TradeStrategy.strategy_code) == strategy_code.strip().upper())
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error getting trade strategy {strategy_code}: {e}")
            raise RepositoryError("Failed to get trade strategy") from e


class PositionRepository(BaseRepository[Position]):
    def __init__(self, db: Session):
        super().__init__(db, Position)

    def get_positions(self, user_id: str, is_active: Optional[bool] = None) -> List[Tuple]:
        """
        Positions of a user joined with their classification names.
        Returns (Position, class_name, type_code, type_name) tuples.
        """
        try:
            query = (
                self.db.query(Position, AssetClass.class_name, AssetType.type_code, AssetType.type_name)
                .outerjoin(
                    AssetClassification,
                    (AssetClassification.user_id == Position.user_id)
                    & (AssetClassification.ticker == Position.ticker)
                    & (AssetClassification.exchange_id == Position.exchange_id),
                )
                .outerjoin(AssetClass, AssetClass.class_id == AssetClassification.class_id)
                .outerjoin(AssetType, AssetType.type_id == AssetClassification.type_id)
                .filter(Position.user_id == user_id)
            )
            if is_active is not None:
                query = query.filter(Position.is_active == is_active)
            return query.order_by(desc(Position.is_active), Position.ticker).all()
        except SQLAlchemyError as e:
            logger.error(f"Error getting positions for user {user_id}: {e}")
            raise RepositoryError("Failed to get positions") from e

    def get_active_positions(self, user_id: str) -> List[Position]:
        try:
            return (
                self.db.query(Position)
                .filter(Position.user_id == user_id, Position.is_active.is_(True))
                .order_by(Position.ticker)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error getting active positions for user {user_id}: {e}")
            raise RepositoryError("Failed to get active positions") from e

    def get_active_position(self, user_id: str, ticker: str, exchange_id: Optional[int] = None) -> Optional[Position]:
        try:
            query = self.db.query(Position).filter(
                Position.user_id == user_id,
                func.upper(Position.ticker) == ticker.upper(),
                Position.is_active.is_(True),
            )
            if exchange_id is not None:
                query = query.filter(Position.exchange_id == exchange_id)
            return query.first()
        except SQLAlchemyError as e:
            logger.error(f"Error getting active position for {ticker}: {e}")
            raise RepositoryError(f"Failed to get position for {ticker}") from e

    def get_position(self, user_id: str, ticker: str, exchange_id: int) -> Optional[Position]:
        """
        Latest position row for (user, ticker, exchange), active or not.
        """
        try:
            return (
                self.db.query(Position)
                .filter(
                    Position.user_id == user_id,
                    func.upper(Position.ticker) == ticker.upper(),
                    Position.exchange_id == exchange_id,
                )
                .order_by(desc(Position.is_active), desc(Position.created_at))
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error getting position for {ticker}: {e}")
            raise RepositoryError(f"Failed to get position for {ticker}") from e

    def get_active_with_strategy(self, user_id: str) -> List[Tuple[Position, Optional[TradeStrategy]]]:
        try:
            return (
                self.db.query(Position, TradeStrategy)
                .outerjoin(TradeStrategy, TradeStrategy.strategy_id == Position.strategy_id)
                .filter(Position.user_id == user_id, Position.is_active.is_(True))
                .order_by(Position.ticker)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error getting positions with strategies: {e}")
            raise RepositoryError("Failed to get positions with strategies") from e
