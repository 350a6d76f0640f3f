from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from app.models import AssetClass, AssetType, AssetClassification, Exchange
from app.repositories.base import BaseRepository, RepositoryError
import logging

logger = logging.getLogger(__name__)


class ExchangeRepository(BaseRepository[Exchange]):
    def __init__(self, db: Session):
        super().__init__(db, Exchange)

    def get_exchanges(self) -> List[Exchange]:
        try:
            return self.db.query(Exchange).order_by(Exchange.exchange_code).all()
        except SQLAlchemyError as e:
            logger.error(f"Error getting exchanges: {e}")
            raise RepositoryError("Failed to get exchanges") from e


class AssetClassRepository(BaseRepository[AssetClass]):
    def __init__(self, db: Session):
        super().__init__(db, AssetClass)

    def get_classes(self) -> List[AssetClass]:
        try:
            return self.db.query(AssetClass).order_by(AssetClass.class_name).all()
        except SQLAlchemyError as e:
            logger.error(f"Error getting asset classes: {e}")
            raise RepositoryError("Failed to get asset classes") from e


class AssetTypeRepository(BaseRepository[AssetType]):
    def __init__(self, db: Session):
        super().__init__(db, AssetType)

    def get_types(self, class_id: Optional[int] = None) -> List[AssetType]:
        try:
            query = self.db.query(AssetType)
            if class_id is not None:
                query = query.filter(AssetType.class_id == class_id)
            return query.order_by(AssetType.type_name).all()
        except SQLAlchemyError as e:
            logger.error(f"Error getting asset types: {e}")
            raise RepositoryError("Failed to get asset types") from e


class AssetClassificationRepository(BaseRepository[AssetClassification]):
    def __init__(self, db: Session):
        super().__init__(db, AssetClassification)

    def get_classification(
        self, user_id: str, ticker: str, exchange_id: Optional[int] = None
    ) -> Optional[AssetClassification]:
        try:
            query = self.db.query(AssetClassification).filter(
                AssetClassification.user_id == user_id,
                func.upper(AssetClassification.ticker) == ticker.upper(),
            )
            if exchange_id is not None:
                query = query.filter(AssetClassification.exchange_id == exchange_id)
            return query.first()
        except SQLAlchemyError as e:
            logger.error(f"Error getting classification for {ticker}: {e}")
            raise RepositoryError(f"Failed to get classification for {ticker}") from e

    def get_user_classifications(self, user_id: str) -> List[Tuple]:
        """
        (AssetClassification, AssetClass, AssetType) rows of a user.
        """
        try:
            return (
                self.db.query(AssetClassification, AssetClass, AssetType)
                .join(AssetClass, AssetClass.class_id == AssetClassification.class_id)
                .outerjoin(AssetType, AssetType.type_id == AssetClassification.type_id)
                .filter(AssetClassification.user_id == user_id)
                .order_by(AssetClassification.ticker)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error getting classifications for user {user_id}: {e}")
            raise RepositoryError("Failed to get classifications") from e
