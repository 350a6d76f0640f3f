from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from app.models import Country, User, UserPreferences
from app.repositories.base import BaseRepository, RepositoryError
import logging

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    def __init__(self, db: Session):
        super().__init__(db, User)

    def get_by_email(self, email: str) -> Optional[User]:
        try:
            return (
                self.db.query(User)
                .filter(func.lower(User.email) == email.strip().lower())
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error getting user by email: {e}")
            raise RepositoryError("Failed to get user") from e


class UserPreferencesRepository(BaseRepository[UserPreferences]):
    def __init__(self, db: Session):
        super().__init__(db, UserPreferences)


class CountryRepository(BaseRepository[Country]):
    def __init__(self, db: Session):
        super().__init__(db, Country)

    def get_currency_codes(self) -> List[str]:
        try:
            rows = self.db.query(Country.currency_code).distinct().order_by(Country.currency_code).all()
            return [r[0] for r in rows]
        except SQLAlchemyError as e:
            logger.error(f"Error getting currency codes: {e}")
            raise RepositoryError("Failed to get currencies") from e
