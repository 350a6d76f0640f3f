from datetime import datetime
from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from app.models import AuthPassword, AuthPasskey, AuthChallenge, AuthSession
from app.repositories.base import BaseRepository, RepositoryError
import logging

logger = logging.getLogger(__name__)


class AuthPasswordRepository(BaseRepository[AuthPassword]):
    def __init__(self, db: Session):
        super().__init__(db, AuthPassword)


class AuthPasskeyRepository(BaseRepository[AuthPasskey]):
    def __init__(self, db: Session):
        super().__init__(db, AuthPasskey)

    def get_user_passkeys(self, user_id: str) -> List[AuthPasskey]:
        try:
            return self.db.query(AuthPasskey).filter(AuthPasskey.user_id == user_id).all()
        except SQLAlchemyError as e:
            logger.error(f"Error getting passkeys for user {user_id}: {e}")
            raise RepositoryError("Failed to get passkeys") from e


class AuthChallengeRepository(BaseRepository[AuthChallenge]):
    def __init__(self, db: Session):
        super().__init__(db, AuthChallenge)

    def get_latest_active(self, user_id: str, purpose: str, now: datetime) -> Optional[AuthChallenge]:
        """
        Most recent unconsumed, unexpired challenge of the given purpose.
        """
        try:
            return (
                self.db.query(AuthChallenge)
                .filter(
                    AuthChallenge.user_id == user_id,
                    AuthChallenge.purpose == purpose,
                    AuthChallenge.consumed.is_(False),
                    AuthChallenge.expires_at > now,
                )
                .order_by(desc(AuthChallenge.expires_at))
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error getting {purpose} challenge for user {user_id}: {e}")
            raise RepositoryError("Failed to get challenge") from e


class AuthSessionRepository(BaseRepository[AuthSession]):
    def __init__(self, db: Session):
        super().__init__(db, AuthSession)

    def get_open_session(self, session_id: str, now: datetime) -> Optional[AuthSession]:
        try:
            return (
                self.db.query(AuthSession)
                .filter(
                    AuthSession.session_id == session_id,
                    AuthSession.session_status == "OPEN",
                    AuthSession.expires_at > now,
                )
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error resolving session: {e}")
            raise RepositoryError("Failed to resolve session") from e

    def close_user_sessions(self, user_id: str, now: datetime) -> int:
        try:
            closed = (
                self.db.query(AuthSession)
                .filter(AuthSession.user_id == user_id, AuthSession.session_status == "OPEN")
                .update(
                    {AuthSession.session_status: "CLOSED", AuthSession.closed_at: now},
                    synchronize_session=False,
                )
            )
            self.db.commit()
            return int(closed or 0)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error closing sessions for user {user_id}: {e}")
            raise RepositoryError("Failed to close sessions") from e
