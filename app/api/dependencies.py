from typing import Callable, Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.core.config import FeatureFlags, settings
from app.core.db import get_db
from app.core.exceptions import FeatureDisabled, Unauthorized
from app.models import User
from app.repositories.factory import RepositoryFactory
from app.services.auth_service import AuthService


def get_factory(db: Session = Depends(get_db)) -> RepositoryFactory:
    return RepositoryFactory(db)


def get_auth_service(factory: RepositoryFactory = Depends(get_factory)) -> AuthService:
    return AuthService(factory)


def get_features() -> FeatureFlags:
    return settings.FEATURES


def session_token(request: Request) -> Optional[str]:
    """Bearer token from the Authorization header, falling back to the session cookie."""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


def get_current_user(
        request: Request,
        auth: AuthService = Depends(get_auth_service),
) -> User:
    user = auth.resolve_session(session_token(request))
    if user is None:
        raise Unauthorized()
    return user


def require_feature(name: str) -> Callable[[FeatureFlags], None]:
    def guard(features: FeatureFlags = Depends(get_features)) -> None:
        feature = features.get(name)
        if not feature.enabled:
            raise FeatureDisabled(feature.message)

    return guard
