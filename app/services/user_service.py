from typing import Any, Dict

from app.core.config import settings
from app.core.exceptions import NotFound
from app.models import User, UserPreferences
from app.repositories.factory import RepositoryFactory
from app.services.validators import normalize_code

PREFERENCE_FIELDS = (
    "default_currency",
    "default_trading_currency",
    "decimal_places",
    "date_format",
    "theme",
    "notifications_enabled",
)


def get_user_data(factory: RepositoryFactory, user_id: str) -> User:
    user = factory.get_user_repository().get(user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def get_preferences(factory: RepositoryFactory, user_id: str) -> UserPreferences:
    """Preferences of the user, created with defaults on first access."""
    repo = factory.get_user_preferences_repository()
    preferences = repo.get(user_id)
    if preferences is None:
        user = get_user_data(factory, user_id)
        preferences = repo.create({
            "user_id": user_id,
            "default_currency": user.home_currency,
            "default_trading_currency": settings.DEFAULT_TRADING_CURRENCY,
        })
    return preferences


def update_preferences(factory: RepositoryFactory, user_id: str, fields: Dict[str, Any]) -> UserPreferences:
    preferences = get_preferences(factory, user_id)
    values = {k: v for k, v in fields.items() if k in PREFERENCE_FIELDS and v is not None}
    for code_field in ("default_currency", "default_trading_currency"):
        if code_field in values:
            values[code_field] = normalize_code(values[code_field], code_field)
    return factory.get_user_preferences_repository().update_obj(preferences, values)
