from app.models.user import Country, User, UserPreferences
from app.models.asset import Exchange, AssetClass, AssetType, AssetClassification
from app.models.cash_movement import CashMovementDirection, CashMovement
from app.models.dividend import Dividend
from app.models.news import NewsType, News
from app.models.position import TradeStrategy, Position
from app.models.transaction import TransactionType, Transaction, TradeLot, RealizedPnLHistory, ImportStaging
from app.models.auth import AuthPassword, AuthPasskey, AuthChallenge, AuthSession

__all__ = [
    "Country",
    "User",
    "UserPreferences",
    "Exchange",
    "AssetClass",
    "AssetType",
    "AssetClassification",
    "CashMovementDirection",
    "CashMovement",
    "Dividend",
    "NewsType",
    "News",
    "TradeStrategy",
    "Position",
    "TransactionType",
    "Transaction",
    "TradeLot",
    "RealizedPnLHistory",
    "ImportStaging",
    "AuthPassword",
    "AuthPasskey",
    "AuthChallenge",
    "AuthSession",
]
