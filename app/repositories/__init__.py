from app.repositories.base import BaseRepository, RepositoryError
from app.repositories.cash_movements import CashMovementRepository, CashMovementDirectionRepository
from app.repositories.dividends import DividendRepository
from app.repositories.news import NewsRepository, NewsTypeRepository
from app.repositories.positions import PositionRepository, TradeStrategyRepository
from app.repositories.transactions import TransactionRepository, TradeLotRepository, RealizedPnLRepository
from app.repositories.factory import RepositoryFactory

__all__ = [
    "BaseRepository",
    "RepositoryError",
    "CashMovementRepository",
    "CashMovementDirectionRepository",
    "DividendRepository",
    "NewsRepository",
    "NewsTypeRepository",
    "PositionRepository",
    "TradeStrategyRepository",
    "TransactionRepository",
    "TradeLotRepository",
    "RealizedPnLRepository",
    "RepositoryFactory",
]
