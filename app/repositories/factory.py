from typing import Type, TypeVar, Dict
from sqlalchemy.orm import Session
from app.repositories.base import BaseRepository
from app.repositories.auth import (
    AuthPasswordRepository,
    AuthPasskeyRepository,
    AuthChallengeRepository,
    AuthSessionRepository,
)
from app.repositories.cash_movements import CashMovementRepository, CashMovementDirectionRepository
from app.repositories.classifications import (
    AssetClassRepository,
    AssetTypeRepository,
    AssetClassificationRepository,
    ExchangeRepository,
)
from app.repositories.dividends import DividendRepository
from app.repositories.news import NewsRepository, NewsTypeRepository
from app.repositories.positions import PositionRepository, TradeStrategyRepository
from app.repositories.transactions import (
    TransactionRepository,
    TransactionTypeRepository,
    TradeLotRepository,
    RealizedPnLRepository,
    ImportStagingRepository,
)
from app.repositories.users import UserRepository, UserPreferencesRepository, CountryRepository

T = TypeVar('T', bound=BaseRepository)


class RepositoryFactory:
    """
    Factory class for creating repository instances with dependency injection.
    Provides a centralized way to manage repository creation and configuration.
    """

    _repository_mapping: Dict[str, Type[BaseRepository]] = {
        'users': UserRepository,
        'user_preferences': UserPreferencesRepository,
        'countries': CountryRepository,
        'cash_movements': CashMovementRepository,
        'cash_movement_directions': CashMovementDirectionRepository,
        'dividends': DividendRepository,
        'news': NewsRepository,
        'news_types': NewsTypeRepository,
        'positions': PositionRepository,
        'trade_strategies': TradeStrategyRepository,
        'transactions': TransactionRepository,
        'transaction_types': TransactionTypeRepository,
        'trade_lots': TradeLotRepository,
        'realized_pnl': RealizedPnLRepository,
        'import_staging': ImportStagingRepository,
        'exchanges': ExchangeRepository,
        'asset_classes': AssetClassRepository,
        'asset_types': AssetTypeRepository,
        'asset_classifications': AssetClassificationRepository,
        'auth_passwords': AuthPasswordRepository,
        'auth_passkeys': AuthPasskeyRepository,
        'auth_challenges': AuthChallengeRepository,
        'auth_sessions': AuthSessionRepository,
    }

    def __init__(self, db: Session):
        self.db = db
        self._instances: Dict[str, BaseRepository] = {}

    def get_repository(self, repository_name: str) -> BaseRepository:
        """
        Get a repository instance by name. Creates a singleton instance per factory.

        Args:
            repository_name: Name of the repository ('positions', 'dividends', etc.)

        Returns:
            Repository instance

        Raises:
            ValueError: If repository name is not recognized
        """
        if repository_name not in self._repository_mapping:
            available = ', '.join(self._repository_mapping.keys())
            raise ValueError(f"Unknown repository '{repository_name}'. Available: {available}")

        if repository_name not in self._instances:
            repository_class = self._repository_mapping[repository_name]
            self._instances[repository_name] = repository_class(self.db)

        return self._instances[repository_name]

    def get_user_repository(self) -> UserRepository:
        return self.get_repository('users')

    def get_user_preferences_repository(self) -> UserPreferencesRepository:
        return self.get_repository('user_preferences')

    def get_country_repository(self) -> CountryRepository:
        return self.get_repository('countries')

    def get_cash_movement_repository(self) -> CashMovementRepository:
        return self.get_repository('cash_movements')

    def get_cash_movement_direction_repository(self) -> CashMovementDirectionRepository:
        return self.get_repository('cash_movement_directions')

    def get_dividend_repository(self) -> DividendRepository:
        return self.get_repository('dividends')

    def get_news_repository(self) -> NewsRepository:
        return self.get_repository('news')

    def get_news_type_repository(self) -> NewsTypeRepository:
        return self.get_repository('news_types')

    def get_position_repository(self) -> PositionRepository:
        return self.get_repository('positions')

    def get_trade_strategy_repository(self) -> TradeStrategyRepository:
        return self.get_repository('trade_strategies')

    def get_transaction_repository(self) -> TransactionRepository:
        return self.get_repository('transactions')

    def get_transaction_type_repository(self) -> TransactionTypeRepository:
        return self.get_repository('transaction_types')

    def get_trade_lot_repository(self) -> TradeLotRepository:
        return self.get_repository('trade_lots')

    def get_realized_pnl_repository(self) -> RealizedPnLRepository:
        return self.get_repository('realized_pnl')

    def get_import_staging_repository(self) -> ImportStagingRepository:
        return self.get_repository('import_staging')

    def get_exchange_repository(self) -> ExchangeRepository:
        return self.get_repository('exchanges')

    def get_asset_class_repository(self) -> AssetClassRepository:
        return self.get_repository('asset_classes')

    def get_asset_type_repository(self) -> AssetTypeRepository:
        return self.get_repository('asset_types')

    def get_asset_classification_repository(self) -> AssetClassificationRepository:
        return self.get_repository('asset_classifications')

    def get_auth_password_repository(self) -> AuthPasswordRepository:
        return self.get_repository('auth_passwords')

    def get_auth_passkey_repository(self) -> AuthPasskeyRepository:
        return self.get_repository('auth_passkeys')

    def get_auth_challenge_repository(self) -> AuthChallengeRepository:
        return self.get_repository('auth_challenges')

    def get_auth_session_repository(self) -> AuthSessionRepository:
        return self.get_repository('auth_sessions')

