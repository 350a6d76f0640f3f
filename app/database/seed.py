from typing import Any, Dict, List, Type

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.db import Base
from app.core.logger import logger
from app.models import (
    AssetClass,
    AssetType,
    CashMovementDirection,
    Country,
    Exchange,
    NewsType,
    TradeStrategy,
    TransactionType,
)

COUNTRIES = [
    {"country_code": "US", "country_name": "United States", "currency_code": "USD"},
    {"country_code": "AU", "country_name": "Australia", "currency_code": "AUD"},
    {"country_code": "GB", "country_name": "United Kingdom", "currency_code": "GBP"},
    {"country_code": "CA", "country_name": "Canada", "currency_code": "CAD"},
    {"country_code": "DE", "country_name": "Germany", "currency_code": "EUR"},
]

EXCHANGES = [
    {"exchange_code": "NASDAQ", "exchange_name": "Nasdaq Stock Market", "country_code": "US"},
    {"exchange_code": "NYSE", "exchange_name": "New York Stock Exchange", "country_code": "US"},
    {"exchange_code": "ASX", "exchange_name": "Australian Securities Exchange", "country_code": "AU"},
    {"exchange_code": "LSE", "exchange_name": "London Stock Exchange", "country_code": "GB"},
]

DIRECTIONS = [
    {"direction_code": "DEPOSIT", "direction_name": "Deposit", "multiplier": 1},
    {"direction_code": "WITHDRAWAL", "direction_name": "Withdrawal", "multiplier": -1},
]

TRANSACTION_TYPES = [
    {"type_name": "BUY", "type_multiplier": 1},
    {"type_name": "SELL", "type_multiplier": -1},
]

NEWS_TYPES = [
    {"type_code": "EARNINGS", "type_name": "Earnings"},
    {"type_code": "DIVIDEND", "type_name": "Dividend"},
    {"type_code": "CORPORATE_ACTION", "type_name": "Corporate Action"},
    {"type_code": "ANALYST", "type_name": "Analyst Rating"},
    {"type_code": "GENERAL", "type_name": "General"},
]

ASSET_CLASSES = [
    {"class_code": "LONG_TERM", "class_name": "Long Term", "description": "Buy and hold positions"},
    {"class_code": "AGGREGATED", "class_name": "Aggregated", "description": "Positions averaged across trades"},
]

ASSET_TYPES = [
    {"type_code": "STOCK", "type_name": "Stock", "class_code": "LONG_TERM"},
    {"type_code": "ETF", "type_name": "ETF", "class_code": "LONG_TERM"},
    {"type_code": "REIT", "type_name": "REIT", "class_code": "LONG_TERM"},
    {"type_code": "SWING", "type_name": "Swing Trade", "class_code": "AGGREGATED"},
]

STRATEGIES = [
    {"strategy_code": "LONG_TERM", "strategy_name": "Long Term Hold"},
    {"strategy_code": "DIVIDEND", "strategy_name": "Dividend Income"},
    {"strategy_code": "GROWTH", "strategy_name": "Growth"},
    {"strategy_code": "SWING_TRADE", "strategy_name": "Swing Trade"},
]


def _insert_missing(db: Session, model: Type[Base], key: str, rows: List[Dict[str, Any]]) -> int:
    existing = {value for (value,) in db.query(getattr(model, key)).all()}
    missing = [row for row in rows if row[key] not in existing]
    for row in missing:
        db.add(model(**row))
    db.flush()
    return len(missing)


def seed_reference_data(db: Session) -> int:
    """Insert lookup rows that the API relies on. Existing rows are left untouched."""
    try:
        inserted = 0
        inserted += _insert_missing(db, Country, "country_code", COUNTRIES)
        inserted += _insert_missing(db, Exchange, "exchange_code", EXCHANGES)
        inserted += _insert_missing(db, CashMovementDirection, "direction_code", DIRECTIONS)
        inserted += _insert_missing(db, TransactionType, "type_name", TRANSACTION_TYPES)
        inserted += _insert_missing(db, NewsType, "type_code", NEWS_TYPES)
        inserted += _insert_missing(db, AssetClass, "class_code", ASSET_CLASSES)
        inserted += _insert_missing(db, TradeStrategy, "strategy_code", STRATEGIES)

        class_ids = {c.class_code: c.class_id for c in db.query(AssetClass).all()}
        asset_types = [
            {
                "type_code": t["type_code"],
                "type_name": t["type_name"],
                "class_id": class_ids.get(t["class_code"]),
            }
            for t in ASSET_TYPES
        ]
        inserted += _insert_missing(db, AssetType, "type_code", asset_types)

        db.commit()
        logger.info(f"Seeded {inserted} reference rows")
        return inserted
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Seeding reference data failed: {e}")
        raise
