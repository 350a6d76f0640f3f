from typing import Any, Dict, List, Optional

from app.core.exceptions import NotFound, ValidationError
from app.core.logger import logger
from app.managers.cache_manager import CacheManager
from app.models import AssetClassification
from app.repositories.factory import RepositoryFactory
from app.services.validators import normalize_code

REFERENCE_TTL_SECONDS = 3600

reference_cache = CacheManager("reference")


def _as_dicts(rows, columns) -> List[Dict[str, Any]]:
    return [{c: getattr(row, c) for c in columns} for row in rows]


def list_asset_classes(factory: RepositoryFactory) -> List[Dict[str, Any]]:
    return reference_cache.get_or_set(
        lambda: _as_dicts(
            factory.get_asset_class_repository().get_classes(),
            ("class_id", "class_code", "class_name", "description"),
        ),
        "asset_classes",
        ttl=REFERENCE_TTL_SECONDS,
    )


def list_asset_types(factory: RepositoryFactory, class_id: Optional[int] = None) -> List[Dict[str, Any]]:
    return reference_cache.get_or_set(
        lambda: _as_dicts(
            factory.get_asset_type_repository().get_types(class_id),
            ("type_id", "type_code", "type_name", "class_id", "description"),
        ),
        "asset_types",
        class_id if class_id is not None else "all",
        ttl=REFERENCE_TTL_SECONDS,
    )


def list_exchanges(factory: RepositoryFactory) -> List[Dict[str, Any]]:
    return reference_cache.get_or_set(
        lambda: _as_dicts(
            factory.get_exchange_repository().get_exchanges(),
            ("exchange_id", "exchange_code", "exchange_name", "country_code", "exchange_type"),
        ),
        "exchanges",
        ttl=REFERENCE_TTL_SECONDS,
    )


def list_currencies(factory: RepositoryFactory) -> List[str]:
    return reference_cache.get_or_set(
        lambda: factory.get_country_repository().get_currency_codes(),
        "currencies",
        ttl=REFERENCE_TTL_SECONDS,
    )


def classification_row(classification: AssetClassification) -> Dict[str, Any]:
    return {
        "classification_id": classification.classification_id,
        "ticker": classification.ticker,
        "exchange_id": classification.exchange_id,
        "exchange_code": classification.exchange.exchange_code if classification.exchange else None,
        "class_id": classification.class_id,
        "class_name": classification.asset_class.class_name if classification.asset_class else None,
        "type_id": classification.type_id,
        "type_code": classification.asset_type.type_code if classification.asset_type else None,
        "type_name": classification.asset_type.type_name if classification.asset_type else None,
    }


def list_classifications(factory: RepositoryFactory, user_id: str) -> List[Dict[str, Any]]:
    return [
        classification_row(classification)
        for classification, _, _ in factory.get_asset_classification_repository().get_user_classifications(user_id)
    ]


def upsert_classification(factory: RepositoryFactory, user_id: str, fields: Dict[str, Any]) -> AssetClassification:
    try:
        exchange_id = int(fields["exchange_id"])
        class_id = int(fields["class_id"])
    except (KeyError, TypeError, ValueError):
        raise ValidationError("exchange_id and class_id are required integers")
    ticker = normalize_code(fields.get("ticker"), "ticker")

    if factory.get_exchange_repository().get(exchange_id) is None:
        raise ValidationError(f"Unknown exchange_id {exchange_id}")
    if factory.get_asset_class_repository().get(class_id) is None:
        raise ValidationError(f"Unknown class_id {class_id}")

    type_id = fields.get("type_id")
    if type_id is not None:
        asset_type = factory.get_asset_type_repository().get(int(type_id))
        if asset_type is None:
            raise ValidationError(f"Unknown type_id {type_id}")
        if asset_type.class_id is not None and asset_type.class_id != class_id:
            raise ValidationError(f"Asset type {asset_type.type_code} does not belong to class {class_id}")
        type_id = asset_type.type_id

    repo = factory.get_asset_classification_repository()
    repo.upsert(
        {
            "user_id": user_id,
            "ticker": ticker,
            "exchange_id": exchange_id,
            "class_id": class_id,
            "type_id": type_id,
        },
        index_elements=("user_id", "ticker", "exchange_id"),
        update_fields=("class_id", "type_id"),
    )
    logger.info(f"Classified {ticker} on exchange {exchange_id} for user {user_id}")

    classification = repo.get_classification(user_id, ticker, exchange_id)
    factory.db.refresh(classification)
    return classification


def delete_classification(factory: RepositoryFactory, user_id: str, classification_id: str) -> None:
    if not factory.get_asset_classification_repository().delete_for_user(classification_id, user_id):
        raise NotFound("Classification not found")
