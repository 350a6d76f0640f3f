import uuid
from io import StringIO
from typing import Any, Dict, Iterable, List, Optional

import dateparser
import pandas as pd

from app.core.exceptions import AppError, ValidationError
from app.core.logger import logger
from app.models import ImportStaging
from app.repositories.base import BaseRepository
from app.repositories.factory import RepositoryFactory
from app.services import transaction_service

IMPORTED = "imported"
RELEASED = "released"
REJECTED_DUPLICATE = "rejected_duplicate"
REJECTED_ERROR = "rejected_error"

REQUIRED_COLUMNS = {"date", "type", "ticker", "quantity", "price"}
COLUMN_ALIASES = {"shares": "quantity", "currency": "transaction_currency", "strategy": "strategy_code"}


def _parse_date(value: Any):
    parsed = dateparser.parse(str(value), settings={"DATE_ORDER": "YMD"})
    return parsed.date() if parsed else None


def _read_csv(content: bytes) -> pd.DataFrame:
    try:
        df = pd.read_csv(StringIO(content.decode("utf-8-sig")))
    except (UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise ValidationError(f"Could not read CSV: {e}")

    df = BaseRepository.normalize_header(df).rename(columns=COLUMN_ALIASES)
    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        raise ValidationError(f"CSV must contain columns: {', '.join(sorted(missing))}")

    df = df.dropna(subset=list(REQUIRED_COLUMNS))
    df["date"] = df["date"].apply(_parse_date)
    if df["date"].isna().any():
        bad_rows = df[df["date"].isna()]
        raise ValidationError(f"Incorrect date format in rows: {bad_rows.index.tolist()}")
    return df


def _optional(row: Dict[str, Any], key: str) -> Optional[Any]:
    value = row.get(key)
    if value is None or (isinstance(value, float) and pd.isna(value)) or value == "":
        return None
    return value


def stage_transactions_csv(factory: RepositoryFactory, user_id: str, content: bytes) -> Dict[str, Any]:
    """
    Parse a transactions CSV into the staging table.
    Columns: date, type, ticker, quantity (or shares), price, and optionally
    fees, currency, exchange, strategy and notes.
    A row matching an existing staged or recorded transaction is kept as rejected_duplicate.
    """
    df = _read_csv(content)
    batch_id = str(uuid.uuid4())

    type_repo = factory.get_transaction_type_repository()
    exchanges = {e.exchange_code.upper(): e.exchange_id for e in factory.get_exchange_repository().get_exchanges()}
    staging_repo = factory.get_import_staging_repository()
    transaction_repo = factory.get_transaction_repository()

    counts = {IMPORTED: 0, REJECTED_DUPLICATE: 0, REJECTED_ERROR: 0}
    for i, row in enumerate(df.to_dict(orient="records")):
        ticker = str(row["ticker"]).strip().upper()
        transaction_type = type_repo.get_by_name(str(row["type"]))
        quantity = float(row["quantity"])
        price = float(row["price"])
        exchange_code = _optional(row, "exchange")

        values = {
            "user_id": user_id,
            "import_batch_id": batch_id,
            "ticker": ticker,
            "exchange_id": exchanges.get(str(exchange_code).upper()) if exchange_code else None,
            "transaction_type_id": transaction_type.type_id if transaction_type else None,
            "transaction_date": row["date"],
            "quantity": quantity,
            "price": price,
            "trade_value": quantity * price,
            "fees": float(_optional(row, "fees") or 0),
            "transaction_currency": str(_optional(row, "transaction_currency") or "USD").upper(),
            "strategy_code": _optional(row, "strategy_code"),
            "notes": _optional(row, "notes"),
            "status": IMPORTED,
        }

        if transaction_type is None:
            logger.warning(f"CSV row {i}: unknown transaction type {row['type']}")
            counts[REJECTED_ERROR] += 1
            continue
        if exchange_code and values["exchange_id"] is None:
            values.update(status=REJECTED_ERROR, rejection_reason=f"Unknown exchange {exchange_code}")
        elif staging_repo.find_duplicate(
            user_id, ticker, row["date"], transaction_type.type_id, quantity, price
        ) or transaction_repo.find_duplicate(user_id, ticker, row["date"], transaction_type.type_id, quantity, price):
            values.update(status=REJECTED_DUPLICATE, rejection_reason="Duplicate transaction")

        staging_repo.create(values, commit=False)
        counts[values["status"]] += 1

    factory.db.commit()
    logger.info(f"Staged CSV batch {batch_id} for user {user_id}: {counts}")
    return {
        "batchId": batch_id,
        "imported": counts[IMPORTED],
        "duplicates": counts[REJECTED_DUPLICATE],
        "errors": counts[REJECTED_ERROR],
    }


def list_staging(factory: RepositoryFactory, user_id: str, status: Optional[str] = None) -> List[ImportStaging]:
    return factory.get_import_staging_repository().get_staging(user_id, status)


def _release_row(factory: RepositoryFactory, user_id: str, row: ImportStaging) -> None:
    if not row.strategy_code:
        raise ValidationError("Strategy required")
    strategy = factory.get_trade_strategy_repository().get_by_code(row.strategy_code)
    if strategy is None:
        raise ValidationError(f"Unknown strategy {row.strategy_code}")
    if row.exchange_id is None:
        raise ValidationError("Exchange required")

    transaction_service.record_transaction(
        factory,
        user_id,
        {
            "ticker": row.ticker,
            "exchange_id": row.exchange_id,
            "transaction_type": row.transaction_type_id,
            "transaction_date": row.transaction_date,
            "quantity": row.quantity,
            "price": row.price,
            "fees": row.fees,
            "transaction_currency": row.transaction_currency,
            "notes": row.notes,
        },
        commit=False,
    )
    position = factory.get_position_repository().get_active_position(user_id, row.ticker, row.exchange_id)
    if position is not None and position.strategy_id is None:
        position.strategy_id = strategy.strategy_id


def release_staging(factory: RepositoryFactory, user_id: str, staging_ids: Iterable[int]) -> Dict[str, Any]:
    """
    Record each staged row as a transaction. A row that fails validation is marked
    rejected_error with the reason; the other rows are still released. Commits once at the end.
    """
    repo = factory.get_import_staging_repository()
    released, rejected = [], []

    for staging_id in staging_ids:
        row = repo.get_for_user(staging_id, user_id)
        if row is None or row.status != IMPORTED:
            rejected.append({"staging_id": staging_id, "reason": "Not an imported staging row"})
            continue

        try:
            _release_row(factory, user_id, row)
            row.status = RELEASED
            row.rejection_reason = None
            released.append(staging_id)
        except AppError as e:
            row.status = REJECTED_ERROR
            row.rejection_reason = e.message
            rejected.append({"staging_id": staging_id, "reason": e.message})

    factory.db.commit()
    logger.info(f"Released {len(released)} staging rows for user {user_id}, {len(rejected)} rejected")
    return {"released": released, "rejected": rejected}


def clear_rejected(factory: RepositoryFactory, user_id: str) -> Dict[str, int]:
    deleted = factory.get_import_staging_repository().delete_rejected(user_id)
    logger.info(f"Cleared {deleted} rejected staging rows for user {user_id}")
    return {"deletedCount": deleted}
