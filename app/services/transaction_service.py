from datetime import date
from typing import Any, Dict, List, Optional

from app.core.exceptions import NotFound, ValidationError
from app.core.logger import logger
from app.models import RealizedPnLHistory, TradeLot, Transaction
from app.repositories.factory import RepositoryFactory
from app.services import position_service
from app.services.validators import normalize_code, parse_date, parse_number, require_fields

REQUIRED_TRANSACTION_FIELDS = ("ticker", "exchange_id", "transaction_type", "transaction_date", "quantity", "price")
UPDATABLE_TRANSACTION_FIELDS = ("notes", "fees")
CLOSABLE_LOT_STATUSES = ("OPEN", "PARTIAL")


def _resolve_type(factory: RepositoryFactory, value: Any):
    repo = factory.get_transaction_type_repository()
    transaction_type = repo.get(int(value)) if str(value).isdigit() else repo.get_by_name(str(value))
    if transaction_type is None:
        raise ValidationError(f"Unknown transaction type {value}")
    return transaction_type


def _transaction_values(factory: RepositoryFactory, values: Dict[str, Any]) -> Dict[str, Any]:
    require_fields(values, REQUIRED_TRANSACTION_FIELDS)

    try:
        exchange_id = int(values["exchange_id"])
    except (TypeError, ValueError):
        raise ValidationError("exchange_id must be an integer")

    quantity = parse_number(values["quantity"], "quantity", positive=True, allow_zero=False)
    price = parse_number(values["price"], "price", positive=True, allow_zero=False)
    fees = parse_number(values.get("fees") or 0, "fees", positive=True)

    return {
        "ticker": normalize_code(values["ticker"], "ticker"),
        "exchange_id": exchange_id,
        "transaction_type_id": _resolve_type(factory, values["transaction_type"]).type_id,
        "transaction_date": parse_date(values["transaction_date"], "transaction_date"),
        "quantity": quantity,
        "price": price,
        "trade_value": quantity * price,
        "fees": fees,
        "transaction_currency": normalize_code(values.get("transaction_currency") or "USD", "transaction_currency"),
        "notes": values.get("notes") or None,
    }


def record_transaction(
    factory: RepositoryFactory,
    user_id: str,
    fields: Dict[str, Any],
    commit: bool = True,
) -> Transaction:
    """
    Record a BUY or SELL and apply it to the position in one unit of work.
    A BUY opens a trade lot; a SELL books realized P&L against the average cost.
    The ticker must have an asset classification on that exchange.
    """
    row = _transaction_values(factory, fields)
    ticker, exchange_id = row["ticker"], row["exchange_id"]

    if factory.get_asset_classification_repository().get_classification(user_id, ticker, exchange_id) is None:
        raise ValidationError(f"{ticker} has no asset classification; classify it before recording transactions")

    transaction_type = factory.get_transaction_type_repository().get(row["transaction_type_id"])
    if transaction_type.type_name != "BUY":
        position_service.ensure_can_sell(factory, user_id, ticker, exchange_id, row["quantity"])

    db = factory.db
    try:
        transaction = factory.get_transaction_repository().create({**row, "user_id": user_id}, commit=False)

        if transaction_type.type_name == "BUY":
            position = position_service.aggregate_to_position(
                factory,
                user_id,
                ticker,
                exchange_id,
                row["quantity"],
                row["price"],
                row["transaction_date"],
                currency=row["transaction_currency"],
                ticker_name=fields.get("ticker_name"),
                commit=False,
            )
            lot = factory.get_trade_lot_repository().create(
                {
                    "user_id": user_id,
                    "ticker": ticker,
                    "exchange_id": exchange_id,
                    "entry_date": row["transaction_date"],
                    "entry_price": row["price"],
                    "quantity": row["quantity"],
                    "entry_fees": row["fees"],
                    "entry_transaction_id": transaction.transaction_id,
                    "lot_status": "OPEN",
                    "trade_strategy": position.strategy_id,
                    "trade_currency": row["transaction_currency"],
                },
                commit=False,
            )
            transaction.trade_lot_id = lot.lot_id
        else:
            position_service.reduce_position(
                factory,
                user_id,
                ticker,
                exchange_id,
                row["quantity"],
                row["price"],
                row["transaction_date"],
                fees=row["fees"],
                commit=False,
            )

        if commit:
            db.commit()
        else:
            db.flush()
    except Exception:
        if commit:
            db.rollback()
        raise

    db.refresh(transaction)
    logger.info(
        f"Recorded {transaction_type.type_name} {row['quantity']:g} {ticker} @ {row['price']} for user {user_id}"
    )
    return transaction


def list_transactions(
    factory: RepositoryFactory,
    user_id: str,
    ticker: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    transaction_type: Optional[str] = None,
) -> List[Transaction]:
    return factory.get_transaction_repository().get_transactions(user_id, ticker, start, end, transaction_type)


def get_transaction(factory: RepositoryFactory, user_id: str, transaction_id: str) -> Transaction:
    transaction = factory.get_transaction_repository().get_for_user(transaction_id, user_id)
    if transaction is None:
        raise NotFound("Transaction not found")
    return transaction


def update_transaction(
    factory: RepositoryFactory, user_id: str, transaction_id: str, fields: Dict[str, Any]
) -> Transaction:
    """Only notes and fees are editable; quantities and prices are fixed once recorded."""
    locked = sorted(k for k, v in fields.items() if k not in UPDATABLE_TRANSACTION_FIELDS and v is not None)
    if locked:
        raise ValidationError(f"Only notes and fees can be updated, got: {', '.join(locked)}")

    transaction = get_transaction(factory, user_id, transaction_id)
    values: Dict[str, Any] = {}
    if fields.get("fees") is not None:
        values["fees"] = parse_number(fields["fees"], "fees", positive=True)
    if "notes" in fields:
        values["notes"] = fields["notes"] or None
    return factory.get_transaction_repository().update_obj(transaction, values)


def delete_transaction(factory: RepositoryFactory, user_id: str, transaction_id: str) -> None:
    if not factory.get_transaction_repository().delete_for_user(transaction_id, user_id):
        raise NotFound("Transaction not found")


def list_transaction_types(factory: RepositoryFactory):
    return factory.get_transaction_type_repository().get_types()


def transaction_summary(factory: RepositoryFactory, user_id: str) -> Dict[str, Any]:
    summary = {
        "transactionCount": 0,
        "buyCount": 0,
        "sellCount": 0,
        "totalBought": 0.0,
        "totalSold": 0.0,
        "totalFees": 0.0,
    }
    for t in factory.get_transaction_repository().get_transactions(user_id):
        summary["transactionCount"] += 1
        summary["totalFees"] += float(t.fees or 0)
        if t.transaction_type.type_name == "BUY":
            summary["buyCount"] += 1
            summary["totalBought"] += float(t.trade_value or 0)
        else:
            summary["sellCount"] += 1
            summary["totalSold"] += float(t.trade_value or 0)
    return summary


def list_trade_lots(
    factory: RepositoryFactory, user_id: str, ticker: Optional[str] = None, status: Optional[str] = None
) -> List[TradeLot]:
    return factory.get_trade_lot_repository().get_lots(user_id, ticker, status)


def close_trade_lot(factory: RepositoryFactory, user_id: str, lot_id: str, fields: Dict[str, Any]) -> TradeLot:
    """
    Close a lot at the exit price.
    realized = (exit * qty - exit_fees) - (entry * qty + entry_fees), percent is over the entry cost.
    """
    repo = factory.get_trade_lot_repository()
    lot = repo.get_for_user(lot_id, user_id)
    if lot is None:
        raise NotFound("Trade lot not found")
    if lot.lot_status not in CLOSABLE_LOT_STATUSES:
        raise ValidationError("Trade lot is already closed")

    require_fields(fields, ("exit_date", "exit_price"))
    exit_date = parse_date(fields["exit_date"], "exit_date")
    exit_price = parse_number(fields["exit_price"], "exit_price", positive=True, allow_zero=False)
    exit_fees = parse_number(fields.get("exit_fees") or 0, "exit_fees", positive=True)
    if exit_date < lot.entry_date:
        raise ValidationError("exit_date must not be before entry_date")

    quantity = float(lot.quantity)
    total_entry = float(lot.entry_price) * quantity + float(lot.entry_fees or 0)
    total_exit = exit_price * quantity - exit_fees
    realized = total_exit - total_entry

    return repo.update_obj(lot, {
        "exit_date": exit_date,
        "exit_price": exit_price,
        "exit_fees": exit_fees,
        "exit_transaction_id": fields.get("exit_transaction_id"),
        "lot_status": "CLOSED",
        "realized_pl": realized,
        "realized_pl_percent": realized / total_entry * 100 if total_entry else 0.0,
        "trade_hold_days": (exit_date - lot.entry_date).days,
    })


def list_realized_history(factory: RepositoryFactory, user_id: str) -> List[RealizedPnLHistory]:
    return factory.get_realized_pnl_repository().get_history(user_id)


def update_realized(
    factory: RepositoryFactory, user_id: str, realization_id: int, fields: Dict[str, Any]
) -> RealizedPnLHistory:
    """Edit a realization; cost, proceeds and P&L are recomputed from quantity and prices."""
    repo = factory.get_realized_pnl_repository()
    record = repo.get_for_user(realization_id, user_id)
    if record is None:
        raise NotFound("Realized P&L record not found")

    def pick(name):
        return fields[name] if fields.get(name) is not None else getattr(record, name)

    quantity = parse_number(pick("quantity"), "quantity", positive=True, allow_zero=False)
    average_cost = parse_number(pick("average_cost"), "average_cost", positive=True)
    sale_price = parse_number(pick("sale_price"), "sale_price", positive=True)
    total_cost = quantity * average_cost
    total_proceeds = quantity * sale_price

    values = {
        "quantity": quantity,
        "average_cost": average_cost,
        "sale_price": sale_price,
        "sale_date": parse_date(pick("sale_date"), "sale_date"),
        "fees": parse_number(pick("fees") or 0, "fees", positive=True),
        "total_cost": total_cost,
        "total_proceeds": total_proceeds,
        "realized_pnl": total_proceeds - total_cost,
    }
    if "notes" in fields:
        values["notes"] = fields["notes"] or None
    return repo.update_obj(record, values)
