from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from app.core.config import settings
from app.core.exceptions import NotFound, ValidationError
from app.core.logger import logger
from app.models import CashMovement
from app.repositories.factory import RepositoryFactory
from app.services.validators import normalize_code, paginate, parse_date, parse_number, require_fields

REQUIRED_MOVEMENT_FIELDS = (
    "home_currency_value",
    "spot_rate",
    "transaction_date",
    "direction_id",
    "home_currency_code",
    "trading_currency_code",
    "period_from",
)

NO_PERIOD = "No Period"

PeriodKey = Tuple[Optional[date], Optional[date]]


def format_period_date(value: date) -> str:
    return f"{value:%b} {value.day}, {value.year}"


def period_display(period_from: Optional[date], period_to: Optional[date]) -> str:
    if period_from is None:
        return NO_PERIOD
    end = format_period_date(period_to) if period_to else "Ongoing"
    return f"{format_period_date(period_from)} - {end}"


def _period_sort_key(key: PeriodKey):
    period_from, period_to = key
    return (
        period_from is None,
        period_from or date.min,
        period_to is None,
        period_to or date.max,
    )


def weighted_average_rate(movements: Iterable[CashMovement]) -> Optional[float]:
    """Spot rate weighted by the home-currency amount of each movement."""
    weighted = 0.0
    total = 0.0
    for m in movements:
        amount = abs(float(m.home_currency_value or 0))
        weighted += amount * float(m.spot_rate or 0)
        total += amount
    if total == 0:
        return None
    return weighted / total


def _validated_movement(factory: RepositoryFactory, values: Dict[str, Any]) -> Dict[str, Any]:
    require_fields(values, REQUIRED_MOVEMENT_FIELDS)

    home_value = parse_number(values["home_currency_value"], "home_currency_value", positive=True, allow_zero=False)
    spot_rate = parse_number(values["spot_rate"], "spot_rate", positive=True, allow_zero=False)

    try:
        direction_id = int(values["direction_id"])
    except (TypeError, ValueError):
        raise ValidationError("direction_id must be an integer")
    if factory.get_cash_movement_direction_repository().get(direction_id) is None:
        raise ValidationError(f"Unknown direction_id {direction_id}")

    period_from = parse_date(values["period_from"], "period_from")
    period_to = parse_date(values.get("period_to"), "period_to")
    if period_to is not None and period_to < period_from:
        raise ValidationError("period_to must not be before period_from")

    return {
        "home_currency_code": normalize_code(values["home_currency_code"], "home_currency_code"),
        "home_currency_value": home_value,
        "trading_currency_code": normalize_code(values["trading_currency_code"], "trading_currency_code"),
        "trading_currency_value": home_value * spot_rate,
        "spot_rate": spot_rate,
        "spot_rate_is_actual": bool(values.get("spot_rate_is_actual", True)),
        "direction_id": direction_id,
        "transaction_date": parse_date(values["transaction_date"], "transaction_date"),
        "period_from": period_from,
        "period_to": period_to,
        "notes": values.get("notes") or None,
    }


def create_cash_movement(
    factory: RepositoryFactory,
    user_id: str,
    fields: Dict[str, Any],
    home_currency_code: Optional[str],
    trading_currency_code: Optional[str],
) -> CashMovement:
    """Validate and persist a deposit or withdrawal. The trading value is always derived here."""
    values = {
        **fields,
        "home_currency_code": home_currency_code,
        "trading_currency_code": trading_currency_code,
    }
    row = _validated_movement(factory, values)
    row["user_id"] = user_id

    movement = factory.get_cash_movement_repository().create(row)
    logger.info(f"Created cash movement {movement.cash_movement_id} for user {user_id}")
    return movement


def update_cash_movement(
    factory: RepositoryFactory, user_id: str, movement_id: str, fields: Dict[str, Any]
) -> CashMovement:
    repo = factory.get_cash_movement_repository()
    movement = repo.get_for_user(movement_id, user_id)
    if movement is None:
        raise NotFound("Cash movement not found")

    values = {
        "home_currency_code": movement.home_currency_code,
        "trading_currency_code": movement.trading_currency_code,
        "home_currency_value": movement.home_currency_value,
        "spot_rate": movement.spot_rate,
        "spot_rate_is_actual": movement.spot_rate_is_actual,
        "direction_id": movement.direction_id,
        "transaction_date": movement.transaction_date,
        "period_from": movement.period_from,
        "period_to": movement.period_to,
        "notes": movement.notes,
        **{k: v for k, v in fields.items() if v is not None},
    }
    # an explicit null reopens the period
    if "period_to" in fields:
        values["period_to"] = fields["period_to"]

    row = _validated_movement(factory, values)
    return repo.update_obj(movement, row)


def delete_cash_movement(factory: RepositoryFactory, user_id: str, movement_id: str) -> None:
    if not factory.get_cash_movement_repository().delete_for_user(movement_id, user_id):
        raise NotFound("Cash movement not found")


def get_user_currencies(factory: RepositoryFactory, user_id: str) -> Dict[str, Any]:
    user = factory.get_user_repository().get(user_id)
    if user is None:
        raise NotFound("User not found")

    preferences = factory.get_user_preferences_repository().get(user_id)
    default_trading = (
        preferences.default_trading_currency
        if preferences and preferences.default_trading_currency
        else settings.DEFAULT_TRADING_CURRENCY
    )

    return {
        "home_currency": user.home_currency,
        "trading_currency": default_trading,
        "trading_currencies": factory.get_cash_movement_repository().get_trading_currencies(user_id),
    }


def get_cash_movements(factory: RepositoryFactory, user_id: str) -> List[CashMovement]:
    return factory.get_cash_movement_repository().get_user_movements(user_id)


def get_all_movements_page(
    factory: RepositoryFactory, user_id: str, page: int = 1, page_size: int = settings.DEFAULT_PAGE_SIZE
) -> Dict[str, Any]:
    offset, limit = paginate(page, page_size)
    rows, total = factory.get_cash_movement_repository().get_movements_page(user_id, offset, limit)
    return {"data": rows, "total": total, "page": page, "pageSize": page_size}


def get_unique_periods(factory: RepositoryFactory, user_id: str) -> List[Dict[str, Any]]:
    periods = factory.get_cash_movement_repository().get_distinct_periods(user_id)
    return [
        {
            "period_from": period_from,
            "period_to": period_to,
            "is_current": period_to is None,
            "period_display": period_display(period_from, period_to),
        }
        for period_from, period_to in sorted(set(periods), key=_period_sort_key)
    ]


def get_movements_for_period(
    factory: RepositoryFactory, user_id: str, period_from: date, period_to: Optional[date]
) -> List[CashMovement]:
    return factory.get_cash_movement_repository().get_movements_for_period(user_id, period_from, period_to)


def _summarise(movements: List[CashMovement]) -> Dict[str, Any]:
    stats = {
        "total_deposited_home": 0.0,
        "total_deposited_trading": 0.0,
        "total_withdrawn_home": 0.0,
        "total_withdrawn_trading": 0.0,
        "net_home": 0.0,
        "net_trading": 0.0,
        "deposit_count": 0,
        "withdrawal_count": 0,
        "transaction_count": len(movements),
        "weighted_avg_rate": weighted_average_rate(movements),
    }
    for m in movements:
        multiplier = m.direction.multiplier if m.direction else 1
        home = float(m.home_currency_value or 0)
        trading = float(m.trading_currency_value or 0)

        stats["net_home"] += home * multiplier
        stats["net_trading"] += trading * multiplier
        if multiplier > 0:
            stats["total_deposited_home"] += home
            stats["total_deposited_trading"] += trading
            stats["deposit_count"] += 1
        else:
            stats["total_withdrawn_home"] += abs(home)
            stats["total_withdrawn_trading"] += abs(trading)
            stats["withdrawal_count"] += 1
    return stats


def get_period_stats(factory: RepositoryFactory, user_id: str) -> List[Dict[str, Any]]:
    """
    Per funding period totals, grouped strictly by the stored (period_from, period_to) window.
    Periods are ordered by start date and carry running cumulative net balances.
    """
    groups: Dict[PeriodKey, List[CashMovement]] = {}
    for movement in get_cash_movements(factory, user_id):
        groups.setdefault((movement.period_from, movement.period_to), []).append(movement)

    cumulative_home = 0.0
    cumulative_trading = 0.0
    results = []
    for key in sorted(groups, key=_period_sort_key):
        period_from, period_to = key
        stats = _summarise(groups[key])
        cumulative_home += stats["net_home"]
        cumulative_trading += stats["net_trading"]
        results.append({
            "period_from": period_from,
            "period_to": period_to,
            "is_current": period_from is not None and period_to is None,
            "period_display": period_display(period_from, period_to),
            **stats,
            "cumulative_home": cumulative_home,
            "cumulative_trading": cumulative_trading,
        })
    return results


def get_balance_summary(factory: RepositoryFactory, user_id: str) -> Dict[str, Any]:
    currencies = get_user_currencies(factory, user_id)
    movements = get_cash_movements(factory, user_id)
    stats = _summarise(movements)
    dates = [m.transaction_date for m in movements if m.transaction_date]

    return {
        "totalDeposited": stats["total_deposited_home"],
        "totalWithdrawn": stats["total_withdrawn_home"],
        "netCashBalance": stats["net_home"],
        "currency": currencies["home_currency"],
        "totalDepositedTrading": stats["total_deposited_trading"],
        "totalWithdrawnTrading": stats["total_withdrawn_trading"],
        "netTradingBalance": stats["net_trading"],
        "tradingCurrency": currencies["trading_currency"],
        "weightedAvgRate": stats["weighted_avg_rate"] or 0.0,
        "depositCount": stats["deposit_count"],
        "withdrawalCount": stats["withdrawal_count"],
        "firstTransactionDate": min(dates) if dates else None,
        "lastTransactionDate": max(dates) if dates else None,
    }
