from collections import defaultdict
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Tuple

from app.clients.yfinance_client import fetch_current_price
from app.core.exceptions import AppError, NotFound, ValidationError
from app.core.logger import logger
from app.models import Position, RealizedPnLHistory
from app.repositories.factory import RepositoryFactory

UNCLASSIFIED = "UNCLASSIFIED"
UNASSIGNED = "UNASSIGNED"
SHARE_TOLERANCE = 1e-9


def position_row(position: Position, class_name=None, type_code=None, type_name=None) -> Dict[str, Any]:
    shares = float(position.total_shares or 0)
    average_cost = float(position.average_cost or 0)
    return {
        "position_id": position.position_id,
        "ticker": position.ticker,
        "ticker_name": position.ticker_name,
        "exchange_id": position.exchange_id,
        "total_shares": shares,
        "average_cost": average_cost,
        "capital_invested": shares * average_cost,
        "current_market_price": position.current_market_price,
        "current_value": position.current_value,
        "unrealized_pnl": position.unrealized_pnl,
        "realized_pnl": position.realized_pnl,
        "position_currency": position.position_currency,
        "is_active": position.is_active,
        "opened_date": position.opened_date,
        "closed_date": position.closed_date,
        "strategy_id": position.strategy_id,
        "class_name": class_name,
        "type_code": type_code,
        "type_name": type_name,
    }


def list_positions(factory: RepositoryFactory, user_id: str, is_active: Optional[bool] = None) -> List[Dict[str, Any]]:
    return [
        position_row(position, class_name, type_code, type_name)
        for position, class_name, type_code, type_name in factory.get_position_repository().get_positions(
            user_id, is_active
        )
    ]


def get_active_position(factory: RepositoryFactory, user_id: str, ticker: str) -> Optional[Position]:
    return factory.get_position_repository().get_active_position(user_id, ticker)


def aggregate_to_position(
    factory: RepositoryFactory,
    user_id: str,
    ticker: str,
    exchange_id: int,
    quantity: float,
    price: float,
    trade_date: date,
    currency: str = "USD",
    ticker_name: Optional[str] = None,
    commit: bool = True,
) -> Position:
    """
    Add a BUY to the user's position, creating or reactivating it.
    Average cost is weighted by share count: (shares*avg + qty*price) / (shares + qty).
    """
    repo = factory.get_position_repository()
    position = repo.get_position(user_id, ticker, exchange_id)

    if position is None:
        return repo.create(
            {
                "user_id": user_id,
                "ticker": ticker,
                "exchange_id": exchange_id,
                "ticker_name": ticker_name,
                "total_shares": quantity,
                "average_cost": price,
                "realized_pnl": 0,
                "position_currency": currency,
                "is_active": True,
                "opened_date": trade_date,
            },
            commit=commit,
        )

    values: Dict[str, Any] = {}
    shares = float(position.total_shares or 0)
    average_cost = float(position.average_cost or 0)
    if not position.is_active:
        shares, average_cost = 0.0, 0.0
        values.update({"is_active": True, "opened_date": trade_date, "closed_date": None})

    new_shares = shares + quantity
    values["total_shares"] = new_shares
    values["average_cost"] = (shares * average_cost + quantity * price) / new_shares
    if ticker_name and not position.ticker_name:
        values["ticker_name"] = ticker_name
    if position.current_market_price is not None:
        values["current_value"] = new_shares * float(position.current_market_price)
        values["unrealized_pnl"] = values["current_value"] - new_shares * values["average_cost"]

    return repo.update_obj(position, values, commit=commit)


def ensure_can_sell(
    factory: RepositoryFactory, user_id: str, ticker: str, exchange_id: int, quantity: float
) -> Position:
    position = factory.get_position_repository().get_active_position(user_id, ticker, exchange_id)
    held = float(position.total_shares or 0) if position else 0.0
    if position is None or quantity > held + SHARE_TOLERANCE:
        raise ValidationError(f"Insufficient shares: holding {held:g} {ticker.upper()}, selling {quantity:g}")
    return position


def reduce_position(
    factory: RepositoryFactory,
    user_id: str,
    ticker: str,
    exchange_id: int,
    quantity: float,
    price: float,
    sale_date: date,
    fees: float = 0.0,
    commit: bool = True,
) -> Tuple[Position, RealizedPnLHistory]:
    """
    Apply a SELL against the active position and record the realization.
    Realized P&L is (price - average cost) * quantity - fees.
    """
    repo = factory.get_position_repository()
    position = ensure_can_sell(factory, user_id, ticker, exchange_id, quantity)
    held = float(position.total_shares or 0)

    average_cost = float(position.average_cost or 0)
    total_cost = quantity * average_cost
    total_proceeds = quantity * price
    realized = total_proceeds - total_cost - fees

    history = factory.get_realized_pnl_repository().create(
        {
            "user_id": user_id,
            "position_id": position.position_id,
            "ticker": position.ticker,
            "sale_date": sale_date,
            "quantity": quantity,
            "average_cost": average_cost,
            "total_cost": total_cost,
            "sale_price": price,
            "total_proceeds": total_proceeds,
            "realized_pnl": total_proceeds - total_cost,
            "fees": fees,
        },
        commit=False,
    )

    remaining = held - quantity
    values: Dict[str, Any] = {
        "total_shares": 0 if abs(remaining) <= SHARE_TOLERANCE else remaining,
        "realized_pnl": float(position.realized_pnl or 0) + realized,
    }
    if abs(remaining) <= SHARE_TOLERANCE:
        values.update({
            "is_active": False,
            "closed_date": sale_date,
            "current_value": 0,
            "unrealized_pnl": 0,
        })
    elif position.current_market_price is not None:
        values["current_value"] = remaining * float(position.current_market_price)
        values["unrealized_pnl"] = values["current_value"] - remaining * average_cost

    position = repo.update_obj(position, values, commit=commit)
    logger.info(f"Reduced {position.ticker} by {quantity:g} shares, realized {realized:.2f}")
    return position, history


def update_prices(
    factory: RepositoryFactory,
    user_id: str,
    price_fetcher: Optional[Callable[[str], float]] = None,
) -> Dict[str, Any]:
    """Refresh market price, value and unrealized P&L of every active position, one ticker at a time."""
    price_fetcher = price_fetcher or fetch_current_price
    repo = factory.get_position_repository()
    positions = repo.get_active_positions(user_id)
    updated = 0
    failures = []

    for position in positions:
        try:
            price = float(price_fetcher(position.ticker))
        except AppError as e:
            logger.warning(f"Price update failed for {position.ticker}: {e.message}")
            failures.append({"ticker": position.ticker, "error": e.message})
            continue

        shares = float(position.total_shares or 0)
        current_value = shares * price
        repo.update_obj(
            position,
            {
                "current_market_price": price,
                "current_value": current_value,
                "unrealized_pnl": current_value - shares * float(position.average_cost or 0),
            },
            commit=False,
        )
        updated += 1

    factory.db.commit()
    logger.info(f"Updated prices for {updated}/{len(positions)} positions of user {user_id}")
    return {"total": len(positions), "updated": updated, "failed": len(failures), "failures": failures}


def update_strategy(
    factory: RepositoryFactory, user_id: str, position_id: str, strategy_id: Optional[int]
) -> Position:
    repo = factory.get_position_repository()
    position = repo.get_for_user(position_id, user_id)
    if position is None:
        raise NotFound("Position not found")
    if strategy_id is not None and factory.get_trade_strategy_repository().get(strategy_id) is None:
        raise ValidationError(f"Unknown strategy_id {strategy_id}")
    return repo.update_obj(position, {"strategy_id": strategy_id})


def list_strategies(factory: RepositoryFactory):
    return factory.get_trade_strategy_repository().get_strategies()


def _market_value(position: Position) -> float:
    if position.current_value is not None:
        return float(position.current_value)
    return float(position.total_shares or 0) * float(position.average_cost or 0)


def dashboard_investments(factory: RepositoryFactory, user_id: str, today: Optional[date] = None) -> Dict[str, Any]:
    today = today or date.today()
    positions = factory.get_position_repository().get_active_positions(user_id)

    rows = []
    for p in positions:
        invested = float(p.total_shares or 0) * float(p.average_cost or 0)
        value = _market_value(p)
        rows.append({
            "ticker": p.ticker,
            "tickerName": p.ticker_name or p.ticker,
            "quantity": float(p.total_shares or 0),
            "averageCost": float(p.average_cost or 0),
            "capitalInvested": invested,
            "daysHeld": (today - p.opened_date).days if p.opened_date else 0,
            "currentValue": value,
            "moneyness": float(p.unrealized_pnl) if p.unrealized_pnl is not None else value - invested,
            "currency": p.position_currency,
        })

    total_invested = sum(r["capitalInvested"] for r in rows)
    total_value = sum(r["currentValue"] for r in rows)
    return {
        "summary": {
            "totalInvested": total_invested,
            "totalMarketValue": total_value,
            "totalUnrealizedPnL": total_value - total_invested,
            "totalRealizedPnL": factory.get_realized_pnl_repository().get_total_realized(user_id),
            "positionCount": len(rows),
        },
        "positions": sorted(rows, key=lambda r: r["capitalInvested"], reverse=True),
    }


def _type_groups(factory: RepositoryFactory, user_id: str) -> Dict[str, Dict[str, Any]]:
    groups: Dict[str, Dict[str, Any]] = {}
    for position, _, type_code, type_name in factory.get_position_repository().get_positions(user_id, True):
        code = type_code or UNCLASSIFIED
        group = groups.setdefault(code, {
            "typeCode": code,
            "assetType": type_name or "Unclassified",
            "capitalInvested": 0.0,
            "currentValue": 0.0,
            "positionCount": 0,
            "tickers": [],
        })
        invested = float(position.total_shares or 0) * float(position.average_cost or 0)
        value = _market_value(position)
        group["capitalInvested"] += invested
        group["currentValue"] += value
        group["positionCount"] += 1
        group["tickers"].append({
            "ticker": position.ticker,
            "tickerName": position.ticker_name or position.ticker,
            "quantity": float(position.total_shares or 0),
            "capitalInvested": invested,
            "currentValue": value,
        })
    return groups


def dashboard_charts(factory: RepositoryFactory, user_id: str) -> List[Dict[str, Any]]:
    """Active positions grouped by asset type, largest capital first."""
    groups = list(_type_groups(factory, user_id).values())
    total = sum(g["capitalInvested"] for g in groups)
    for group in groups:
        group["tickers"].sort(key=lambda t: t["capitalInvested"], reverse=True)
        group["percentage"] = group["capitalInvested"] / total * 100 if total else 0.0
    return sorted(groups, key=lambda g: g["capitalInvested"], reverse=True)


def asset_type_details(factory: RepositoryFactory, user_id: str, type_code: str) -> Dict[str, Any]:
    code = type_code.strip().upper()
    group = _type_groups(factory, user_id).get(code)
    if group is None:
        return {"typeCode": code, "capitalInvested": 0.0, "currentValue": 0.0, "positionCount": 0, "tickers": []}
    group["tickers"].sort(key=lambda t: t["capitalInvested"], reverse=True)
    return group


def dashboard_strategies(factory: RepositoryFactory, user_id: str) -> List[Dict[str, Any]]:
    """Active positions grouped by trade strategy, with totals per strategy."""
    groups: Dict[str, Dict[str, Any]] = {}
    members: Dict[str, List[Dict[str, Any]]] = defaultdict(list)

    for position, strategy in factory.get_position_repository().get_active_with_strategy(user_id):
        code = strategy.strategy_code if strategy else UNASSIGNED
        if code not in groups:
            groups[code] = {
                "strategyId": strategy.strategy_id if strategy else None,
                "strategyCode": code,
                "strategyName": strategy.strategy_name if strategy else "Unassigned",
                "capitalInvested": 0.0,
                "currentValue": 0.0,
                "unrealizedPnL": 0.0,
            }
        invested = float(position.total_shares or 0) * float(position.average_cost or 0)
        value = _market_value(position)
        groups[code]["capitalInvested"] += invested
        groups[code]["currentValue"] += value
        groups[code]["unrealizedPnL"] += value - invested
        members[code].append({
            "positionId": position.position_id,
            "ticker": position.ticker,
            "tickerName": position.ticker_name or position.ticker,
            "quantity": float(position.total_shares or 0),
            "capitalInvested": invested,
            "currentValue": value,
        })

    results = []
    for code, group in groups.items():
        results.append({**group, "positionCount": len(members[code]), "positions": members[code]})
    return sorted(results, key=lambda g: g["capitalInvested"], reverse=True)
