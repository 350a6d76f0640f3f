from datetime import date
from typing import Any, Dict, Optional

from app.clients import yfinance_client
from app.core.exceptions import NotFound
from app.core.logger import logger
from app.managers.cache_manager import CacheManager
from app.services.validators import normalize_code, parse_number

FX_TTL_SECONDS = 300
TICKER_LOOKUP_TTL_SECONDS = 3600
DIVIDEND_MATCH_WINDOW_DAYS = 3

fx_cache = CacheManager("fx")
ticker_cache = CacheManager("ticker")


def spot_rate(from_currency: str, to_currency: str) -> float:
    if from_currency == to_currency:
        return 1.0
    return fx_cache.get_or_set(
        lambda: yfinance_client.fetch_spot_rate(from_currency, to_currency),
        from_currency,
        to_currency,
        ttl=FX_TTL_SECONDS,
    )


def convert(from_currency: str, to_currency: str, amount: Any) -> Dict[str, Any]:
    """
    Convert ``amount`` using the latest spot quote.
    The converted amount is rounded to 2 places and the rate to 4.
    """
    from_currency = normalize_code(from_currency, "from")
    to_currency = normalize_code(to_currency, "to")
    value = parse_number(amount, "amount")

    rate = float(spot_rate(from_currency, to_currency))
    return {
        "from": from_currency,
        "to": to_currency,
        "amount": value,
        "convertedAmount": round(value * rate, 2),
        "rate": round(rate, 4),
        "lastUpdate": date.today().isoformat(),
    }


def ticker_lookup(ticker: str) -> Dict[str, Any]:
    symbol = normalize_code(ticker, "ticker")
    info = ticker_cache.get_or_set(
        lambda: yfinance_client.fetch_ticker_info(symbol),
        "lookup",
        symbol,
        ttl=TICKER_LOOKUP_TTL_SECONDS,
    )
    if not info:
        raise NotFound(f"Ticker {symbol} not found")
    return {
        "name": info.get("name"),
        "symbol": info.get("symbol"),
        "exchange": info.get("exchange"),
        "type": info.get("type"),
    }


def yahoo_dividend(ticker: str, ex_dividend_date: Optional[date] = None) -> Dict[str, Any]:
    """
    Latest dividend for the ticker, or when ``ex_dividend_date`` is given,
    the dividend closest to it within three days.
    """
    symbol = normalize_code(ticker, "ticker")
    history = yfinance_client.fetch_dividend_history(symbol)
    if history.empty:
        raise NotFound(f"No dividend data found for {symbol}")

    if ex_dividend_date is None:
        row = history.iloc[-1]
    else:
        distance = history["date"].apply(lambda d: abs((d - ex_dividend_date).days))
        if distance.min() > DIVIDEND_MATCH_WINDOW_DAYS:
            raise NotFound(f"No dividend for {symbol} near {ex_dividend_date.isoformat()}")
        row = history.loc[distance.idxmin()]

    logger.info(f"Resolved Yahoo dividend for {symbol}: {row['amount']} on {row['date']}")
    return {"ticker": symbol, "amount": float(row["amount"]), "date": row["date"]}
