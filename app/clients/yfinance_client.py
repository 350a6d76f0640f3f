from typing import Optional
import pandas as pd
import yfinance as yf

from app.core.exceptions import UpstreamError
from app.core.logger import logger


def fx_pair(base: str, quote: str) -> str:
    return f"{base}{quote}=X"


def _last_close(symbol: str, period: str = "5d") -> Optional[float]:
    data = yf.Ticker(symbol).history(period=period, interval="1d")
    if data is None or data.empty or "Close" not in data:
        return None
    closes = data["Close"].dropna()
    if closes.empty:
        return None
    return float(closes.iloc[-1])


def fetch_spot_rate(from_currency: str, to_currency: str) -> float:
    """Latest spot rate for one unit of ``from_currency`` in ``to_currency``."""
    from_currency, to_currency = from_currency.upper(), to_currency.upper()
    if from_currency == to_currency:
        return 1.0

    symbol = fx_pair(from_currency, to_currency)
    try:
        rate = _last_close(symbol)
    except Exception as e:
        logger.error(f"Error fetching FX rate {symbol}: {e}")
        raise UpstreamError(f"Failed to fetch exchange rate {from_currency}/{to_currency}") from e

    if rate is None:
        raise UpstreamError(f"No exchange rate available for {from_currency}/{to_currency}")
    logger.info(f"Fetched FX rate {symbol} = {rate}")
    return rate


def fetch_current_price(ticker: str) -> float:
    try:
        price = _last_close(ticker.upper())
    except Exception as e:
        logger.error(f"Error fetching price for {ticker}: {e}")
        raise UpstreamError(f"Failed to fetch price for {ticker}") from e

    if price is None:
        raise UpstreamError(f"No price available for {ticker}")
    return price


def fetch_dividend_history(ticker: str) -> pd.DataFrame:
    """Dividend history as a DataFrame ['date', 'amount'], oldest first."""
    try:
        series = yf.Ticker(ticker.upper()).dividends
    except Exception as e:
        logger.error(f"Error fetching dividends for {ticker}: {e}")
        raise UpstreamError(f"Failed to fetch dividends for {ticker}") from e

    if series is None or series.empty:
        return pd.DataFrame(columns=["date", "amount"])

    df = series.reset_index()
    df.columns = ["date", "amount"]
    df["date"] = pd.to_datetime(df["date"]).dt.date
    df["amount"] = df["amount"].astype(float)
    logger.info(f"Fetched {len(df)} dividend rows for {ticker}")
    return df.sort_values("date").reset_index(drop=True)


def fetch_ticker_info(ticker: str) -> dict:
    """Name, symbol, exchange, quote type and currency of a ticker, or {} when Yahoo does not know it."""
    try:
        t = yf.Ticker(ticker.upper())
        info = t.info or {}
    except Exception as e:
        logger.error(f"Error fetching info for {ticker}: {e}")
        raise UpstreamError(f"Failed to look up {ticker}") from e

    if not info or not (info.get("longName") or info.get("shortName") or info.get("symbol")):
        return {}

    return {
        "name": info.get("longName") or info.get("shortName") or ticker.upper(),
        "symbol": info.get("symbol") or ticker.upper(),
        "exchange": info.get("exchange") or info.get("fullExchangeName"),
        "type": info.get("quoteType") or "UNKNOWN",
        "currency": info.get("currency"),
    }
