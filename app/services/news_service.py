from datetime import date
from typing import Any, Dict, List, Optional

from app.core.config import settings
from app.core.exceptions import NotFound, ValidationError
from app.core.logger import logger
from app.models import News
from app.repositories.factory import RepositoryFactory
from app.services.validators import normalize_code, paginate, parse_date, require_fields

REQUIRED_NEWS_FIELDS = ("ticker", "news_type_id", "news_description", "news_date")


def _news_values(factory: RepositoryFactory, values: Dict[str, Any]) -> Dict[str, Any]:
    require_fields(values, REQUIRED_NEWS_FIELDS)

    try:
        news_type_id = int(values["news_type_id"])
    except (TypeError, ValueError):
        raise ValidationError("news_type_id must be an integer")
    if factory.get_news_type_repository().get(news_type_id) is None:
        raise ValidationError(f"Unknown news_type_id {news_type_id}")

    exchange_id = values.get("exchange_id")
    return {
        "ticker": normalize_code(values["ticker"], "ticker"),
        "exchange_id": int(exchange_id) if exchange_id not in (None, "") else None,
        "company_name": values.get("company_name") or None,
        "news_type_id": news_type_id,
        "news_description": str(values["news_description"]).strip(),
        "news_date": parse_date(values["news_date"], "news_date"),
        "alert_date": parse_date(values.get("alert_date"), "alert_date"),
        "alert_notes": values.get("alert_notes") or None,
        "news_source": values.get("news_source") or None,
        "news_url": values.get("news_url") or None,
        "tags": values.get("tags") or None,
    }


def create_news(factory: RepositoryFactory, user_id: str, fields: Dict[str, Any]) -> News:
    row = _news_values(factory, fields)
    row["user_id"] = user_id
    news = factory.get_news_repository().create(row)
    logger.info(f"Created news {news.news_id} for {news.ticker}")
    return news


def get_news(factory: RepositoryFactory, user_id: str, news_id: str) -> News:
    news = factory.get_news_repository().get_for_user(news_id, user_id)
    if news is None:
        raise NotFound("News not found")
    return news


def update_news(factory: RepositoryFactory, user_id: str, news_id: str, fields: Dict[str, Any]) -> News:
    repo = factory.get_news_repository()
    news = get_news(factory, user_id, news_id)
    current = {column: getattr(news, column) for column in (
        "ticker", "exchange_id", "company_name", "news_type_id", "news_description", "news_date",
        "alert_date", "alert_notes", "news_source", "news_url", "tags",
    )}
    current.update(fields)
    return repo.update_obj(news, _news_values(factory, current))


def delete_news(factory: RepositoryFactory, user_id: str, news_id: str) -> None:
    if not factory.get_news_repository().delete_for_user(news_id, user_id):
        raise NotFound("News not found")


def news_types(factory: RepositoryFactory):
    return factory.get_news_type_repository().get_types()


def all_news(
    factory: RepositoryFactory, user_id: str, page: int = 1, page_size: int = settings.DEFAULT_PAGE_SIZE
) -> Dict[str, Any]:
    offset, limit = paginate(page, page_size)
    rows, total = factory.get_news_repository().get_page(user_id, offset, limit)
    return {"data": rows, "total": total, "page": page, "pageSize": page_size}


def news_by_ticker(
    factory: RepositoryFactory,
    user_id: str,
    ticker: Optional[str] = None,
    page: int = 1,
    page_size: int = settings.DEFAULT_PAGE_SIZE,
) -> Dict[str, Any]:
    if not ticker:
        return {"data": factory.get_news_repository().get_ticker_summary(user_id)}
    offset, limit = paginate(page, page_size)
    rows, total = factory.get_news_repository().get_by_ticker_page(user_id, ticker, offset, limit)
    return {"data": rows, "total": total}


def news_by_type(
    factory: RepositoryFactory,
    user_id: str,
    type_name: Optional[str] = None,
    page: int = 1,
    page_size: int = settings.DEFAULT_PAGE_SIZE,
) -> Dict[str, Any]:
    if not type_name:
        return {"data": factory.get_news_repository().get_type_summary(user_id)}

    news_type = factory.get_news_type_repository().get_by_name(type_name)
    if news_type is None:
        raise NotFound(f"Unknown news type {type_name}")
    offset, limit = paginate(page, page_size)
    rows, total = factory.get_news_repository().get_by_type_page(user_id, news_type.news_type_id, offset, limit)
    return {"data": rows, "total": total}


def alert_bucket(days_until: int) -> str:
    if days_until < 0:
        return "past"
    if days_until <= 3:
        return "urgent"
    if days_until <= 7:
        return "thisWeek"
    return "comingSoon"


def alerts(factory: RepositoryFactory, user_id: str, today: Optional[date] = None) -> Dict[str, Any]:
    """
    News with an alert date, bucketed by days until the alert:
    past (< 0), urgent (0-3), thisWeek (4-7) and comingSoon (8+).
    """
    today = today or date.today()
    grouped: Dict[str, List[Dict[str, Any]]] = {"past": [], "urgent": [], "thisWeek": [], "comingSoon": []}

    for news in factory.get_news_repository().get_alerts(user_id):
        days_until = (news.alert_date - today).days
        grouped[alert_bucket(days_until)].append({
            "news_id": news.news_id,
            "ticker": news.ticker,
            "company_name": news.company_name,
            "news_type": news.news_type.type_name if news.news_type else None,
            "news_description": news.news_description,
            "news_date": news.news_date,
            "alert_date": news.alert_date,
            "alert_notes": news.alert_notes,
            "days_until": days_until,
        })

    return {
        "alerts": grouped,
        "badgeCount": len(grouped["urgent"]) + len(grouped["thisWeek"]),
        "totalAlerts": sum(len(v) for v in grouped.values()),
    }


def has_open_position(factory: RepositoryFactory, user_id: str, ticker: str) -> bool:
    return factory.get_position_repository().get_active_position(user_id, ticker) is not None
