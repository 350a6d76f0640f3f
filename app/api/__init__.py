from fastapi import APIRouter

from .routes.auth import router as auth_router
from .routes.classifications import router as classifications_router
from .routes.dashboard import router as dashboard_router
from .routes.dividends import router as dividends_router
from .routes.funding import router as funding_router
from .routes.imports import router as imports_router
from .routes.market import router as market_router
from .routes.news import router as news_router
from .routes.positions import router as positions_router
from .routes.trade_lots import router as trade_lots_router
from .routes.transactions import router as transactions_router
from .routes.user import router as user_router

api_router = APIRouter()
api_router.include_router(auth_router, prefix="/auth", tags=["Auth"])
api_router.include_router(user_router, prefix="/user", tags=["User"])
api_router.include_router(funding_router, prefix="/funding", tags=["Funding"])
api_router.include_router(dashboard_router, prefix="/dashboard", tags=["Dashboard"])
api_router.include_router(dividends_router, tags=["Dividends"])
api_router.include_router(news_router, tags=["News"])
api_router.include_router(positions_router, tags=["Positions"])
api_router.include_router(transactions_router, tags=["Transactions"])
api_router.include_router(trade_lots_router, tags=["Trade Lots"])
api_router.include_router(classifications_router, tags=["Classifications"])
api_router.include_router(imports_router, prefix="/imports", tags=["Imports"])
api_router.include_router(market_router, tags=["Market"])
