from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import api_router
from app.core.config import settings
from app.core.db import SessionLocal, init_db
from app.core.exceptions import register_exception_handlers
from app.core.logger import logger
from app.core.redis_client import check_redis_connection
from app.database.seed import seed_reference_data


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    with SessionLocal() as db:
        seed_reference_data(db)
    logger.info("Database initialized")
    if settings.CACHE_ENABLED:
        check_redis_connection()
    yield
    logger.info("Database connection closed")


app = FastAPI(lifespan=lifespan, title="Portfolio Tracker API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True
)

register_exception_handlers(app)
app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    return {"message": "Portfolio Tracker API is running", "version": "1.0.0"}
