import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CACHE_ENABLED"] = "false"
os.environ["LOG_TO_FILE"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.db import Base, get_db
from app.core.security import generate_session_token, session_expiry
from app.database.seed import seed_reference_data
from app.main import app
from app.models import AssetClass, AssetType, Exchange
from app.repositories.factory import RepositoryFactory


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    seed_reference_data(session)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(engine, db_session):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def _get_db_override():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db_override
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def factory(db_session):
    return RepositoryFactory(db_session)


@pytest.fixture
def user(factory):
    return factory.get_user_repository().create({
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": "ada@example.com",
        "resident_country": "AU",
        "home_currency": "AUD",
    })


@pytest.fixture
def session_token(factory, user):
    session = factory.get_auth_session_repository().create({
        "session_id": generate_session_token(),
        "user_id": user.user_id,
        "session_status": "OPEN",
        "credential_type": "PASSWORD",
        "expires_at": session_expiry(),
    })
    return session.session_id


@pytest.fixture
def auth_client(client, session_token):
    client.headers.update({"Authorization": f"Bearer {session_token}"})
    return client


@pytest.fixture
def nasdaq(db_session):
    return db_session.query(Exchange).filter(Exchange.exchange_code == "NASDAQ").one()


@pytest.fixture
def stock_type(db_session):
    return db_session.query(AssetType).filter(AssetType.type_code == "STOCK").one()


@pytest.fixture
def classify(factory, user, nasdaq, stock_type):
    """Register a NASDAQ stock classification so transactions can be recorded for a ticker."""
    from app.services import classification_service

    def _classify(ticker: str, type_code: str = "STOCK"):
        db = factory.db
        asset_type = db.query(AssetType).filter(AssetType.type_code == type_code).one()
        asset_class = db.get(AssetClass, asset_type.class_id)
        return classification_service.upsert_classification(factory, user.user_id, {
            "ticker": ticker,
            "exchange_id": nasdaq.exchange_id,
            "class_id": asset_class.class_id,
            "type_id": asset_type.type_id,
        })

    return _classify


@pytest.fixture
def other_user(factory):
    return factory.get_user_repository().create({
        "first_name": "Grace",
        "last_name": "Hopper",
        "email": "grace@example.com",
        "home_currency": "USD",
    })
