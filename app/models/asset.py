import uuid

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import relationship
from app.core.db import Base


class Exchange(Base):
    __tablename__ = "exchanges"

    exchange_id = Column(Integer, primary_key=True, autoincrement=True)
    exchange_code = Column(String, nullable=False, unique=True)
    exchange_name = Column(String, nullable=False)
    country_code = Column(String(2), ForeignKey("countries.country_code"), nullable=True)
    exchange_type = Column(String, nullable=False, default="STOCK")


class AssetClass(Base):
    __tablename__ = "asset_classes"

    class_id = Column(Integer, primary_key=True, autoincrement=True)
    class_code = Column(String, nullable=False, unique=True)
    class_name = Column(String, nullable=False)
    description = Column(String, nullable=True)

    types = relationship("AssetType", back_populates="asset_class")


class AssetType(Base):
    __tablename__ = "asset_types"

    type_id = Column(Integer, primary_key=True, autoincrement=True)
    type_code = Column(String, nullable=False, unique=True)
    type_name = Column(String, nullable=False)
    class_id = Column(Integer, ForeignKey("asset_classes.class_id"), nullable=True)
    description = Column(String, nullable=True)

    asset_class = relationship("AssetClass", back_populates="types")


class AssetClassification(Base):
    __tablename__ = "asset_classifications"
    __table_args__ = (
        UniqueConstraint("user_id", "ticker", "exchange_id", name="uq_classification_user_ticker_exchange"),
    )

    classification_id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.user_id"), nullable=False, index=True)
    ticker = Column(String, nullable=False)
    exchange_id = Column(Integer, ForeignKey("exchanges.exchange_id"), nullable=False)
    class_id = Column(Integer, ForeignKey("asset_classes.class_id"), nullable=False)
    type_id = Column(Integer, ForeignKey("asset_types.type_id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    asset_class = relationship("AssetClass")
    asset_type = relationship("AssetType")
    exchange = relationship("Exchange")
