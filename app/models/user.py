import uuid

from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from app.core.db import Base


class Country(Base):
    __tablename__ = "countries"

    country_code = Column(String(2), primary_key=True)
    country_name = Column(String, nullable=False)
    currency_code = Column(String(3), nullable=False)


class User(Base):
    __tablename__ = "users"

    user_id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    first_name = Column(String, nullable=False)
    middle_name = Column(String, nullable=True)
    last_name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)
    resident_country = Column(String(2), ForeignKey("countries.country_code"), nullable=True)
    home_currency = Column(String(3), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    preferences = relationship("UserPreferences", back_populates="user", uselist=False)

    @property
    def display_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.middle_name, self.last_name) if p)


class UserPreferences(Base):
    __tablename__ = "user_preferences"

    user_id = Column(String, ForeignKey("users.user_id"), primary_key=True)
    default_currency = Column(String(3), nullable=True)
    default_trading_currency = Column(String(3), nullable=False, default="USD")
    decimal_places = Column(Integer, nullable=False, default=2)
    date_format = Column(String, nullable=False, default="YYYY-MM-DD")
    theme = Column(String, nullable=False, default="light")
    notifications_enabled = Column(Boolean, nullable=False, default=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="preferences")
