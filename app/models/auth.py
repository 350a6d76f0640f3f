import uuid

from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, func
from app.core.db import Base


class AuthPassword(Base):
    __tablename__ = "auth_passwords"

    user_id = Column(String, ForeignKey("users.user_id"), primary_key=True)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class AuthPasskey(Base):
    __tablename__ = "auth_passkeys"

    credential_id = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey("users.user_id"), nullable=False, index=True)
    public_key = Column(String, nullable=False)
    counter = Column(Integer, nullable=False, default=0)
    device_name = Column(String, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    last_used_at = Column(DateTime, nullable=True)


class AuthChallenge(Base):
    """One-time OTP codes and WebAuthn ceremony challenges."""
    __tablename__ = "auth_challenges"

    challenge_id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.user_id"), nullable=False, index=True)
    purpose = Column(String, nullable=False)
    challenge = Column(String, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    consumed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now())


class AuthSession(Base):
    __tablename__ = "auth_sessions"

    session_id = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey("users.user_id"), nullable=False, index=True)
    session_status = Column(String, nullable=False, default="OPEN")
    credential_type = Column(String, nullable=False)
    credential_id = Column(String, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    expires_at = Column(DateTime, nullable=False)
    closed_at = Column(DateTime, nullable=True)
