import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, Optional

from webauthn import (
    generate_authentication_options,
    generate_registration_options,
    options_to_json,
    verify_authentication_response,
    verify_registration_response,
)
from webauthn.helpers import base64url_to_bytes, bytes_to_base64url
from webauthn.helpers.exceptions import WebAuthnException
from webauthn.helpers.structs import (
    AuthenticatorSelectionCriteria,
    PublicKeyCredentialDescriptor,
    ResidentKeyRequirement,
    UserVerificationRequirement,
)

from app.core.config import settings
from app.core.exceptions import AppError, NotFound, Unauthorized, ValidationError
from app.core.logger import logger
from app.core.security import (
    generate_otp_code,
    generate_session_token,
    hash_password,
    otp_matches,
    session_expiry,
    utcnow,
    verify_password,
)
from app.models import AuthChallenge, AuthSession, User
from app.repositories.factory import RepositoryFactory

OTP = "OTP"
PASSKEY_REGISTER = "PASSKEY_REGISTER"
PASSKEY_AUTH = "PASSKEY_AUTH"

INVALID_CREDENTIALS = "Invalid credentials"


class Credential(ABC):
    """A login proof for one user. ``verify`` returns the credential id used, or raises."""

    credential_type: str = ""

    @abstractmethod
    def verify(self, service: "AuthService", user: User) -> Optional[str]:
        ...


@dataclass
class PasswordCredential(Credential):
    email: str
    password: str
    credential_type = "PASSWORD"

    def verify(self, service: "AuthService", user: User) -> Optional[str]:
        stored = service.factory.get_auth_password_repository().get(user.user_id)
        if stored is None or not verify_password(self.password, stored.password_hash):
            raise Unauthorized(INVALID_CREDENTIALS)
        return None


@dataclass
class OtpCredential(Credential):
    email: str
    code: str
    credential_type = "OTP"

    def verify(self, service: "AuthService", user: User) -> Optional[str]:
        challenges = service.factory.get_auth_challenge_repository()
        challenge = challenges.get_latest_active(user.user_id, OTP, utcnow())
        if challenge is None or not otp_matches(challenge.challenge, self.code or ""):
            raise Unauthorized(INVALID_CREDENTIALS)
        challenges.update_obj(challenge, {"consumed": True})
        return challenge.challenge_id


@dataclass
class PasskeyCredential(Credential):
    email: str
    response: Dict[str, Any] = field(default_factory=dict)
    credential_type = "PASSKEY"

    def verify(self, service: "AuthService", user: User) -> Optional[str]:
        passkeys = service.factory.get_auth_passkey_repository()
        passkey = passkeys.get(self.response.get("id") or self.response.get("rawId") or "")
        if passkey is None or passkey.user_id != user.user_id:
            raise Unauthorized(INVALID_CREDENTIALS)

        challenges = service.factory.get_auth_challenge_repository()
        challenge = challenges.get_latest_active(user.user_id, PASSKEY_AUTH, utcnow())
        if challenge is None:
            raise Unauthorized(INVALID_CREDENTIALS)

        try:
            verification = verify_authentication_response(
                credential=self.response,
                expected_challenge=base64url_to_bytes(challenge.challenge),
                expected_rp_id=settings.WEBAUTHN_RP_ID,
                expected_origin=settings.WEBAUTHN_ORIGIN,
                credential_public_key=base64url_to_bytes(passkey.public_key),
                credential_current_sign_count=passkey.counter,
                require_user_verification=False,
            )
        except (WebAuthnException, ValueError) as e:
            logger.warning(f"Passkey authentication failed for user {user.user_id}: {e}")
            raise Unauthorized(INVALID_CREDENTIALS)

        challenges.update_obj(challenge, {"consumed": True}, commit=False)
        passkeys.update_obj(passkey, {"counter": verification.new_sign_count, "last_used_at": utcnow()})
        return passkey.credential_id


class AuthService:
    """Credential verification, OTP issuing, passkey ceremonies and session lifecycle."""

    def __init__(self, factory: RepositoryFactory):
        self.factory = factory
        self.users = factory.get_user_repository()
        self.sessions = factory.get_auth_session_repository()
        self.challenges = factory.get_auth_challenge_repository()

    def _require_user(self, email: str) -> User:
        user = self.users.get_by_email(email or "")
        if user is None:
            raise NotFound("User not found")
        return user

    def lookup_user(self, email: str) -> Dict[str, Any]:
        user = self.users.get_by_email(email or "")
        if user is None:
            return {"exists": False}
        return {
            "exists": True,
            "userId": user.user_id,
            "firstName": user.first_name,
            "displayName": user.display_name,
            "hasPassword": self.factory.get_auth_password_repository().get(user.user_id) is not None,
            "hasPasskey": bool(self.factory.get_auth_passkey_repository().get_user_passkeys(user.user_id)),
        }

    def password_status(self, email: str) -> Dict[str, Any]:
        user = self._require_user(email)
        stored = self.factory.get_auth_password_repository().get(user.user_id)
        return {"hasPassword": stored is not None, "userId": user.user_id}

    def setup_password(self, email: str, password: str) -> Dict[str, Any]:
        user = self._require_user(email)
        if not password or len(password) < settings.PASSWORD_MIN_LENGTH:
            raise ValidationError(f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters")

        passwords = self.factory.get_auth_password_repository()
        if passwords.get(user.user_id) is not None:
            raise ValidationError("Password already set")

        passwords.create({"user_id": user.user_id, "password_hash": hash_password(password)})
        logger.info(f"Password set for user {user.user_id}")
        return {"success": True, "userId": user.user_id}

    def send_otp(self, email: str) -> Dict[str, Any]:
        """Issue a fresh one-time code; earlier unused codes for the user stop working."""
        user = self._require_user(email)
        now = utcnow()

        previous = self.challenges.get_latest_active(user.user_id, OTP, now)
        while previous is not None:
            self.challenges.update_obj(previous, {"consumed": True}, commit=False)
            previous = self.challenges.get_latest_active(user.user_id, OTP, now)

        code = generate_otp_code(settings.OTP_LENGTH)
        challenge = self.challenges.create({
            "user_id": user.user_id,
            "purpose": OTP,
            "challenge": code,
            "expires_at": now + timedelta(minutes=settings.OTP_TTL_MINUTES),
        })
        logger.info(f"OTP for {user.email}: {code} (expires {challenge.expires_at:%H:%M:%S} UTC)")
        return {"success": True, "expiresAt": challenge.expires_at}

    def _store_challenge(self, user: User, purpose: str, challenge: bytes) -> AuthChallenge:
        return self.challenges.create({
            "user_id": user.user_id,
            "purpose": purpose,
            "challenge": bytes_to_base64url(challenge),
            "expires_at": utcnow() + timedelta(minutes=settings.WEBAUTHN_CHALLENGE_TTL_MINUTES),
        })

    def passkey_registration_options(self, user: User) -> Dict[str, Any]:
        existing = self.factory.get_auth_passkey_repository().get_user_passkeys(user.user_id)
        options = generate_registration_options(
            rp_id=settings.WEBAUTHN_RP_ID,
            rp_name=settings.WEBAUTHN_RP_NAME,
            user_id=user.user_id.encode("utf-8"),
            user_name=user.email,
            user_display_name=user.display_name,
            exclude_credentials=[
                PublicKeyCredentialDescriptor(id=base64url_to_bytes(p.credential_id)) for p in existing
            ],
            authenticator_selection=AuthenticatorSelectionCriteria(
                resident_key=ResidentKeyRequirement.PREFERRED,
                user_verification=UserVerificationRequirement.PREFERRED,
            ),
        )
        self._store_challenge(user, PASSKEY_REGISTER, options.challenge)
        return json.loads(options_to_json(options))

    def verify_passkey_registration(
        self, user: User, response: Dict[str, Any], device_name: Optional[str] = None
    ) -> Dict[str, Any]:
        challenge = self.challenges.get_latest_active(user.user_id, PASSKEY_REGISTER, utcnow())
        if challenge is None:
            raise ValidationError("No active registration challenge")

        try:
            verification = verify_registration_response(
                credential=response,
                expected_challenge=base64url_to_bytes(challenge.challenge),
                expected_origin=settings.WEBAUTHN_ORIGIN,
                expected_rp_id=settings.WEBAUTHN_RP_ID,
            )
        except (WebAuthnException, ValueError) as e:
            logger.warning(f"Passkey registration failed for user {user.user_id}: {e}")
            raise ValidationError("Passkey registration could not be verified")

        credential_id = bytes_to_base64url(verification.credential_id)
        self.challenges.update_obj(challenge, {"consumed": True}, commit=False)
        self.factory.get_auth_passkey_repository().create({
            "credential_id": credential_id,
            "user_id": user.user_id,
            "public_key": bytes_to_base64url(verification.credential_public_key),
            "counter": verification.sign_count,
            "device_name": device_name,
        })
        logger.info(f"Registered passkey {credential_id} for user {user.user_id}")
        return {"verified": True, "credentialId": credential_id}

    def passkey_authentication_options(self, email: str) -> Dict[str, Any]:
        user = self._require_user(email)
        passkeys = self.factory.get_auth_passkey_repository().get_user_passkeys(user.user_id)
        if not passkeys:
            raise NotFound("No passkey found", needsRegistration=True)

        options = generate_authentication_options(
            rp_id=settings.WEBAUTHN_RP_ID,
            allow_credentials=[PublicKeyCredentialDescriptor(id=base64url_to_bytes(p.credential_id)) for p in passkeys],
            user_verification=UserVerificationRequirement.PREFERRED,
        )
        self._store_challenge(user, PASSKEY_AUTH, options.challenge)
        return json.loads(options_to_json(options))

    def login(self, credential: Credential) -> Dict[str, Any]:
        """
        Resolve the user, verify the credential and open a session.
        Every failure surfaces as the same Unauthorized error.
        """
        user = self.users.get_by_email(credential.email or "")
        if user is None or not user.is_active:
            raise Unauthorized(INVALID_CREDENTIALS)

        try:
            credential_id = credential.verify(self, user)
        except AppError as e:
            logger.warning(f"{credential.credential_type} login failed for user {user.user_id}: {e.message}")
            raise Unauthorized(INVALID_CREDENTIALS)

        session = self.sessions.create({
            "session_id": generate_session_token(),
            "user_id": user.user_id,
            "session_status": "OPEN",
            "credential_type": credential.credential_type,
            "credential_id": credential_id,
            "expires_at": session_expiry(),
        })
        logger.info(f"Opened {credential.credential_type} session for user {user.user_id}")
        return {"token": session.session_id, "expiresAt": session.expires_at, "user": user}

    def resolve_session(self, token: Optional[str]) -> Optional[User]:
        if not token:
            return None
        session: Optional[AuthSession] = self.sessions.get_open_session(token, utcnow())
        if session is None:
            return None
        user = self.users.get(session.user_id)
        if user is None or not user.is_active:
            return None
        return user

    def logout(self, user: User) -> int:
        closed = self.sessions.close_user_sessions(user.user_id, utcnow())
        logger.info(f"Closed {closed} sessions for user {user.user_id}")
        return closed
