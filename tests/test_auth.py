from datetime import timedelta
from types import SimpleNamespace

import pytest
from fastapi import status
from webauthn.helpers import bytes_to_base64url

from app.core import security
from app.core.exceptions import Unauthorized
from app.models import AuthChallenge, AuthPasskey, AuthSession
from app.services.auth_service import PASSKEY_AUTH, AuthService, OtpCredential, PasswordCredential


@pytest.fixture
def auth(factory):
    return AuthService(factory)


def _latest_code(db_session, user):
    return (
        db_session.query(AuthChallenge)
        .filter(
            AuthChallenge.user_id == user.user_id,
            AuthChallenge.purpose == "OTP",
            AuthChallenge.consumed.is_(False),
        )
        .order_by(AuthChallenge.expires_at.desc())
        .first()
    )


class TestOtp:
    def test_code_is_six_digits_and_expires_in_five_minutes(self, auth, user, db_session):
        before = security.utcnow()
        result = auth.send_otp(user.email)

        challenge = _latest_code(db_session, user)
        assert len(challenge.challenge) == 6
        assert challenge.challenge.isdigit()
        assert timedelta(minutes=4, seconds=59) <= result["expiresAt"] - before <= timedelta(minutes=5, seconds=5)

    def test_code_is_single_use(self, auth, user, db_session):
        auth.send_otp(user.email)
        code = _latest_code(db_session, user).challenge

        session = auth.login(OtpCredential(email=user.email, code=code))
        assert session["user"].user_id == user.user_id

        with pytest.raises(Unauthorized):
            auth.login(OtpCredential(email=user.email, code=code))

    def test_expired_code_is_rejected(self, auth, user, db_session, monkeypatch):
        auth.send_otp(user.email)
        code = _latest_code(db_session, user).challenge
        later = security.utcnow() + timedelta(minutes=6)
        monkeypatch.setattr("app.services.auth_service.utcnow", lambda: later)

        with pytest.raises(Unauthorized):
            auth.login(OtpCredential(email=user.email, code=code))

    def test_new_code_invalidates_previous(self, auth, user, db_session):
        auth.send_otp(user.email)
        first = _latest_code(db_session, user)
        auth.send_otp(user.email)

        db_session.refresh(first)
        active = (
            db_session.query(AuthChallenge)
            .filter(AuthChallenge.user_id == user.user_id, AuthChallenge.consumed.is_(False))
            .all()
        )
        assert first.consumed is True
        assert len(active) == 1


class TestPasswordLogin:
    def test_setup_then_login(self, auth, user):
        auth.setup_password(user.email, "correct horse")

        result = auth.login(PasswordCredential(email=user.email, password="correct horse"))

        assert result["token"]
        assert auth.resolve_session(result["token"]).user_id == user.user_id

    def test_wrong_password_uses_generic_message(self, auth, user):
        auth.setup_password(user.email, "correct horse")

        with pytest.raises(Unauthorized, match="Invalid credentials"):
            auth.login(PasswordCredential(email=user.email, password="battery staple"))
        with pytest.raises(Unauthorized, match="Invalid credentials"):
            auth.login(PasswordCredential(email="nobody@example.com", password="correct horse"))

    def test_hash_roundtrip(self):
        hashed = security.hash_password("s3cret-pass")

        assert hashed != "s3cret-pass"
        assert security.verify_password("s3cret-pass", hashed)
        assert not security.verify_password("other", hashed)


class TestAuthEndpoints:
    def test_session_requires_token(self, client):
        response = client.get("/api/auth/session")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {"error": "Unauthorized"}

    def test_session_with_bearer_token(self, auth_client, user):
        response = auth_client.get("/api/auth/session")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["user"]["email"] == user.email

    def test_password_setup_and_login_flow(self, client, user):
        short = client.post("/api/auth/password/setup", json={"email": user.email, "password": "short"})
        assert short.status_code == status.HTTP_400_BAD_REQUEST

        ok = client.post("/api/auth/password/setup", json={"email": user.email, "password": "long-enough"})
        assert ok.json() == {"success": True, "userId": user.user_id}

        again = client.post("/api/auth/password/setup", json={"email": user.email, "password": "long-enough"})
        assert again.status_code == status.HTTP_400_BAD_REQUEST

        login = client.post("/api/auth/login", json={"method": "password", "email": user.email, "password": "long-enough"})
        assert login.status_code == status.HTTP_200_OK
        token = login.json()["token"]

        session = client.get("/api/auth/session", headers={"Authorization": f"Bearer {token}"})
        assert session.json()["authenticated"] is True

    def test_bad_login_is_401(self, client, user):
        response = client.post("/api/auth/login", json={"method": "otp", "email": user.email, "code": "000000"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {"error": "Invalid credentials"}

    def test_logout_closes_sessions(self, auth_client, db_session, session_token):
        response = auth_client.post("/api/auth/logout")

        assert response.json() == {"success": True, "closedSessions": 1}
        assert auth_client.get("/api/auth/session").status_code == status.HTTP_401_UNAUTHORIZED
        stored = db_session.get(AuthSession, session_token)
        db_session.refresh(stored)
        assert stored.session_status == "CLOSED"

    def test_lookup_and_password_check(self, client, user):
        lookup = client.get("/api/auth/user/lookup", params={"email": user.email}).json()
        assert lookup["exists"] is True
        assert lookup["hasPassword"] is False
        assert lookup["hasPasskey"] is False

        assert client.get("/api/auth/user/lookup", params={"email": "x@example.com"}).json() == {"exists": False}
        assert client.get("/api/auth/password/check", params={"email": "x@example.com"}).status_code == status.HTTP_404_NOT_FOUND

    def test_passkey_options_without_passkey(self, client, user):
        response = client.post("/api/auth/passkey/authenticate/options", json={"email": user.email})

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"error": "No passkey found", "needsRegistration": True}

    def test_passkey_registration_options_store_challenge(self, auth_client, user, db_session):
        response = auth_client.post("/api/auth/passkey/register/options")

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["rp"]["id"] == "localhost"
        assert body["user"]["name"] == user.email
        stored = db_session.query(AuthChallenge).filter(AuthChallenge.purpose == "PASSKEY_REGISTER").one()
        assert stored.challenge == body["challenge"]

    def test_otp_send_endpoint(self, client, user):
        response = client.post("/api/auth/otp/send", json={"email": user.email})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["success"] is True
        assert "code" not in response.json()


class TestPasskeyCeremonies:
    @pytest.fixture
    def passkey(self, factory, user):
        return factory.get_auth_passkey_repository().create({
            "credential_id": "cred-1",
            "user_id": user.user_id,
            "public_key": bytes_to_base64url(b"public-key"),
            "counter": 4,
        })

    @pytest.fixture
    def issue_challenge(self, factory):
        def _issue(owner, purpose, minutes=5):
            return factory.get_auth_challenge_repository().create({
                "user_id": owner.user_id,
                "purpose": purpose,
                "challenge": bytes_to_base64url(b"server-challenge"),
                "expires_at": security.utcnow() + timedelta(minutes=minutes),
            })

        return _issue

    def _login(self, client, email, credential_id="cred-1"):
        return client.post("/api/auth/login", json={
            "method": "passkey",
            "email": email,
            "response": {"id": credential_id, "rawId": credential_id, "type": "public-key"},
        })

    def test_login_opens_session_and_bumps_counter(
            self, client, user, passkey, issue_challenge, db_session, monkeypatch
    ):
        challenge = issue_challenge(user, PASSKEY_AUTH)
        monkeypatch.setattr(
            "app.services.auth_service.verify_authentication_response",
            lambda **kwargs: SimpleNamespace(new_sign_count=kwargs["credential_current_sign_count"] + 1),
        )

        response = self._login(client, user.email)

        assert response.status_code == status.HTTP_200_OK
        token = response.json()["token"]
        assert client.get("/api/auth/session", headers={"Authorization": f"Bearer {token}"}).status_code == status.HTTP_200_OK
        db_session.expire_all()
        assert db_session.get(AuthPasskey, "cred-1").counter == 5
        assert db_session.get(AuthChallenge, challenge.challenge_id).consumed is True
        assert db_session.get(AuthSession, token).credential_type == "PASSKEY"

    def test_another_users_passkey_is_rejected(
            self, client, user, other_user, factory, issue_challenge, monkeypatch
    ):
        factory.get_auth_passkey_repository().create({
            "credential_id": "grace-key",
            "user_id": other_user.user_id,
            "public_key": bytes_to_base64url(b"public-key"),
        })
        issue_challenge(user, PASSKEY_AUTH)
        calls = []
        monkeypatch.setattr(
            "app.services.auth_service.verify_authentication_response",
            lambda **kwargs: calls.append(kwargs),
        )

        response = self._login(client, user.email, "grace-key")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {"error": "Invalid credentials"}
        assert calls == []

    def test_expired_challenge_is_rejected(self, client, user, passkey, issue_challenge, monkeypatch):
        issue_challenge(user, PASSKEY_AUTH, minutes=-1)
        monkeypatch.setattr(
            "app.services.auth_service.verify_authentication_response",
            lambda **kwargs: SimpleNamespace(new_sign_count=10),
        )

        response = self._login(client, user.email)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {"error": "Invalid credentials"}

    def test_malformed_assertion_is_generic_401(self, client, user, passkey, issue_challenge):
        issue_challenge(user, PASSKEY_AUTH)

        response = client.post("/api/auth/login", json={
            "method": "passkey",
            "email": user.email,
            "response": {"id": "cred-1"},
        })

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {"error": "Invalid credentials"}

    def test_registration_persists_passkey(self, auth_client, user, db_session, monkeypatch):
        auth_client.post("/api/auth/passkey/register/options")
        monkeypatch.setattr(
            "app.services.auth_service.verify_registration_response",
            lambda **kwargs: SimpleNamespace(
                credential_id=b"new-credential",
                credential_public_key=b"new-public-key",
                sign_count=0,
            ),
        )

        response = auth_client.post("/api/auth/passkey/register/verify", json={
            "response": {"id": "new-credential"},
            "device_name": "Laptop",
        })

        credential_id = bytes_to_base64url(b"new-credential")
        assert response.json() == {"verified": True, "credentialId": credential_id}
        db_session.expire_all()
        stored = db_session.get(AuthPasskey, credential_id)
        assert stored.user_id == user.user_id
        assert stored.device_name == "Laptop"
        assert stored.public_key == bytes_to_base64url(b"new-public-key")

    def test_malformed_registration_is_400(self, auth_client, db_session):
        auth_client.post("/api/auth/passkey/register/options")

        response = auth_client.post("/api/auth/passkey/register/verify", json={"response": {"id": "x"}})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "Passkey registration could not be verified"}
        assert db_session.query(AuthPasskey).count() == 0
