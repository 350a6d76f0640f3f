from fastapi import APIRouter, Depends, HTTPException, Response

from app.api.dependencies import get_auth_service, get_current_user
from app.core.config import settings
from app.core.exceptions import AppError
from app.core.logger import logger
from app.models import User
from app.schemas.auth import EmailIn, LoginIn, LoginOut, PasskeyRegisterIn, PasswordSetupIn, SessionUserOut
from app.services.auth_service import (
    AuthService,
    Credential,
    OtpCredential,
    PasskeyCredential,
    PasswordCredential,
)

router = APIRouter()


def _credential(payload: LoginIn) -> Credential:
    if payload.method == "password":
        return PasswordCredential(email=payload.email, password=payload.password or "")
    if payload.method == "otp":
        return OtpCredential(email=payload.email, code=payload.code or "")
    return PasskeyCredential(email=payload.email, response=payload.response or {})


@router.post("/login", response_model=LoginOut)
def login(
        payload: LoginIn,
        response: Response,
        auth: AuthService = Depends(get_auth_service),
):
    """Verify a password, OTP or passkey credential and open a session."""
    try:
        result = auth.login(_credential(payload))
        response.set_cookie(
            settings.SESSION_COOKIE_NAME,
            result["token"],
            max_age=settings.SESSION_TTL_HOURS * 3600,
            httponly=True,
            samesite="lax",
            secure=not settings.DEBUG,
        )
        return {"success": True, "token": result["token"], "expiresAt": result["expiresAt"], "user": result["user"]}
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"login failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to log in")


@router.post("/logout")
def logout(
        response: Response,
        user: User = Depends(get_current_user),
        auth: AuthService = Depends(get_auth_service),
):
    try:
        closed = auth.logout(user)
        response.delete_cookie(settings.SESSION_COOKIE_NAME)
        return {"success": True, "closedSessions": closed}
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"logout failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to log out")


@router.get("/session")
def current_session(user: User = Depends(get_current_user)):
    return {"authenticated": True, "user": SessionUserOut.model_validate(user)}


@router.get("/user/lookup")
def lookup_user(email: str, auth: AuthService = Depends(get_auth_service)):
    try:
        return auth.lookup_user(email)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"lookup_user failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to look up user")


@router.get("/password/check")
def password_check(email: str, auth: AuthService = Depends(get_auth_service)):
    try:
        return auth.password_status(email)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"password_check failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to check password")


@router.post("/password/setup")
def password_setup(payload: PasswordSetupIn, auth: AuthService = Depends(get_auth_service)):
    try:
        return auth.setup_password(payload.email, payload.password)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"password_setup failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to set password")


@router.post("/otp/send")
def send_otp(payload: EmailIn, auth: AuthService = Depends(get_auth_service)):
    try:
        return auth.send_otp(payload.email)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"send_otp failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to send code")


@router.post("/passkey/register/options")
def passkey_register_options(
        user: User = Depends(get_current_user),
        auth: AuthService = Depends(get_auth_service),
):
    try:
        return auth.passkey_registration_options(user)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"passkey_register_options failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to create registration options")


@router.post("/passkey/register/verify")
def passkey_register_verify(
        payload: PasskeyRegisterIn,
        user: User = Depends(get_current_user),
        auth: AuthService = Depends(get_auth_service),
):
    try:
        return auth.verify_passkey_registration(user, payload.response, payload.device_name)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"passkey_register_verify failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to verify passkey registration")


@router.post("/passkey/authenticate/options")
def passkey_authenticate_options(payload: EmailIn, auth: AuthService = Depends(get_auth_service)):
    try:
        return auth.passkey_authentication_options(payload.email)
    except (AppError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"passkey_authenticate_options failed: {e}", exc_info=True)
        raise HTTPException(500, detail=str(e) or "Failed to create authentication options")
