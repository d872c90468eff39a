"""
Hosted auth integration.

Uses the Supabase SDK auth client for password sign-in, PKCE sign-up
confirmation, email-token verification, user lookup, session refresh and
sign-out. Sessions live in httponly cookies; every authenticated request
resolves the provider user to a local ``User`` row and sets the RLS context.
"""

import asyncio
import logging
from typing import Any, Optional
from urllib.parse import quote

from fastapi import Depends, HTTPException, Request
from fastapi.responses import Response
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from supabase import create_client
from supabase.client import ClientOptions
from supabase_auth import SyncSupportedStorage
from supabase_auth.errors import AuthApiError, AuthRetryableError
from supabase_auth.errors import AuthError as ProviderAuthError

from .config import AUTH_ANON_KEY, AUTH_URL, SESSION_COOKIE_SECURE
from .database import get_db
from .models import User
from .security_middleware import set_rls_context, use_service_role

logger = logging.getLogger(__name__)

ACCESS_TOKEN_COOKIE = "sb-access-token"
REFRESH_TOKEN_COOKIE = "sb-refresh-token"
CODE_VERIFIER_COOKIE = "sb-code-verifier"
CODE_VERIFIER_MAX_AGE = 60 * 60  # confirmation links must be opened within an hour
REFRESH_TOKEN_MAX_AGE = 60 * 60 * 24 * 30

# Set by get_optional_user when it had to refresh; written back as cookies by main.py
REFRESHED_SESSION_STATE = "refreshed_session"


class AuthError(Exception):
    """Auth provider rejected a request; message is safe to show the user"""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


# ============================================
# Provider calls
# ============================================


class RequestStorage(SyncSupportedStorage):
    """
    Per-call storage for the SDK.

    The PKCE code verifier the SDK writes during sign-up is kept apart so it can
    travel to the confirmation callback in a cookie instead of server memory.
    """

    def __init__(self, code_verifier: Optional[str] = None):
        self.items: dict[str, str] = {}
        self.code_verifier = code_verifier

    def get_item(self, key: str) -> Optional[str]:
        if key.endswith("-code-verifier"):
            return self.code_verifier
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if key.endswith("-code-verifier"):
            self.code_verifier = value
        else:
            self.items[key] = value

    def remove_item(self, key: str) -> None:
        if key.endswith("-code-verifier"):
            self.code_verifier = None
        else:
            self.items.pop(key, None)


def _auth_client(storage: Optional[RequestStorage] = None):
    """A fresh SDK auth client; no session state is shared between requests"""
    if not AUTH_URL or not AUTH_ANON_KEY:
        logger.error("❌ AUTH_URL or AUTH_ANON_KEY not configured")
        raise AuthError("Authentication is not configured", status_code=500)

    options = ClientOptions(
        flow_type="pkce",
        auto_refresh_token=False,
        persist_session=False,
        storage=storage or RequestStorage(),
    )
    return create_client(AUTH_URL, AUTH_ANON_KEY, options=options).auth


async def _call(action: str, func, *args) -> Any:
    """Run a blocking SDK call off the event loop and map its errors to AuthError"""
    try:
        return await asyncio.to_thread(func, *args)
    except AuthRetryableError as e:
        logger.error(f"❌ Auth provider unreachable ({action}): {e}")
        raise AuthError("Authentication service unavailable. Please try again.", 503) from e
    except AuthApiError as e:
        logger.warning(f"⚠️ Auth provider rejected {action}: HTTP {e.status} {e.message}")
        raise AuthError(e.message, status_code=e.status or 400) from e
    except ProviderAuthError as e:
        logger.warning(f"⚠️ Auth {action} failed: {e.message}")
        raise AuthError(e.message, status_code=getattr(e, "status", None) or 400) from e


def _user_dict(user) -> dict:
    if user is None:
        return {}
    return {"id": user.id, "email": user.email}


def _session_dict(auth_response) -> dict:
    """Plain dict of the SDK's AuthResponse for the cookie helpers"""
    session = auth_response.session
    user = auth_response.user or (session.user if session else None)
    data = {"user": _user_dict(user)}
    if session:
        data.update(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            expires_in=session.expires_in,
        )
    return data


def _sign_in(email: str, password: str) -> dict:
    response = _auth_client().sign_in_with_password({"email": email, "password": password})
    return _session_dict(response)


def _sign_up(email: str, password: str, redirect_to: str) -> Optional[str]:
    storage = RequestStorage()
    _auth_client(storage).sign_up(
        {"email": email, "password": password, "options": {"email_redirect_to": redirect_to}}
    )
    return storage.code_verifier


def _exchange_code(code: str, code_verifier: str) -> dict:
    client = _auth_client(RequestStorage(code_verifier))
    response = client.exchange_code_for_session(
        {"auth_code": code, "code_verifier": code_verifier}
    )
    return _session_dict(response)


def _verify_token_hash(token_hash: str, token_type: str) -> dict:
    response = _auth_client().verify_otp({"token_hash": token_hash, "type": token_type})
    return _session_dict(response)


def _get_user(access_token: str) -> dict:
    response = _auth_client().get_user(access_token)
    if response is None or response.user is None:
        raise AuthError("Session expired", status_code=401)
    return _user_dict(response.user)


def _refresh(refresh_token: str) -> dict:
    return _session_dict(_auth_client().refresh_session(refresh_token))


def _sign_out(access_token: str) -> None:
    _auth_client().admin.sign_out(access_token)


async def sign_in_with_password(email: str, password: str) -> dict:
    return await _call("sign-in", _sign_in, email, password)


async def sign_up(email: str, password: str, redirect_to: str) -> Optional[str]:
    """
    Create the account; the provider emails a confirmation link to redirect_to.
    Returns the PKCE code verifier the callback needs to finish the sign-up.
    """
    return await _call("sign-up", _sign_up, email, password, redirect_to)


async def exchange_code_for_session(code: str, code_verifier: str) -> dict:
    return await _call("code exchange", _exchange_code, code, code_verifier)


async def verify_email_token(token_hash: str, token_type: str) -> dict:
    return await _call("email verification", _verify_token_hash, token_hash, token_type)


async def fetch_user(access_token: str) -> dict:
    return await _call("user lookup", _get_user, access_token)


async def refresh_session(refresh_token: str) -> dict:
    return await _call("session refresh", _refresh, refresh_token)


async def sign_out(access_token: str) -> None:
    await _call("sign-out", _sign_out, access_token)


# ============================================
# Session cookies
# ============================================


def set_session_cookies(response: Response, session: dict) -> None:
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        session["access_token"],
        max_age=int(session.get("expires_in") or 3600),
        httponly=True,
        secure=SESSION_COOKIE_SECURE,
        samesite="lax",
        path="/",
    )
    if session.get("refresh_token"):
        response.set_cookie(
            REFRESH_TOKEN_COOKIE,
            session["refresh_token"],
            max_age=REFRESH_TOKEN_MAX_AGE,
            httponly=True,
            secure=SESSION_COOKIE_SECURE,
            samesite="lax",
            path="/",
        )


def clear_session_cookies(response: Response) -> None:
    for name in (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE, CODE_VERIFIER_COOKIE):
        response.delete_cookie(name, path="/")


def set_code_verifier_cookie(response: Response, verifier: str) -> None:
    response.set_cookie(
        CODE_VERIFIER_COOKIE,
        verifier,
        max_age=CODE_VERIFIER_MAX_AGE,
        httponly=True,
        secure=SESSION_COOKIE_SECURE,
        samesite="lax",
        path="/",
    )


def get_access_token(request: Request) -> Optional[str]:
    """Access token from the session cookie, or an Authorization: Bearer header"""
    token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if token:
        return token
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return None


# ============================================
# Local user mirror
# ============================================


def sync_local_user(db: Session, auth_uid: str, email: str) -> User:
    """
    Find or create the local User for a provider identity.
    An existing row with the same email is re-linked to the new auth_uid.
    """
    use_service_role(db)

    user = db.query(User).filter(User.auth_uid == auth_uid).first()
    if user:
        return user

    if email:
        existing_user = db.query(User).filter(User.email == email).first()
        if existing_user:
            logger.info(f"🔄 Re-linking user {email} to auth uid {auth_uid}")
            existing_user.auth_uid = auth_uid
            db.commit()
            db.refresh(existing_user)
            return existing_user

    logger.info(f"🆕 Creating local user: {email}")
    user = User(auth_uid=auth_uid, email=email, is_dj=True)
    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error(f"❌ Email {email} was taken by another account (race condition)")
        raise HTTPException(
            status_code=409,
            detail="This email is already registered. Please sign in with your existing account.",
        ) from e
    db.refresh(user)
    return user


# ============================================
# Dependencies
# ============================================


async def _resolve_auth_user(request: Request) -> Optional[dict]:
    """
    Provider user for the request's session.

    An expired or rejected access token falls back to the refresh cookie; the
    new session is left on request.state for apply_refreshed_session.
    """
    token = get_access_token(request)
    if token:
        try:
            return await fetch_user(token)
        except AuthError as e:
            if e.status_code >= 500:
                logger.error(f"❌ Could not validate session: {e.message}")
                return None
            logger.debug(f"Session rejected by auth provider: {e.message}")

    refresh_token = request.cookies.get(REFRESH_TOKEN_COOKIE)
    if not refresh_token:
        return None

    try:
        session = await refresh_session(refresh_token)
    except AuthError as e:
        logger.info(f"🔑 Session refresh failed, treating as signed out: {e.message}")
        return None
    if not session.get("access_token"):
        return None

    setattr(request.state, REFRESHED_SESSION_STATE, session)
    logger.info("🔄 Session refreshed")
    return session.get("user") or None


def apply_refreshed_session(request: Request, response: Response) -> None:
    """Write a session refreshed during this request back to the browser"""
    session = getattr(request.state, REFRESHED_SESSION_STATE, None)
    if session:
        set_session_cookies(response, session)


async def get_optional_user(request: Request, db: Session = Depends(get_db)) -> Optional[User]:
    """Signed-in DJ, or None for anonymous visitors and sessions that cannot be refreshed"""
    auth_user = await _resolve_auth_user(request)
    if not auth_user:
        return None

    auth_uid = auth_user.get("id")
    email = (auth_user.get("email") or "").lower()
    if not auth_uid:
        logger.error(f"❌ Auth user payload missing id. Keys: {list(auth_user.keys())}")
        return None

    user = sync_local_user(db, auth_uid, email)
    set_rls_context(db, user.id)
    logger.debug(f"✅ User authenticated: {user.email}")
    return user


async def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    """JSON API variant: 401 when not signed in"""
    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


async def require_dj(request: Request, user: Optional[User] = Depends(get_optional_user)) -> User:
    """Page variant: send anonymous visitors to the login page and back"""
    if not user:
        target = request.url.path
        if request.url.query:
            target = f"{target}?{request.url.query}"
        raise HTTPException(
            status_code=303,
            detail="Login required",
            headers={"Location": f"/login?next={quote(target, safe='')}"},
        )
    return user
