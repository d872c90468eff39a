"""
Auth routes: DJ login gate, sign-in/sign-up form, email confirmation
callback, logout and the /api/me lookup.
"""

import logging
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.responses import RedirectResponse

from ..auth import (
    CODE_VERIFIER_COOKIE,
    AuthError,
    clear_session_cookies,
    exchange_code_for_session,
    get_access_token,
    get_optional_user,
    set_code_verifier_cookie,
    set_session_cookies,
    sign_in_with_password,
    sign_out,
    sign_up,
    verify_email_token,
)
from ..config import SITE_URL
from ..models import User
from ..shared.validators import safe_next_path
from ..templating import redirect_with, render

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])

SIGNUP_SUCCESS_MESSAGE = (
    "Signup successful. Check your email to confirm. "
    "After confirming, you'll be sent to your profile setup."
)
DEFAULT_AFTER_LOGIN = "/dashboard/profile"


def _login_url(mode: str, message: Optional[str] = None, next_path: Optional[str] = None):
    return redirect_with("/login", dj=1, mode=mode, msg=message, next=next_path)


@router.get("/login")
async def login_page(
    request: Request,
    dj: Optional[str] = Query(None),
    mode: Optional[str] = Query(None),
    msg: Optional[str] = Query(None),
    next: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    message: Optional[str] = Query(None),
    current_user: Optional[User] = Depends(get_optional_user),
):
    """Without ?dj=1 this is the 'are you a DJ?' gate; with it, the auth form"""
    next_path = safe_next_path(next, DEFAULT_AFTER_LOGIN)
    if error == "missing_code":
        msg = msg or "The confirmation link is missing its code. Please sign in."
    elif error:
        msg = msg or message or "Sign-in link could not be verified. Please sign in."

    return render(
        request,
        "auth/login.html",
        {
            "current_user": current_user,
            "is_dj_access": (dj or "").strip() == "1",
            "mode": "signup" if mode == "signup" else "signin",
            "msg": msg,
            "next_path": next_path,
            "dj_link": f"/login?dj=1&next={quote(next_path, safe='')}",
        },
    )


@router.post("/login")
async def login_submit(
    mode: str = Form("signin"),
    dj: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    next: str = Form(""),
):
    action_mode = "signup" if mode == "signup" else "signin"
    if dj.strip() != "1":
        return RedirectResponse("/login", status_code=303)

    email = email.strip().lower()
    next_path = safe_next_path(next, DEFAULT_AFTER_LOGIN)
    if not email or not password:
        return _login_url(action_mode, "Email and password are required.", next_path)

    if action_mode == "signup":
        redirect_to = f"{SITE_URL}/auth/callback?next={quote(DEFAULT_AFTER_LOGIN, safe='')}"
        try:
            verifier = await sign_up(email, password, redirect_to)
        except AuthError as e:
            return _login_url("signup", e.message, next_path)

        logger.info(f"✅ Sign-up started for {email}")
        response = _login_url("signin", SIGNUP_SUCCESS_MESSAGE)
        if verifier:
            set_code_verifier_cookie(response, verifier)
        return response

    try:
        session = await sign_in_with_password(email, password)
    except AuthError as e:
        return _login_url("signin", e.message, next_path)

    logger.info(f"✅ Signed in: {email}")
    response = RedirectResponse(next_path, status_code=303)
    set_session_cookies(response, session)
    return response


@router.get("/auth/callback")
async def auth_callback(
    request: Request,
    code: Optional[str] = Query(None),
    token_hash: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    next: Optional[str] = Query(None),
):
    """Email confirmation landing: PKCE code exchange or token-hash verification"""
    next_path = safe_next_path(next, DEFAULT_AFTER_LOGIN)

    try:
        if code:
            verifier = request.cookies.get(CODE_VERIFIER_COOKIE)
            if not verifier:
                raise AuthError("Confirmation link expired in this browser. Please sign in.")
            session = await exchange_code_for_session(code, verifier)
        elif token_hash and type:
            session = await verify_email_token(token_hash, type)
        else:
            return redirect_with("/login", error="missing_code")
    except AuthError as e:
        logger.warning(f"⚠️ Auth callback failed: {e.message}")
        return redirect_with("/login", error="auth_callback_failed", message=e.message)

    response = RedirectResponse(next_path, status_code=303)
    if session.get("access_token"):
        set_session_cookies(response, session)
    response.delete_cookie(CODE_VERIFIER_COOKIE, path="/")
    return response


@router.post("/logout")
async def logout(request: Request):
    token = get_access_token(request)
    if token:
        try:
            await sign_out(token)
        except AuthError as e:
            logger.warning(f"⚠️ Provider sign-out failed, clearing cookies anyway: {e.message}")

    response = RedirectResponse("/", status_code=303)
    clear_session_cookies(response)
    return response


@router.get("/api/me")
async def me(current_user: Optional[User] = Depends(get_optional_user)):
    if not current_user:
        return {"user": None}
    return {"user": {"id": current_user.auth_uid, "email": current_user.email}}


__all__ = ["router"]
