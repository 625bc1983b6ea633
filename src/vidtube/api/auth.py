"""Auth API — registration, login, token refresh, logout.

Learn: Routes for the session lifecycle:
- POST /auth/register → create a new account
- POST /auth/login → username-or-email/password → JWT pair + user
- POST /auth/refresh → refresh token → new pair (old token dies)
- POST /auth/logout → clear the stored refresh token

Tokens are returned in the JSON body and also set as HTTP-only,
SameSite cookies, so browser clients never touch them from JS.
"""

from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Response

from vidtube.auth.dependencies import get_account_service, get_current_user
from vidtube.auth.identity import TokenPair, UserIdentity
from vidtube.config import settings
from vidtube.schemas.user import (
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserRead,
)
from vidtube.services.account_service import AccountService

router = APIRouter(prefix="/auth")

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"


def _set_session_cookies(response: Response, tokens: TokenPair) -> None:
    cookie_opts = {
        "httponly": True,
        "secure": settings.cookie_secure,
        "samesite": settings.cookie_samesite,
    }
    response.set_cookie(
        ACCESS_COOKIE,
        tokens.access_token,
        max_age=settings.access_token_expire_minutes * 60,
        **cookie_opts,
    )
    response.set_cookie(
        REFRESH_COOKIE,
        tokens.refresh_token,
        max_age=settings.refresh_token_expire_days * 86400,
        **cookie_opts,
    )


def _clear_session_cookies(response: Response) -> None:
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(
            name,
            httponly=True,
            secure=settings.cookie_secure,
            samesite=settings.cookie_samesite,
        )


# ─── Register ────────────────────────────────────────────


@router.post("/register", response_model=UserRead, status_code=201)
async def register(
    body: RegisterRequest,
    svc: AccountService = Depends(get_account_service),
):
    """Create a new user account."""
    return await svc.register(
        username=body.username,
        email=body.email,
        fullname=body.fullname,
        password=body.password,
    )


# ─── Login ───────────────────────────────────────────────


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    response: Response,
    svc: AccountService = Depends(get_account_service),
):
    """Login with username or email and password → JWT tokens."""
    result = await svc.login(body.username or body.email, body.password)
    _set_session_cookies(response, result.tokens)
    return LoginResponse(
        access_token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
        user=UserRead.model_validate(result.user),
    )


# ─── Refresh ────────────────────────────────────────────


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    response: Response,
    body: Optional[RefreshRequest] = None,
    refresh_cookie: Optional[str] = Cookie(None, alias=REFRESH_COOKIE),
    svc: AccountService = Depends(get_account_service),
):
    """Exchange a refresh token for a new pair.

    Learn: A token in the body wins over the cookie, so API clients that
    track tokens themselves are never overridden by a stale browser cookie.
    """
    token = body.refresh_token if body and body.refresh_token else refresh_cookie
    tokens = await svc.refresh(token)
    _set_session_cookies(response, tokens)
    return TokenResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
    )


# ─── Logout ─────────────────────────────────────────────


@router.post("/logout")
async def logout(
    response: Response,
    user: UserIdentity = Depends(get_current_user),
    svc: AccountService = Depends(get_account_service),
):
    """Invalidate the current refresh token and clear cookies."""
    await svc.logout(user.id)
    _clear_session_cookies(response)
    return {"logged_out": True}
