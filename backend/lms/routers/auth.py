"""Login and token refresh endpoints.

- POST /api/auth/login
- POST /api/auth/refresh
- GET  /api/auth/me
"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlmodel import Session
import jwt
from ..auth import get_current_user
from ..config import settings
from ..database import get_session
from .. import models, services
from ..schemas import LoginIn, MeOut, RefreshIn, TokenOut
from ..utils.rate_limit import LoginAttemptLimiter

router = APIRouter(prefix="/api/auth", tags=["Authentication"])
logger = logging.getLogger("lms.api")
login_limiter = LoginAttemptLimiter(settings.LOGIN_MAX_FAILURES, settings.LOGIN_WINDOW_SECONDS)


def _limiter_key(request: Request, username: str) -> str:
    return f"{request.client.host if request.client else 'unknown'}:{username.lower()}"


@router.post('/login', response_model=TokenOut)
def login(payload: LoginIn, request: Request, db: Session = Depends(get_session)):
    """Authenticate a user and return an access/refresh token pair.

    Repeated failures for the same client and username are throttled
    with HTTP 429 until the window passes.
    """
    key = _limiter_key(request, payload.username)
    retry_after = login_limiter.retry_after(key)
    if retry_after:
        raise HTTPException(
            status_code=429,
            detail=f"too many failed logins; retry after {retry_after}s",
            headers={"Retry-After": str(retry_after)},
        )
    tokens = services.AuthService(db).authenticate(payload.username, payload.password)
    if not tokens:
        login_limiter.record_failure(key)
        logger.warning("login failed for %s", payload.username)
        raise HTTPException(status_code=401, detail='invalid credentials')
    login_limiter.reset(key)
    return tokens


@router.post('/refresh', response_model=TokenOut)
def refresh(payload: RefreshIn, db: Session = Depends(get_session)):
    """Exchange a refresh token for a fresh access token."""
    try:
        return services.AuthService(db).refresh(payload.refresh_token)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail='refresh token expired')
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail='invalid refresh token')


@router.get('/me', response_model=MeOut)
def me(user: models.User = Depends(get_current_user)):
    return {'id': user.id, 'username': user.username, 'roles': user.role_names}
