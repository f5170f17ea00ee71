"""Authentication helpers and FastAPI security dependencies.

This module decodes bearer tokens and provides the dependencies used by
the routers: `get_current_user` validates an access token and returns
the corresponding `User`, and `require_roles` builds a dependency that
also checks the user's roles.

Token verification raises HTTPExceptions on failure so the helpers can
be used directly inside route dependencies.
"""

import logging
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt
from sqlmodel import Session
from .database import get_session
from . import models, repositories, services

bearer_scheme = HTTPBearer()
logger = logging.getLogger("lms.auth")


def decode_token(token: str, expected_type: str = services.ACCESS_TOKEN):
    """Decode and verify a JWT token of the expected type.

    Returns the decoded payload on success or raises an HTTPException
    with status 401 on failure.
    """
    try:
        return services.decode_token(token, expected_type)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail='token expired')
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail='invalid token')


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(bearer_scheme),
    session: Session = Depends(get_session),
) -> models.User:
    """FastAPI dependency that returns the authenticated user.

    The function extracts the bearer token from the request, decodes it
    and performs a database lookup to return the `User` object. It raises
    an HTTPException(401) for any authentication issue.
    """
    payload = decode_token(credentials.credentials)
    user_id = payload.get('user_id')
    if not user_id:
        raise HTTPException(status_code=401, detail='invalid token payload')
    user = repositories.UserRepository(session).get(user_id)
    if not services.token_matches_user(payload, user):
        raise HTTPException(status_code=401, detail='user not found')
    return user


def require_roles(*roles: models.RoleName):
    """Build a dependency admitting users holding at least one of `roles`."""
    allowed = {r.value for r in roles}

    def _dependency(user: models.User = Depends(get_current_user)) -> models.User:
        if not allowed.intersection(user.role_names):
            logger.warning("access denied user=%s required=%s", user.username, sorted(allowed))
            raise HTTPException(status_code=403, detail='access denied')
        return user

    return _dependency


require_admin = require_roles(models.RoleName.ADMIN)
require_staff = require_roles(models.RoleName.ADMIN, models.RoleName.TEACHER)
require_teacher = require_roles(models.RoleName.TEACHER)


def ensure_self_or_admin(user: models.User, teacher_id: int) -> None:
    """Teachers may only look at their own records; admins see everything."""
    if user.has_role(models.RoleName.ADMIN.value):
        return
    if user.id != teacher_id:
        raise HTTPException(status_code=403, detail='teachers may only access their own data')
