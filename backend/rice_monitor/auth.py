"""Bearer-token gate shared by every protected route."""

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from . import models
from .database import get_db
from .errors import InvalidToken
from .tokens import TokenService, get_token_service

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(status_code=401, detail=message, headers={"WWW-Authenticate": "Bearer"})


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> models.User:
    if credentials is None:
        if request.headers.get("Authorization"):
            raise _unauthorized("Bearer token required")
        raise _unauthorized("Authorization header required")
    try:
        claims = tokens.validate(credentials.credentials)
    except InvalidToken:
        raise _unauthorized("Invalid token")
    user = db.get(models.User, claims.user_id)
    if user is None:
        raise _unauthorized("User not found")
    request.state.user = user
    request.state.user_id = user.id
    request.state.user_role = user.role
    return user


async def require_admin(user: models.User = Depends(get_current_user)) -> models.User:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
