import logging
import functools

from fastapi import APIRouter, Depends, HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session

from ..database import get_db
from .. import models, schemas
from ..auth import get_current_user
from ..errors import APIError, InvalidToken
from ..identity import IdentityVerifier, get_identity_verifier, resolve_or_create
from ..tokens import TokenService, get_token_service

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)


def rate_limit(limit: str):
    """Apply ``limit`` unless the serving app was built with ``testing`` settings."""

    def decorator(func):
        limited = limiter.limit(limit)(func)

        @functools.wraps(func)
        async def wrapper(*args, request: Request, **kwargs):
            if request.app.state.settings.testing:
                return await func(*args, request=request, **kwargs)
            return await limited(*args, request=request, **kwargs)

        return wrapper

    return decorator


router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _auth_response(user: models.User, tokens: TokenService) -> schemas.AuthResponse:
    pair = tokens.issue(user)
    return schemas.AuthResponse(
        user=schemas.UserOut.model_validate(user),
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        expires_in=pair.expires_in,
    )


@router.post("/google", response_model=schemas.AuthResponse)
@rate_limit("10/minute")
async def google_login(
    request: Request,
    body: schemas.GoogleTokenRequest,
    db: Session = Depends(get_db),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
    tokens: TokenService = Depends(get_token_service),
):
    try:
        identity = verifier.verify(body.token)
    except InvalidToken:
        raise APIError(401, "invalid_token", "Invalid Google ID token")
    user = resolve_or_create(db, identity)
    logger.info("google login for user %s", user.id)
    return _auth_response(user, tokens)


@router.post("/refresh", response_model=schemas.AuthResponse)
@rate_limit("30/minute")
async def refresh_token(
    request: Request,
    body: schemas.RefreshTokenRequest,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    try:
        claims = tokens.validate(body.refresh_token)
    except InvalidToken:
        raise APIError(401, "invalid_token", "Invalid refresh token")
    user = db.get(models.User, claims.user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return _auth_response(user, tokens)


@router.post("/logout")
async def logout(user: models.User = Depends(get_current_user)):
    # tokens are not revoked; the client discards them
    return schemas.envelope(message="Logged out successfully")


@router.get("/me")
async def me(user: models.User = Depends(get_current_user)):
    return schemas.envelope(schemas.UserOut.model_validate(user))
