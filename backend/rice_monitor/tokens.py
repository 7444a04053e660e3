"""Issue and validate the signed session tokens handed to API clients."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Request

from .errors import InvalidToken

ALGORITHM = "HS256"
ACCESS_TOKEN_TTL = timedelta(hours=1)
REFRESH_TOKEN_TTL = timedelta(days=7)
REQUIRED_CLAIMS = ("user_id", "email", "role", "exp", "iat")


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    email: str
    role: str
    expires_at: datetime


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int


class TokenService:
    """HS256 access/refresh tokens carrying user id, email and role.

    There is no revocation list: a token stays valid until it expires.
    """

    def __init__(
        self,
        secret: str,
        access_ttl: timedelta = ACCESS_TOKEN_TTL,
        refresh_ttl: timedelta = REFRESH_TOKEN_TTL,
    ):
        self.secret = secret
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    def _encode(self, user, ttl: timedelta, now: datetime) -> str:
        payload = {
            "user_id": str(user.id),
            "email": user.email,
            "role": user.role,
            "iat": now,
            "exp": now + ttl,
        }
        return jwt.encode(payload, self.secret, algorithm=ALGORITHM)

    def issue(self, user, now: datetime | None = None) -> TokenPair:
        now = now or datetime.now(timezone.utc)
        return TokenPair(
            access_token=self._encode(user, self.access_ttl, now),
            refresh_token=self._encode(user, self.refresh_ttl, now),
            expires_in=int(self.access_ttl.total_seconds()),
        )

    def validate(self, token: str) -> TokenClaims:
        try:
            data: dict = jwt.decode(
                token,
                self.secret,
                algorithms=[ALGORITHM],
                options={"require": list(REQUIRED_CLAIMS)},
            )
        except jwt.ExpiredSignatureError as e:
            raise InvalidToken("Token has expired") from e
        except jwt.InvalidTokenError as e:
            raise InvalidToken("Not a valid token") from e
        if not data.get("user_id"):
            raise InvalidToken("Token carries no user id")
        return TokenClaims(
            user_id=str(data["user_id"]),
            email=str(data["email"]),
            role=str(data["role"]),
            expires_at=datetime.fromtimestamp(data["exp"], tz=timezone.utc),
        )


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service
