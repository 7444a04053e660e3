"""Exchange a Google ID token for an internal user record.

The verifier follows google-auth's recommended flow: certificates are fetched
through a ``requests`` session wrapped in ``cachecontrol`` so Google's cache
headers are honoured between logins.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from threading import RLock
from typing import Protocol

import cachecontrol
import google.auth.transport.requests
import google.oauth2.id_token
import requests
from fastapi import Request
from sqlalchemy.orm import Session

from . import models
from .errors import InvalidToken

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "observer"


@dataclass(frozen=True)
class ExternalIdentity:
    email: str
    name: str = ""
    picture: str = ""


class IdentityVerifier(Protocol):
    def verify(self, assertion: str) -> ExternalIdentity: ...


class GoogleIdentityVerifier:
    """Verify Google-issued ID tokens against the configured OAuth client id."""

    def __init__(self, client_id: str):
        self.client_id = client_id
        self._session = None
        self._lock = RLock()

    @contextmanager
    def _locked_session(self):
        # the cached session is not thread safe
        with self._lock:
            if self._session is None:
                self._session = cachecontrol.CacheControl(requests.session())
            yield self._session

    def verify(self, assertion: str) -> ExternalIdentity:
        with self._locked_session() as session:
            request = google.auth.transport.requests.Request(session=session)
            try:
                idinfo = google.oauth2.id_token.verify_oauth2_token(
                    assertion, request, self.client_id or None
                )
            except ValueError as e:
                raise InvalidToken("Invalid Google ID token") from e
        if not idinfo or not idinfo.get("email"):
            raise InvalidToken("Google ID token carries no email")
        return ExternalIdentity(
            email=idinfo["email"],
            name=idinfo.get("name", ""),
            picture=idinfo.get("picture", ""),
        )


def resolve_or_create(db: Session, identity: ExternalIdentity) -> models.User:
    """Return the user for ``identity``, creating an observer on first sight.

    ``last_login_at`` is refreshed on every successful resolution.
    """
    now = models.utcnow()
    created = False
    user = db.query(models.User).filter(models.User.email == identity.email).first()
    if user is None:
        user = models.User(
            email=identity.email,
            name=identity.name,
            picture=identity.picture,
            role=DEFAULT_ROLE,
            created_at=now,
            updated_at=now,
        )
        db.add(user)
        created = True
    user.last_login_at = now
    db.commit()
    db.refresh(user)
    if created:
        logger.info("created user %s for %s", user.id, identity.email)
    return user


def get_identity_verifier(request: Request) -> IdentityVerifier:
    return request.app.state.identity_verifier
