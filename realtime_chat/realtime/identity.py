"""Resolve Socket.IO handshake credentials to a user identity.

The handshake carries the same simplejwt access token the REST API accepts.
Accepted locations, in order:
- ``auth={"token": ...}`` (socket.io-client ``auth`` option)
- query string ``token``
- ``Authorization: Bearer <token>`` header
- the HttpOnly access cookie set at login
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from http.cookies import SimpleCookie
from typing import Any
from urllib.parse import parse_qs

import jwt
from channels.db import database_sync_to_async
from django.conf import settings
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.state import token_backend
from rest_framework_simplejwt.tokens import AccessToken

from .exceptions import IdentityRejected

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HandshakeCredentials:
    token: str | None

    @classmethod
    def from_handshake(
        cls,
        environ: dict[str, Any],
        auth: Any | None = None,
    ) -> HandshakeCredentials:
        """Extract the access token from Socket.IO environ/auth.

        Handles python-socketio environ shapes across ASGI/WSGI servers.
        """

        if isinstance(auth, dict):
            auth_token = auth.get("token")
            if isinstance(auth_token, str) and auth_token:
                return cls(token=auth_token)

        scope: Any = environ
        if isinstance(environ, dict) and "asgi.scope" in environ:
            inner = environ.get("asgi.scope")
            if isinstance(inner, dict):
                scope = inner

        query_string: str | bytes = ""
        if isinstance(scope, dict) and "query_string" in scope:
            query_string = scope.get("query_string", b"")
        elif isinstance(environ, dict) and "QUERY_STRING" in environ:
            query_string = environ.get("QUERY_STRING", "")

        if isinstance(query_string, (bytes, bytearray)):
            query_string = query_string.decode(errors="ignore")

        token = parse_qs(str(query_string)).get("token", [None])[0]
        if isinstance(token, str) and token:
            return cls(token=token)

        authorization = _header(environ, scope, "authorization")
        if authorization:
            scheme, _, value = authorization.partition(" ")
            if scheme.lower() == "bearer" and value.strip():
                return cls(token=value.strip())

        cookie_header = _header(environ, scope, "cookie")
        if cookie_header:
            cookie_name = getattr(settings, "JWT_AUTH_COOKIE", "access_token")
            jar = SimpleCookie()
            jar.load(cookie_header)
            morsel = jar.get(cookie_name)
            if morsel is not None and morsel.value:
                return cls(token=morsel.value)

        return cls(token=None)


def _header(environ: Any, scope: Any, name: str) -> str | None:
    if isinstance(environ, dict):
        value = environ.get(f"HTTP_{name.upper()}")
        if isinstance(value, str) and value:
            return value
    if isinstance(scope, dict):
        for key, value in scope.get("headers", []) or []:
            if key.decode("latin-1").lower() == name:
                return value.decode("latin-1")
    return None


def _is_expired(raw_token: str) -> bool:
    """True only for a correctly signed token whose ``exp`` has passed."""
    try:
        claims = jwt.decode(
            raw_token,
            token_backend.get_verifying_key(raw_token),
            algorithms=[token_backend.algorithm],
            options={"verify_exp": False, "verify_aud": False, "verify_iss": False},
        )
    except jwt.InvalidTokenError:
        return False
    exp = claims.get("exp")
    return isinstance(exp, (int, float)) and exp <= time.time()


def resolve_access_token(raw_token: str) -> int:
    """Validate a simplejwt access token and return the active user's id."""

    jwt_auth = JWTAuthentication()
    try:
        validated = AccessToken(raw_token)
    except TokenError as exc:
        if _is_expired(raw_token):
            raise IdentityRejected(IdentityRejected.EXPIRED_CREDENTIAL) from exc
        raise IdentityRejected(IdentityRejected.INVALID_CREDENTIAL) from exc

    try:
        user = jwt_auth.get_user(validated)
    except AuthenticationFailed as exc:  # user not found / inactive, etc.
        raise IdentityRejected(IdentityRejected.INVALID_CREDENTIAL) from exc
    return int(user.id)


class IdentityVerifier:
    """Turn handshake credentials into a ``UserIdentity`` or reject them.

    Has no side effects beyond the lookup; it never touches the registry.
    """

    def __init__(self, resolver: Callable[[str], int] | None = None) -> None:
        self._resolver = resolver or resolve_access_token

    async def verify(self, credentials: HandshakeCredentials) -> int:
        if not credentials.token:
            raise IdentityRejected(IdentityRejected.MISSING_CREDENTIAL)
        return await database_sync_to_async(self._resolver)(credentials.token)
