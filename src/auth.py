from __future__ import annotations

import logging
from typing import Any

import anyio
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import id_token
from starlette.requests import Request as StarletteRequest

from mcp.server.auth.provider import AccessToken, TokenVerifier

from src.config import AUTH_COOKIE_NAME
from src.errors import AuthenticationError

logger = logging.getLogger(__name__)

ALLOWED_ISSUERS = {"https://accounts.google.com", "accounts.google.com"}


class AccountAccessToken(AccessToken):
    """Access token that also carries the identity provider's account id."""

    account_id: str
    email: str | None = None


class GoogleTokenVerifier(TokenVerifier):
    def __init__(self, client_id: str | None):
        self.client_id = client_id
        self._request = GoogleAuthRequest()

    def _claims_to_token(self, token: str, claims: dict[str, Any]) -> AccountAccessToken | None:
        if claims.get("iss") not in ALLOWED_ISSUERS:
            return None
        if self.client_id and claims.get("aud") != self.client_id:
            return None

        # Accounts are keyed by subject, so a token without one cannot own data.
        subject = claims.get("sub")
        email = claims.get("email")
        if not subject or not email or claims.get("email_verified") is not True:
            return None

        try:
            expires_at = int(claims["exp"])
        except (KeyError, TypeError, ValueError):
            return None

        return AccountAccessToken(
            token=token,
            client_id=str(claims.get("aud", "")),
            scopes=[],
            expires_at=expires_at,
            account_id=str(subject),
            email=email,
        )

    def _verify(self, token: str) -> AccountAccessToken | None:
        try:
            claims: dict[str, Any] = id_token.verify_oauth2_token(
                token, self._request, audience=self.client_id
            )
        except (ValueError, GoogleAuthError) as exc:
            logger.debug("Rejected ID token: %s", exc)
            return None
        return self._claims_to_token(token, claims)

    async def verify_token(self, token: str) -> AccountAccessToken | None:
        return await anyio.to_thread.run_sync(self._verify, token)


def extract_credential(request: StarletteRequest) -> str | None:
    """Bearer token from the Authorization header, falling back to the session cookie."""
    header = request.headers.get("authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()

    cookie = request.cookies.get(AUTH_COOKIE_NAME)
    if cookie:
        return cookie

    for name, value in request.cookies.items():
        if name.endswith("-auth-token") and value:
            logger.debug("Using auth cookie %s", name)
            return value
    return None


async def authenticate_request(
    request: StarletteRequest, verifier: TokenVerifier
) -> AccountAccessToken:
    credential = extract_credential(request)
    if not credential:
        raise AuthenticationError("Unauthorized")

    token = await verifier.verify_token(credential)
    if not isinstance(token, AccountAccessToken):
        logger.warning("Rejected credential for %s %s", request.method, request.url.path)
        raise AuthenticationError("Unauthorized")
    return token
