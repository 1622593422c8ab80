from collections.abc import Mapping
from typing import Protocol

from pgwarden._types import Identity

LOGIN_HEADER = "x-auth-login"
NAME_HEADER = "x-auth-name"
EMAIL_HEADER = "x-auth-email"
AUTHORIZATION_HEADER = "authorization"
SESSION_HEADER = "mcp-session-id"


class IdentityProvider(Protocol):
    """Supplies the verified caller for a request, or None when unauthenticated."""

    def resolve(self, headers: Mapping[str, str]) -> Identity | None: ...

    def session_id(self, headers: Mapping[str, str], identity: Identity) -> str: ...


class HeaderIdentityProvider:
    """Reads the identity an upstream OAuth proxy attached to the request.

    The proxy completes the provider handshake and forwards the user's login,
    display name, email and delegated access token as headers.  Header lookup
    is case-insensitive; the login value itself is kept verbatim.
    """

    def resolve(self, headers: Mapping[str, str]) -> Identity | None:
        normalized = {k.lower(): v for k, v in headers.items()}
        login = normalized.get(LOGIN_HEADER, "").strip()
        if not login:
            return None

        token = normalized.get(AUTHORIZATION_HEADER, "")
        if token.lower().startswith("bearer "):
            token = token[len("bearer "):].strip()

        return Identity(
            login=login,
            name=normalized.get(NAME_HEADER, "").strip(),
            email=normalized.get(EMAIL_HEADER, "").strip(),
            access_token=token,
        )

    def session_id(self, headers: Mapping[str, str], identity: Identity) -> str:
        normalized = {k.lower(): v for k, v in headers.items()}
        return normalized.get(SESSION_HEADER, "").strip() or identity.login
