"""Identity provider that asks a hosted auth service who owns a token.

Calls ``GET {auth_url}/user`` with the caller's bearer token; a 200 reply
carries the user object whose ``id`` is the verified user id.  Any other
reply means the token is not verified.
"""

from __future__ import annotations

import httpx
import structlog

from storefront.domain.gateway.identity_provider import IdentityProvider

log = structlog.get_logger(__name__)


class HttpIdentityProvider(IdentityProvider):

    def __init__(
        self,
        auth_url: str,
        api_key: str | None = None,
        client: httpx.Client | None = None,
        timeout: float = 5.0,
    ) -> None:
        self._auth_url = auth_url.rstrip("/")
        self._api_key = api_key
        self._client = client or httpx.Client(timeout=timeout)

    def resolve(self, token: str) -> str | None:
        headers = {"Authorization": f"Bearer {token}"}
        if self._api_key:
            headers["apikey"] = self._api_key
        try:
            response = self._client.get(f"{self._auth_url}/user", headers=headers)
        except httpx.HTTPError as exc:
            log.warning("identity_provider_unreachable", error=str(exc))
            return None
        if response.status_code != 200:
            return None
        try:
            body = response.json()
        except ValueError:
            return None
        user_id = body.get("id") if isinstance(body, dict) else None
        return str(user_id) if user_id else None
