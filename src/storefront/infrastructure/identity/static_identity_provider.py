"""Identity provider backed by a fixed token table (local / offline use)."""

from __future__ import annotations

from collections.abc import Mapping

from storefront.domain.gateway.identity_provider import IdentityProvider


class StaticIdentityProvider(IdentityProvider):

    def __init__(self, tokens: Mapping[str, str]) -> None:
        self._tokens = dict(tokens)

    def resolve(self, token: str) -> str | None:
        return self._tokens.get(token)
