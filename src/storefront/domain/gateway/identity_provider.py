"""Port for the identity provider that verifies bearer tokens."""

from __future__ import annotations

from abc import ABC, abstractmethod


class IdentityProvider(ABC):

    @abstractmethod
    def resolve(self, token: str) -> str | None:
        """Return the user id for a verified token, or None."""
