"""Runtime settings read from the environment.

Every knob has a default that runs the whole pipeline locally: SQLite
under ``data/``, no payment processor (direct-success sessions) and no
identity provider beyond the static token table.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path

from storefront.infrastructure.payment.stripe_gateway import STRIPE_API_BASE

# When installed in editable mode the project root is the repo root.
_DATA_DIR = Path(__file__).resolve().parents[3] / "data"

_TRUE = {"1", "true", "yes", "on"}


class ConfigurationError(Exception):
    """An environment variable holds a value that cannot be used."""


@dataclass(frozen=True)
class Settings:

    database_url: str = f"sqlite:///{_DATA_DIR / 'storefront.db'}"
    public_origin: str = "http://localhost:3000"
    tax_rate: Decimal = Decimal("0.08")
    shipping_flat: Decimal = Decimal("15.00")
    stripe_secret_key: str | None = None
    stripe_api_base: str = STRIPE_API_BASE
    auth_url: str | None = None
    auth_api_key: str | None = None
    auth_tokens: Mapping[str, str] = field(default_factory=dict)
    reserve_before_payment: bool = False
    log_level: str = "INFO"
    log_json: bool = False

    @property
    def payments_enabled(self) -> bool:
        return bool(self.stripe_secret_key)

    @staticmethod
    def from_env(environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        defaults = Settings()
        return Settings(
            database_url=env.get("STOREFRONT_DATABASE_URL", defaults.database_url),
            public_origin=env.get("STOREFRONT_PUBLIC_ORIGIN", defaults.public_origin),
            tax_rate=_decimal(env, "STOREFRONT_TAX_RATE", defaults.tax_rate),
            shipping_flat=_decimal(env, "STOREFRONT_SHIPPING_FLAT", defaults.shipping_flat),
            stripe_secret_key=env.get("STRIPE_SECRET_KEY") or None,
            stripe_api_base=env.get("STRIPE_API_BASE", defaults.stripe_api_base),
            auth_url=env.get("STOREFRONT_AUTH_URL") or None,
            auth_api_key=env.get("STOREFRONT_AUTH_API_KEY") or None,
            auth_tokens=_token_table(env.get("STOREFRONT_AUTH_TOKENS", "")),
            reserve_before_payment=_flag(env, "STOREFRONT_RESERVE_BEFORE_PAYMENT"),
            log_level=env.get("STOREFRONT_LOG_LEVEL", defaults.log_level).upper(),
            log_json=_flag(env, "STOREFRONT_LOG_JSON"),
        )


def _decimal(env: Mapping[str, str], name: str, default: Decimal) -> Decimal:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = Decimal(raw)
    except InvalidOperation as exc:
        raise ConfigurationError(f"{name} must be a decimal number, got {raw!r}") from exc
    if not value.is_finite() or value < 0:
        raise ConfigurationError(f"{name} must be a non-negative number, got {raw!r}")
    return value


def _flag(env: Mapping[str, str], name: str) -> bool:
    return env.get(name, "").strip().lower() in _TRUE


def _token_table(raw: str) -> dict[str, str]:
    """Parse 'token:user,token:user'."""
    table: dict[str, str] = {}
    for pair in raw.split(","):
        pair = pair.strip()
        if not pair:
            continue
        if ":" not in pair:
            raise ConfigurationError(
                f"Invalid auth token entry '{pair}'. Expected 'token:user_id'."
            )
        token, user_id = pair.split(":", 1)
        table[token.strip()] = user_id.strip()
    return table
