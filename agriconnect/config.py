import os
from dataclasses import dataclass
from decimal import Decimal

DEFAULT_API_URL = "http://localhost:5001/api"
DEFAULT_PUBLIC_KEY = "pk_test_6134da91ac4299dd1b3e12340329c5fbb6794acc"
DEFAULT_TIMEOUT_SECONDS = 30

CURRENCY = "GHS"
CURRENCY_SYMBOL = "GH₵"
MINOR_UNITS = 100

MIN_AMOUNT = Decimal("1")
MAX_AMOUNT = Decimal("1000000")

RETRY_BASE_DELAY_SECONDS = 1
MAX_RETRIES = 3

ACCESS_TOKEN_KEY = "accessToken"
BANKS_CACHE_KEY = "ghanaBanks"


def _env_int(name: str, default: int, *, minimum: int | None = None) -> int:
    raw = os.getenv(name)
    value = default
    if raw is not None:
        try:
            value = int(raw)
        except ValueError:
            value = default
    if minimum is not None and value < minimum:
        return minimum
    return value


@dataclass(frozen=True)
class Settings:
    api_url: str = DEFAULT_API_URL
    public_key: str = DEFAULT_PUBLIC_KEY
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    storage_path: str | None = None

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_url=os.environ.get("AGRICONNECT_API_URL", DEFAULT_API_URL).rstrip("/"),
            public_key=os.environ.get("PAYSTACK_PUBLIC_KEY") or DEFAULT_PUBLIC_KEY,
            timeout_seconds=_env_int("AGRICONNECT_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS, minimum=1),
            storage_path=os.environ.get("AGRICONNECT_STORAGE_PATH") or None,
        )
