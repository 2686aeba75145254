"""Ghana mobile-money carriers and phone-prefix based detection."""

import re
from dataclasses import dataclass

from .types import MobileMoneyProvider


@dataclass(frozen=True)
class ProviderInfo:
    code: MobileMoneyProvider
    name: str
    channels: tuple[str, ...]
    prefixes: tuple[str, ...]

    @property
    def number_format(self) -> str:
        return ", ".join(f"0{p}" for p in self.prefixes)


MOBILE_MONEY_PROVIDERS: dict[MobileMoneyProvider, ProviderInfo] = {
    MobileMoneyProvider.MTN: ProviderInfo(
        code=MobileMoneyProvider.MTN,
        name="MTN Mobile Money",
        channels=("mtn",),
        prefixes=("24", "54", "55", "59"),
    ),
    MobileMoneyProvider.TELECEL: ProviderInfo(
        code=MobileMoneyProvider.TELECEL,
        name="Telecel Cash",
        channels=("telecel",),
        prefixes=("50",),
    ),
    MobileMoneyProvider.AIRTELTIGO: ProviderInfo(
        code=MobileMoneyProvider.AIRTELTIGO,
        name="AirtelTigo Money",
        channels=("atl",),
        prefixes=("26", "56", "27", "57"),
    ),
}

_PREFIX_TO_PROVIDER = {
    prefix: info.code
    for info in MOBILE_MONEY_PROVIDERS.values()
    for prefix in info.prefixes
}


def normalize_phone_number(phone_number: str) -> str:
    """Strip separators and the ``+233`` / ``0`` prefix, leaving the local subscriber number."""
    cleaned = re.sub(r"[\s\-()]", "", phone_number or "")
    if cleaned.startswith("+233"):
        return cleaned[4:]
    if cleaned.startswith("0"):
        return cleaned[1:]
    return cleaned


def detect_provider(phone_number: str) -> MobileMoneyProvider | None:
    return _PREFIX_TO_PROVIDER.get(normalize_phone_number(phone_number)[:2])


def get_provider_info(provider: MobileMoneyProvider | str) -> ProviderInfo | None:
    try:
        return MOBILE_MONEY_PROVIDERS[MobileMoneyProvider(provider)]
    except ValueError:
        return None


class ProviderSelection:
    """
    The mobile-money provider picked for a phone number.

    ``provider`` is only ever set for a well-formed number whose prefix belongs
    to a known carrier. For such a number it is the auto-detected carrier, or
    the one the user picked by hand (a number ported between carriers keeps its
    old prefix). The manual choice sticks through later edits of the number
    until ``clear`` is called; emptying the number field calls it.
    """

    def __init__(self):
        self.provider: MobileMoneyProvider | None = None
        self.manual_choice: MobileMoneyProvider | None = None

    def select(self, provider: MobileMoneyProvider | str | None) -> None:
        self.manual_choice = MobileMoneyProvider(provider) if provider else None

    def on_phone_number_changed(self, phone_number: str, is_valid: bool) -> MobileMoneyProvider | None:
        detected = detect_provider(phone_number) if phone_number and is_valid else None
        self.provider = (self.manual_choice or detected) if detected else None
        return self.provider

    def clear(self) -> None:
        self.provider = None
        self.manual_choice = None

