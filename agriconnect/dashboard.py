"""Read-only views over fetched transactions for the farmer payment dashboard."""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable

from .models import Transaction, party_id
from .types import TransactionStatus

DATE_RANGES: dict[str, timedelta | None] = {
    "7days": timedelta(days=7),
    "30days": timedelta(days=30),
    "90days": timedelta(days=90),
    "all": None,
}


@dataclass
class PaymentSummary:
    total_earnings: Decimal = Decimal("0")
    total_transactions: int = 0
    successful_payments: int = 0
    pending_payments: int = 0
    average_transaction_amount: Decimal = Decimal("0")


@dataclass(frozen=True)
class TransactionFilters:
    status: str = "all"
    date_range: str = "30days"
    search_term: str = ""
    page: int = 1
    limit: int = 10

    def update(self, **changes) -> "TransactionFilters":
        """Apply filter changes; any change other than the page itself goes back to page 1."""
        if "page" not in changes:
            changes["page"] = 1
        return replace(self, **changes)

    def query(self) -> dict:
        return {
            "status": self.status if self.status != "all" else None,
            "page": self.page,
            "limit": self.limit,
        }


@dataclass(frozen=True)
class Badge:
    label: str
    color: str


STATUS_BADGES: dict[TransactionStatus, Badge] = {
    TransactionStatus.PENDING: Badge("Pending", "yellow"),
    TransactionStatus.PROCESSING: Badge("Processing", "blue"),
    TransactionStatus.SUCCESS: Badge("Success", "green"),
    TransactionStatus.FAILED: Badge("Failed", "red"),
    TransactionStatus.CANCELLED: Badge("Cancelled", "gray"),
    TransactionStatus.REFUNDED: Badge("Refunded", "purple"),
}

VERIFICATION_BADGES: dict[str, Badge] = {
    "verified": Badge("Verified", "green"),
    "pending": Badge("Pending Verification", "yellow"),
    "rejected": Badge("Verification Failed", "red"),
}


def summarize_transactions(transactions: Iterable[Transaction], farmer_id: str | None) -> PaymentSummary:
    transactions = list(transactions)
    if not transactions:
        return PaymentSummary()

    mine = [tx for tx in transactions if party_id(tx.farmer_id) == farmer_id]
    successful = [tx for tx in mine if tx.status == TransactionStatus.SUCCESS.value]
    pending = [tx for tx in mine if tx.status == TransactionStatus.PENDING.value]

    total_earnings = sum((tx.farmer_amount or Decimal("0") for tx in successful), Decimal("0"))
    count = len(successful)
    return PaymentSummary(
        total_earnings=total_earnings,
        total_transactions=count,
        successful_payments=count,
        pending_payments=len(pending),
        average_transaction_amount=total_earnings / count if count else Decimal("0"),
    )


def _matches_search(tx: Transaction, term: str) -> bool:
    term = term.strip().lower()
    if not term:
        return True
    buyer = tx.buyer_id
    haystack = [tx.reference, tx.channel or ""]
    if buyer is not None and not isinstance(buyer, str):
        haystack += [buyer.full_name, buyer.email or ""]
    return any(term in value.lower() for value in haystack)


def filter_transactions(
    transactions: Iterable[Transaction],
    status: str = "all",
    search_term: str = "",
    date_range: str = "30days",
    now: datetime | None = None,
) -> list[Transaction]:
    if date_range not in DATE_RANGES:
        raise ValueError(f"Unknown date range: {date_range}")
    window = DATE_RANGES[date_range]
    now = now or datetime.now(timezone.utc)

    result = []
    for tx in transactions:
        if status != "all" and tx.status != status:
            continue
        if window is not None and tx.created_at is not None:
            created = tx.created_at if tx.created_at.tzinfo else tx.created_at.replace(tzinfo=timezone.utc)
            if created < now - window:
                continue
        if not _matches_search(tx, search_term):
            continue
        result.append(tx)
    return result


def get_status_badge(status: str) -> Badge:
    try:
        return STATUS_BADGES[TransactionStatus(status)]
    except ValueError:
        return STATUS_BADGES[TransactionStatus.PENDING]


def get_verification_status_badge(status: str) -> Badge:
    return VERIFICATION_BADGES.get(status, VERIFICATION_BADGES["pending"])


def format_date(value: datetime | None) -> str:
    if value is None:
        return ""
    return value.strftime("%b %d, %Y, %I:%M %p")
