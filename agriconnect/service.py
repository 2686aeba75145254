"""
Shared payment state for a signed-in user.

One ``PaymentService`` is created per session and handed to whatever needs
payment data: dashboards read it, checkout and account setup act through it.
Actions never raise for API failures; they return an ``ActionResult`` and
leave the message in ``state.error``.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from .client import AgriConnectClient
from .dashboard import PaymentSummary, summarize_transactions
from .errors import AgriConnectError, APIError
from .models import FarmerAccountRecord, InitializedPayment, Transaction
from .types import (
    ActionResult,
    FarmerPaymentAccount,
    InitializePaymentRequest,
    PaymentStatus,
)
from .validation import EMAIL_REGEX, parse_amount

logger = logging.getLogger(__name__)


@dataclass
class CurrentUser:
    id: str
    role: str = "buyer"
    email: str | None = None


@dataclass
class PaymentContextState:
    farmer_account: FarmerAccountRecord | None = None
    is_account_setup: bool = False
    account_verification_status: str = "pending"
    transactions: list[Transaction] = field(default_factory=list)
    total_earnings: Decimal = Decimal("0")
    is_loading: bool = False
    error: str | None = None
    current_payment: InitializedPayment | None = None
    payment_status: PaymentStatus = PaymentStatus.IDLE


class PaymentService:
    def __init__(self, client: AgriConnectClient, current_user: CurrentUser | None = None):
        self.client = client
        self.current_user = current_user
        self.state = PaymentContextState()

    def load(self) -> None:
        """Load everything the signed-in user's payment screens need."""
        if self.current_user is None:
            return
        if self.current_user.role == "farmer":
            self.load_farmer_account()
        self.load_transactions()

    def load_farmer_account(self) -> ActionResult:
        try:
            account = self.client.get_farmer_account()
        except APIError as e:
            self.state.is_account_setup = False
            return ActionResult(success=False, message=e.message)
        except AgriConnectError as e:
            logger.error(f"[PaymentService] Error loading farmer payment account: {e}")
            self.state.error = "Failed to load payment account information"
            return ActionResult(success=False, message=self.state.error)

        self.state.farmer_account = account
        self.state.is_account_setup = True
        self.state.account_verification_status = account.verification_status
        self.state.total_earnings = account.total_earnings
        return ActionResult(success=True, data=account)

    def load_transactions(
        self,
        status: str | None = None,
        page: int = 1,
        limit: int = 20,
        type: str | None = None,
    ) -> ActionResult:
        self.state.is_loading = True
        try:
            result = self.client.get_transactions(status=status, page=page, limit=limit, type=type)
        except AgriConnectError as e:
            logger.error(f"[PaymentService] Error loading transactions: {e}")
            self.state.error = "Failed to load transaction history"
            return ActionResult(success=False, message=self.state.error)
        finally:
            self.state.is_loading = False

        self.state.transactions = result.transactions
        return ActionResult(success=True, data=result)

    def setup_farmer_account(self, account: FarmerPaymentAccount) -> ActionResult:
        self.state.is_loading = True
        self.state.error = None
        try:
            record = self.client.setup_farmer_account(account)
        except AgriConnectError as e:
            self.state.error = str(e)
            return ActionResult(success=False, message=str(e))
        finally:
            self.state.is_loading = False

        self.state.farmer_account = record
        self.state.is_account_setup = True
        self.state.account_verification_status = "pending"
        return ActionResult(success=True, data=record)

    def verify_bank_account(self, account_number: str, bank_code: str) -> ActionResult:
        try:
            result = self.client.verify_bank_account(account_number, bank_code)
        except AgriConnectError as e:
            return ActionResult(success=False, message=str(e))
        return ActionResult(success=True, data=result)

    def initialize_payment(self, request: InitializePaymentRequest) -> ActionResult:
        self.state.is_loading = True
        self.state.error = None
        self.state.payment_status = PaymentStatus.PROCESSING
        try:
            payment = self.client.initialize_payment(request)
        except AgriConnectError as e:
            self.state.error = str(e)
            self.state.payment_status = PaymentStatus.IDLE
            return ActionResult(success=False, message=str(e))
        finally:
            self.state.is_loading = False

        self.state.current_payment = payment
        return ActionResult(success=True, data=payment)

    def verify_payment(self, reference: str) -> ActionResult:
        try:
            verified = self.client.verify_payment(reference)
        except AgriConnectError as e:
            self.state.payment_status = PaymentStatus.FAILED
            self.state.error = str(e)
            return ActionResult(success=False, message=str(e))

        succeeded = verified.status == PaymentStatus.SUCCESS.value
        self.state.payment_status = PaymentStatus.SUCCESS if succeeded else PaymentStatus.FAILED
        self.load_transactions()
        return ActionResult(success=True, data=verified)

    def process_refund(self, transaction_id: str, amount: Decimal | None = None, reason: str = "") -> ActionResult:
        self.state.is_loading = True
        self.state.error = None
        try:
            refund = self.client.process_refund(transaction_id, amount=amount, reason=reason)
        except AgriConnectError as e:
            self.state.error = str(e)
            return ActionResult(success=False, message=str(e))
        finally:
            self.state.is_loading = False

        self.load_transactions()
        return ActionResult(success=True, data=refund)

    def get_supported_banks(self) -> ActionResult:
        try:
            banks = self.client.get_supported_banks()
        except AgriConnectError as e:
            return ActionResult(success=False, message=str(e))
        return ActionResult(success=True, data=banks)

    def clear_error(self) -> None:
        self.state.error = None

    def reset_payment_status(self) -> None:
        self.state.payment_status = PaymentStatus.IDLE
        self.state.current_payment = None
        self.state.error = None

    def get_payment_summary(self) -> PaymentSummary:
        farmer_id = self.current_user.id if self.current_user else None
        return summarize_transactions(self.state.transactions, farmer_id)

    def get_validation_status(self, form: dict[str, Any]) -> dict[str, Any]:
        """Quick checkout readiness check used before handing off to ``BuyerPayment``."""
        amount = parse_amount(form.get("amount"))
        checks = {
            "email": (bool(EMAIL_REGEX.fullmatch(form.get("email") or "")), "Valid email address is required"),
            "amount": (amount is not None and amount > 0, "Amount must be greater than 0"),
            "terms": (form.get("agreed_to_terms") is True, "You must agree to the terms and conditions"),
        }
        return {
            "is_valid": all(ok for ok, _ in checks.values()),
            "errors": [{"field": name, "message": message} for name, (ok, message) in checks.items() if not ok],
        }
