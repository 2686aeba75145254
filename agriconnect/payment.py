"""
Buyer checkout: form state, validation and the payment state machine.

    idle --submit--> processing --popup success, verified--> success
                         |      --popup success, rejected--> failed
                         |      --popup closed-----------> cancelled
                         +------initialize or popup error-> idle (retryable)

``success`` and ``failed`` are terminal until ``reset()``. A cancelled payment
may be submitted again.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable

from .client import AgriConnectClient
from .config import CURRENCY, MINOR_UNITS, Settings
from .errors import AgriConnectError, PaymentStateError, PaymentVerificationError
from .models import VerifiedPayment
from .popup import PaymentPopup, PopupCancelled, PopupConfig, PopupSuccess
from .providers import ProviderSelection, get_provider_info
from .types import (
    ButtonState,
    InitializePaymentRequest,
    MobileMoneyProvider,
    OrderData,
    PaymentFormState,
    PaymentMethod,
    PaymentResult,
    PaymentStatus,
    ValidationResult,
)
from .validation import (
    completion_percentage,
    parse_amount,
    validate_amount,
    validate_email,
    validate_phone_number,
)

logger = logging.getLogger(__name__)

TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.IDLE: frozenset({PaymentStatus.PROCESSING}),
    PaymentStatus.PROCESSING: frozenset({
        PaymentStatus.IDLE,
        PaymentStatus.SUCCESS,
        PaymentStatus.FAILED,
        PaymentStatus.CANCELLED,
    }),
    PaymentStatus.SUCCESS: frozenset(),
    PaymentStatus.FAILED: frozenset(),
    PaymentStatus.CANCELLED: frozenset({PaymentStatus.PROCESSING}),
}

STATUS_MESSAGES: dict[PaymentStatus, str] = {
    PaymentStatus.IDLE: "Ready for payment",
    PaymentStatus.PROCESSING: "Payment is being processed",
    PaymentStatus.SUCCESS: "Payment completed successfully",
    PaymentStatus.FAILED: "Payment failed",
    PaymentStatus.CANCELLED: "Payment was cancelled",
}

POPUP_ERROR_MESSAGE = "Unable to open the payment window. Please try again."

METHOD_CHANNELS: dict[PaymentMethod, list[str]] = {
    PaymentMethod.CARD: ["card"],
    PaymentMethod.BANK_TRANSFER: ["bank"],
    PaymentMethod.MOBILE_MONEY: [],
}


def to_minor_units(amount: Decimal) -> int:
    return int((amount * MINOR_UNITS).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class BuyerPayment:
    """
    One checkout for one order.

    The object owns the form state for the lifetime of the checkout. Setters
    re-run validation and mobile-money provider detection; ``submit`` drives
    initialize -> popup -> verify and reports through ``on_success`` /
    ``on_error``.
    """

    def __init__(
        self,
        client: AgriConnectClient,
        popup: PaymentPopup,
        *,
        farmer_id: str,
        order: OrderData | None = None,
        public_key: str | None = None,
        on_success: Callable[[VerifiedPayment], None] | None = None,
        on_error: Callable[[str], None] | None = None,
        is_online: bool = True,
    ):
        self.client = client
        self.popup = popup
        self.farmer_id = farmer_id
        self.order = order or OrderData()
        self.public_key = public_key or Settings.from_env().public_key
        self.on_success = on_success
        self.on_error = on_error

        self.state = PaymentFormState(amount=parse_amount(self.order.amount) or Decimal("0"), is_online=is_online)
        self.agreed_to_terms = False
        self.providers = ProviderSelection()

    # -- form input -------------------------------------------------------

    def set_email(self, email: str) -> None:
        self.state.email = email.strip()

    def set_amount(self, amount) -> None:
        self.state.amount = parse_amount(amount) or Decimal("0")

    def set_phone_number(self, phone_number: str) -> None:
        if self.state.phone_number and not phone_number:
            self.providers.clear()
        self.state.phone_number = phone_number
        self._sync_provider()

    def set_payment_method(self, method: PaymentMethod | str) -> None:
        self.state.payment_method = PaymentMethod(method)
        self._sync_provider()

    def select_provider(self, provider: MobileMoneyProvider | str | None) -> None:
        self.providers.select(provider)
        self._sync_provider()

    def set_agreed_to_terms(self, agreed: bool) -> None:
        self.agreed_to_terms = agreed

    def set_online(self, is_online: bool) -> None:
        self.state.is_online = is_online

    def _sync_provider(self) -> None:
        if self.state.payment_method != PaymentMethod.MOBILE_MONEY:
            self.state.mobile_money_provider = None
            return
        phone = self.state.phone_number
        is_valid = validate_phone_number(phone, international=True).is_valid
        self.state.mobile_money_provider = self.providers.on_phone_number_changed(phone, is_valid)

    # -- derived state ----------------------------------------------------

    @property
    def is_mobile_money(self) -> bool:
        return self.state.payment_method == PaymentMethod.MOBILE_MONEY

    @property
    def validation(self) -> dict[str, ValidationResult]:
        if self.is_mobile_money:
            phone = validate_phone_number(self.state.phone_number, international=True)
        else:
            phone = ValidationResult(is_valid=True)
        return {
            "email": validate_email(self.state.email),
            "amount": validate_amount(self.state.amount),
            "phone_number": phone,
            "terms": ValidationResult(is_valid=self.agreed_to_terms),
        }

    def _checklist(self) -> list[tuple[str, bool]]:
        validation = self.validation
        items = [
            ("email", validation["email"].is_valid),
            ("amount", self.state.amount > 0),
            ("payment method", self.state.payment_method is not None),
            ("terms agreement", self.agreed_to_terms),
        ]
        if self.is_mobile_money:
            items.append(("phone number", validation["phone_number"].is_valid))
            items.append(("mobile money provider", self.state.mobile_money_provider is not None))
        return items

    def completion_percentage(self) -> int:
        checklist = self._checklist()
        return completion_percentage(sum(1 for _, done in checklist if done), len(checklist))

    def missing_field(self) -> str | None:
        done = dict(self._checklist())
        for name in ("email", "phone number", "mobile money provider", "terms agreement"):
            if name in done and not done[name]:
                return name
        amount_ok = done["amount"] and self.validation["amount"].is_valid
        return None if amount_ok else "form"

    def is_form_valid(self) -> bool:
        return self.state.is_online and self.missing_field() is None

    def button_state(self) -> ButtonState:
        if self.state.is_loading or self.state.payment_status == PaymentStatus.PROCESSING:
            return ButtonState(disabled=True, text="Processing...", show_spinner=True)
        if not self.state.is_online:
            return ButtonState(disabled=True, text="No Internet Connection")
        missing = self.missing_field()
        if missing:
            return ButtonState(disabled=True, text=f"Enter valid {missing}")
        suffix = " via Mobile Money" if self.is_mobile_money else ""
        return ButtonState(disabled=False, text=f"Pay GH₵{self.state.amount:.2f}{suffix}")

    @property
    def status_message(self) -> str:
        return STATUS_MESSAGES[self.state.payment_status]

    # -- requests ---------------------------------------------------------

    def _metadata(self) -> dict:
        provider = self.state.mobile_money_provider
        return {
            "customer_email": self.state.email,
            "customer_phone": self.state.phone_number,
            "payment_method": self.state.payment_method.value,
            "mobile_money_provider": provider.value if provider else "",
            "order_description": self.order.description,
            "farm_name": self.order.farm_name,
            "product_names": list(self.order.product_names),
        }

    def initialize_request(self) -> InitializePaymentRequest:
        return InitializePaymentRequest(
            amount=self.state.amount,
            farmer_id=self.farmer_id,
            order_id=self.order.order_id,
            payment_method=self.state.payment_method,
            mobile_money_provider=self.state.mobile_money_provider,
            phone_number=self.state.phone_number,
            metadata=self._metadata(),
        )

    def popup_config(self, reference: str) -> PopupConfig:
        provider = self.state.mobile_money_provider
        channels = list(METHOD_CHANNELS[self.state.payment_method])
        if self.is_mobile_money and provider:
            channels = list(get_provider_info(provider).channels)

        return PopupConfig(
            key=self.public_key,
            email=self.state.email,
            amount=to_minor_units(self.state.amount),
            currency=CURRENCY,
            ref=reference,
            channels=channels,
            metadata={
                "payment_method": self.state.payment_method.value,
                "mobile_money_provider": provider.value if provider else "",
                "customer_phone": self.state.phone_number,
            },
            phone=self.state.phone_number if self.is_mobile_money and self.state.phone_number else None,
        )

    # -- state machine ----------------------------------------------------

    def _transition(self, status: PaymentStatus) -> None:
        current = self.state.payment_status
        if status not in TRANSITIONS[current]:
            raise PaymentStateError(f"Cannot move payment from {current.value} to {status.value}")
        logger.info(f"[Payment] {current.value} -> {status.value}")
        self.state.payment_status = status

    def _report_error(self, message: str) -> None:
        self.state.error = message
        if self.on_error:
            self.on_error(message)

    def _result(self, verified: VerifiedPayment | None = None) -> PaymentResult:
        status = self.state.payment_status
        return PaymentResult(
            success=status == PaymentStatus.SUCCESS,
            status=status,
            reference=(verified.reference if verified and verified.reference else self.state.payment_reference),
            amount=verified.amount if verified else None,
            channel=verified.channel if verified else None,
            paid_at=verified.paid_at if verified else None,
            error=self.state.error,
        )

    def submit(self) -> PaymentResult:
        """
        Run the checkout to completion.

        Returns:
            PaymentResult with the final status. Offline or invalid forms are
            rejected before any request is made and leave the status untouched.

        Raises:
            PaymentStateError: the payment already succeeded or failed, or is
                still in flight. Call ``reset()`` first.
        """
        current = self.state.payment_status
        if PaymentStatus.PROCESSING not in TRANSITIONS[current]:
            raise PaymentStateError(f"Cannot submit a payment that is {current.value}")

        if not self.state.is_online:
            self.state.error = "No internet connection. Please check your network and try again."
            return self._result()
        missing = self.missing_field()
        if missing:
            self.state.error = f"Enter valid {missing}"
            return self._result()

        self._transition(PaymentStatus.PROCESSING)
        self.state.is_loading = True
        self.state.error = None

        try:
            payment = self.client.initialize_payment(self.initialize_request())
        except AgriConnectError as e:
            logger.warning(f"[Payment] Initialization failed: {e}")
            self.state.is_loading = False
            self._transition(PaymentStatus.IDLE)
            self._report_error(str(e))
            return self._result()

        self.state.is_loading = False
        self.state.payment_reference = payment.reference

        try:
            outcome = self.popup.open(self.popup_config(payment.reference))
        except Exception as e:
            logger.exception(f"[Payment] Payment popup for {payment.reference} failed: {e}")
            self._transition(PaymentStatus.IDLE)
            self._report_error(POPUP_ERROR_MESSAGE)
            return self._result()

        if isinstance(outcome, PopupCancelled):
            self._transition(PaymentStatus.CANCELLED)
            return self._result()
        if isinstance(outcome, PopupSuccess):
            return self._verify(outcome.reference)
        raise PaymentStateError(f"Unknown popup outcome: {outcome!r}")

    def _verify(self, reference: str) -> PaymentResult:
        try:
            verified = self.client.verify_payment(reference)
            if verified.status != "success":
                raise PaymentVerificationError(verified.gateway_response or "Payment verification failed")
        except AgriConnectError as e:
            logger.warning(f"[Payment] Verification of {reference} failed: {e}")
            self._transition(PaymentStatus.FAILED)
            self._report_error(str(e))
            return self._result()

        self._transition(PaymentStatus.SUCCESS)
        logger.info(f"[Payment] {reference} verified: {verified.amount} via {verified.channel}")
        if self.on_success:
            self.on_success(verified)
        return self._result(verified)

    def reset(self) -> None:
        self.state.payment_status = PaymentStatus.IDLE
        self.state.payment_reference = None
        self.state.error = None
        self.state.is_loading = False


def pay(
    amount,
    email: str,
    farmer_id: str,
    popup: PaymentPopup,
    payment_method: PaymentMethod | str = PaymentMethod.CARD,
    phone_number: str = "",
    order_id: str | None = None,
    client: AgriConnectClient | None = None,
    debug: bool = False,
) -> PaymentResult:
    """
    One-call checkout.

    Usage:
        from agriconnect import pay, InlinePopup

        result = pay(amount="120.50", email="kofi@gmail.com", farmer_id="f-1",
                     popup=InlinePopup(paystack_setup))

        # Mobile money: the carrier is detected from the number
        result = pay(amount=50, email="ama@yahoo.com", farmer_id="f-1", popup=popup,
                     payment_method="mobile_money", phone_number="0241234567")

    Args:
        amount: Amount in cedis
        email: Buyer e-mail shown to the payment provider
        farmer_id: Farmer receiving the payment
        popup: Payment popup implementation
        payment_method: card, mobile_money or bank_transfer
        phone_number: Wallet number for mobile money
        order_id: Order being paid for
        client: Client to use (default: built from the environment)
        debug: Emit debug logs

    Returns:
        PaymentResult with the final status, verified amount and channel
    """
    client = client or AgriConnectClient(debug=debug)
    checkout = BuyerPayment(client, popup, farmer_id=farmer_id, order=OrderData(order_id=order_id))
    checkout.set_amount(amount)
    checkout.set_email(email)
    checkout.set_payment_method(payment_method)
    if phone_number:
        checkout.set_phone_number(phone_number)
    checkout.set_agreed_to_terms(True)
    return checkout.submit()
