from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Literal


class PaymentStatus(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    CARD = "card"
    MOBILE_MONEY = "mobile_money"
    BANK_TRANSFER = "bank_transfer"


class MobileMoneyProvider(str, Enum):
    MTN = "mtn"
    TELECEL = "telecel"
    AIRTELTIGO = "airteltigo"


PayoutMethod = Literal["bank", "mobile_money"]
PasswordStrengthLevel = Literal["weak", "medium", "strong"]


@dataclass
class ValidationResult:
    is_valid: bool
    error: str = ""
    suggestions: list[str] = field(default_factory=list)
    formatted: str = ""


@dataclass
class PasswordStrength(ValidationResult):
    strength: PasswordStrengthLevel = "weak"
    score: int = 0


@dataclass
class FormValidation:
    is_valid: bool
    errors: dict[str, str]
    validations: dict[str, ValidationResult]
    completion_percentage: int


@dataclass
class ButtonState:
    disabled: bool
    text: str
    show_spinner: bool = False


@dataclass
class OrderData:
    amount: Decimal = Decimal("0")
    order_id: str | None = None
    description: str = "Agricultural product purchase"
    farm_name: str | None = None
    product_names: list[str] = field(default_factory=list)


@dataclass
class PaymentFormState:
    amount: Decimal = Decimal("0")
    email: str = ""
    phone_number: str = ""
    payment_method: PaymentMethod = PaymentMethod.CARD
    mobile_money_provider: MobileMoneyProvider | None = None
    is_loading: bool = False
    error: str | None = None
    payment_reference: str | None = None
    payment_status: PaymentStatus = PaymentStatus.IDLE
    is_online: bool = True


@dataclass
class BankAccount:
    bank_name: str = ""
    bank_code: str = ""
    account_number: str = ""
    account_name: str = ""

    def to_payload(self) -> dict:
        return {
            "bankName": self.bank_name,
            "bankCode": self.bank_code,
            "accountNumber": self.account_number,
            "accountName": self.account_name,
        }


@dataclass
class MobileMoneyAccount:
    provider: MobileMoneyProvider | None = None
    phone_number: str = ""
    account_name: str = ""

    def to_payload(self) -> dict:
        return {
            "provider": self.provider.value if self.provider else "",
            "phoneNumber": self.phone_number,
            "accountName": self.account_name,
        }


@dataclass
class FarmerPaymentAccount:
    business_name: str = ""
    bank_account: BankAccount = field(default_factory=BankAccount)
    mobile_money_account: MobileMoneyAccount = field(default_factory=MobileMoneyAccount)
    ghana_card_number: str = ""
    tin_number: str = ""
    preferred_payout_method: PayoutMethod = "bank"
    percentage_charge: int = 10
    agreed_to_terms: bool = False

    def to_payload(self) -> dict:
        return {
            "businessName": self.business_name.strip(),
            "bankAccount": self.bank_account.to_payload(),
            "mobileMoneyAccount": self.mobile_money_account.to_payload(),
            "ghanaCardNumber": self.ghana_card_number,
            "tinNumber": self.tin_number,
            "preferredPayoutMethod": self.preferred_payout_method,
            "percentageCharge": self.percentage_charge,
            "agreedToTerms": self.agreed_to_terms,
        }


@dataclass
class AccountVerification:
    is_verifying: bool = False
    is_verified: bool = False
    account_name: str = ""
    error: str | None = None


@dataclass
class InitializePaymentRequest:
    amount: Decimal
    farmer_id: str
    payment_method: PaymentMethod
    order_id: str | None = None
    mobile_money_provider: MobileMoneyProvider | None = None
    phone_number: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict:
        return {
            "amount": float(self.amount),
            "farmerId": self.farmer_id,
            "orderId": self.order_id,
            "paymentMethod": self.payment_method.value,
            "mobileMoneyProvider": self.mobile_money_provider.value if self.mobile_money_provider else "",
            "phoneNumber": self.phone_number,
            "metadata": self.metadata,
        }


@dataclass
class ActionResult:
    success: bool
    data: Any = None
    message: str | None = None


@dataclass
class PaymentResult:
    success: bool
    status: PaymentStatus
    reference: str | None = None
    amount: Decimal | None = None
    channel: str | None = None
    paid_at: datetime | None = None
    error: str | None = None
