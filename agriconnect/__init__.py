"""AgriConnect SDK for Python - Paystack checkout and farmer payouts for Ghana"""

from .client import AgriConnectClient
from .errors import (
    AgriConnectError,
    APIError,
    AuthenticationError,
    NetworkError,
    PaymentStateError,
    PaymentVerificationError,
)
from .farmer import FarmerPaymentSetup
from .payment import BuyerPayment, pay
from .popup import InlinePopup, PopupCancelled, PopupConfig, PopupSuccess
from .providers import detect_provider
from .service import CurrentUser, PaymentService
from .types import (
    MobileMoneyProvider,
    OrderData,
    PaymentMethod,
    PaymentResult,
    PaymentStatus,
    ValidationResult,
)
from .validation import (
    validate_amount,
    validate_bank_account,
    validate_email,
    validate_phone_number,
)

__version__ = "1.0.0"
__all__ = [
    "AgriConnectClient",
    "BuyerPayment",
    "pay",
    "FarmerPaymentSetup",
    "PaymentService",
    "CurrentUser",
    "InlinePopup",
    "PopupConfig",
    "PopupSuccess",
    "PopupCancelled",
    "detect_provider",
    "validate_email",
    "validate_phone_number",
    "validate_bank_account",
    "validate_amount",
    "MobileMoneyProvider",
    "OrderData",
    "PaymentMethod",
    "PaymentResult",
    "PaymentStatus",
    "ValidationResult",
    "AgriConnectError",
    "APIError",
    "AuthenticationError",
    "NetworkError",
    "PaymentStateError",
    "PaymentVerificationError",
]
