"""
Validation helpers for payment and payout forms.

Every validator takes the raw field value and returns a ``ValidationResult``.
Blank input (``None`` or ``""``) is treated as "not filled in yet": it is never
valid but it never carries an error message either, so a form does not flash
errors before the user has typed anything.
"""

import re
import threading
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any, Callable, Mapping

from .config import CURRENCY_SYMBOL, MAX_AMOUNT, MIN_AMOUNT
from .types import (
    ButtonState,
    FarmerPaymentAccount,
    FormValidation,
    PasswordStrength,
    TransactionStatus,
    ValidationResult,
)

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
LOCAL_PHONE_REGEX = re.compile(r"^0\d{9}$")
GHANA_PHONE_REGEX = re.compile(r"^(\+233|0)(2[0-9]|5[0-9])\d{7}$")
BANK_ACCOUNT_REGEX = re.compile(r"^\d{10}$")
GHANA_CARD_REGEX = re.compile(r"^GHA\d{9}\d$")
NUMBER_PREFIX_REGEX = re.compile(r"^\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
PHONE_SEPARATORS = re.compile(r"[\s\-()]")
SPECIAL_CHARS = re.compile(r'[!@#$%^&*(),.?":{}|<>]')

COMMON_EMAIL_DOMAINS = ["gmail.com", "yahoo.com", "hotmail.com", "outlook.com"]
BUSINESS_NAME_SUFFIXES = ["Farm", "Agricultural Services", "Agro Business", "Organic Farm"]
BUSINESS_NAME_MIN_LENGTH = 2
BUSINESS_NAME_MAX_LENGTH = 100
PASSWORD_MIN_LENGTH = 8

MONEY_QUANT = Decimal("0.01")


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


def completion_percentage(completed: int, total: int) -> int:
    """``round(completed / total * 100)`` with halves rounded up; 0 when nothing is required."""
    if total <= 0:
        return 0
    ratio = Decimal(completed * 100) / Decimal(total)
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def parse_amount(value: Any) -> Decimal | None:
    """Parse the leading number of ``value``; ``"12abc"`` gives 12, ``"abc"`` gives None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float, Decimal)):
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            return None
        return amount if amount.is_finite() else None
    if isinstance(value, str):
        match = NUMBER_PREFIX_REGEX.match(value)
        if not match:
            return None
        return Decimal(match.group(0).strip())
    return None


def _format_bound(value: Decimal | int, grouped: bool) -> str:
    bound = Decimal(str(value))
    if bound == bound.to_integral_value():
        bound = int(bound)
    return f"{bound:,}" if grouped else str(bound)


def format_currency(amount: Decimal | int | float | None) -> str:
    if amount is None:
        return ""
    value = Decimal(str(amount))
    if not value.is_finite():
        return ""
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        value = value.quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)
    if value < 0:
        return f"-{CURRENCY_SYMBOL}{-value:,.2f}"
    return f"{CURRENCY_SYMBOL}{value:,.2f}"


def format_phone_number(phone_number: str | None) -> str:
    if not phone_number:
        return ""
    digits = re.sub(r"\D", "", phone_number)
    if len(digits) == 10:
        return f"{digits[:3]} {digits[3:6]} {digits[6:]}"
    return phone_number


def format_account_number(account_number: str | None) -> str:
    if not account_number:
        return ""
    digits = re.sub(r"\D", "", account_number)
    if len(digits) == 10:
        return f"{digits[:4]} {digits[4:7]} {digits[7:]}"
    return account_number


def _email_suggestions(email: str) -> list[str]:
    parts = email.split("@")
    if len(parts) < 2 or not parts[1]:
        return []
    local_part, domain = parts[0], parts[1].lower()
    return [f"{local_part}@{d}" for d in COMMON_EMAIL_DOMAINS if d.startswith(domain)][:3]


def _business_name_suggestions(name: str | None) -> list[str]:
    if not name or len(name) < 2:
        return []
    candidates = [f"{name} {suffix}" for suffix in BUSINESS_NAME_SUFFIXES]
    return [c for c in candidates if c.lower() != name.lower()][:2]


def validate_email(email: str | None) -> ValidationResult:
    is_valid = bool(email) and EMAIL_REGEX.fullmatch(email) is not None
    if is_valid or _is_blank(email):
        return ValidationResult(is_valid=is_valid)
    return ValidationResult(
        is_valid=False,
        error="Please enter a valid email address",
        suggestions=_email_suggestions(email),
    )


def validate_phone_number(phone_number: str | None, international: bool = False) -> ValidationResult:
    """
    Validate a Ghanaian phone number.

    Profile forms use the strict local form (``0`` followed by nine digits).
    Payment forms pass ``international=True``, which also accepts ``+233``,
    requires a 2x/5x network prefix and ignores spaces, hyphens and brackets.
    """
    if _is_blank(phone_number):
        return ValidationResult(is_valid=False)

    if international:
        cleaned = PHONE_SEPARATORS.sub("", phone_number)
        is_valid = GHANA_PHONE_REGEX.fullmatch(cleaned) is not None
        message = "Please enter a valid Ghana phone number"
    else:
        is_valid = LOCAL_PHONE_REGEX.fullmatch(phone_number) is not None
        message = "Phone number must start with 0 and be 10 digits"

    return ValidationResult(
        is_valid=is_valid,
        error="" if is_valid else message,
        formatted=format_phone_number(phone_number),
    )


def validate_bank_account(account_number: str | None) -> ValidationResult:
    is_valid = bool(account_number) and BANK_ACCOUNT_REGEX.fullmatch(account_number) is not None
    return ValidationResult(
        is_valid=is_valid,
        error="" if is_valid or _is_blank(account_number) else "Account number must be exactly 10 digits",
        formatted=format_account_number(account_number),
    )


def validate_amount(
    amount: Any,
    min_amount: Decimal | int = MIN_AMOUNT,
    max_amount: Decimal | int = MAX_AMOUNT,
) -> ValidationResult:
    number = parse_amount(amount)
    is_valid = number is not None and min_amount <= number <= max_amount

    error = ""
    if not _is_blank(amount):
        if number is None:
            error = "Please enter a valid amount"
        elif number < min_amount:
            error = f"Amount must be at least {CURRENCY_SYMBOL}{_format_bound(min_amount, grouped=False)}"
        elif number > max_amount:
            error = f"Amount cannot exceed {CURRENCY_SYMBOL}{_format_bound(max_amount, grouped=True)}"

    # out-of-range amounts can be arbitrarily long; they are not echoed back
    in_range = number is not None and abs(number) <= max_amount
    return ValidationResult(is_valid=is_valid, error=error, formatted=format_currency(number) if in_range else "")


def validate_business_name(business_name: str | None, required: bool = False) -> ValidationResult:
    trimmed = (business_name or "").strip()
    is_valid = BUSINESS_NAME_MIN_LENGTH <= len(trimmed) <= BUSINESS_NAME_MAX_LENGTH

    error = ""
    if not trimmed:
        if required:
            error = "Business name is required"
    elif len(trimmed) < BUSINESS_NAME_MIN_LENGTH:
        error = f"Business name must be at least {BUSINESS_NAME_MIN_LENGTH} characters"
    elif len(trimmed) > BUSINESS_NAME_MAX_LENGTH:
        error = f"Business name cannot exceed {BUSINESS_NAME_MAX_LENGTH} characters"

    return ValidationResult(
        is_valid=is_valid,
        error=error,
        suggestions=_business_name_suggestions(business_name),
    )


def validate_password_strength(password: str | None) -> PasswordStrength:
    password = password or ""
    checks = {
        "Add uppercase letters": re.search(r"[A-Z]", password) is not None,
        "Add lowercase letters": re.search(r"[a-z]", password) is not None,
        "Add numbers": re.search(r"\d", password) is not None,
        "Add special characters": SPECIAL_CHARS.search(password) is not None,
        f"Use at least {PASSWORD_MIN_LENGTH} characters": len(password) >= PASSWORD_MIN_LENGTH,
    }
    score = sum(checks.values())
    if score <= 2:
        strength = "weak"
    elif score <= 4:
        strength = "medium"
    else:
        strength = "strong"
    is_valid = score >= 4 and len(password) >= PASSWORD_MIN_LENGTH

    return PasswordStrength(
        is_valid=is_valid,
        error="Password is too weak" if password and not is_valid else "",
        suggestions=[hint for hint, passed in checks.items() if not passed],
        strength=strength,
        score=score,
    )


def validate_ghana_card_number(card_number: str | None) -> ValidationResult:
    """Ghana Card numbers look like ``GHA-123456789-0``; separators are optional."""
    if _is_blank(card_number):
        return ValidationResult(is_valid=False)
    cleaned = re.sub(r"[\s\-]", "", card_number)
    is_valid = GHANA_CARD_REGEX.fullmatch(cleaned) is not None
    return ValidationResult(is_valid=is_valid, error="" if is_valid else "Invalid Ghana Card format")


def _terms(agreed: bool, message: str) -> ValidationResult:
    return ValidationResult(is_valid=agreed is True, error="" if agreed is True else message)


def _required(value: Any, message: str) -> ValidationResult:
    return ValidationResult(is_valid=bool(value), error="" if value else message)


def _summarize(validations: dict[str, ValidationResult]) -> FormValidation:
    completed = sum(1 for v in validations.values() if v.is_valid)
    return FormValidation(
        is_valid=all(v.is_valid for v in validations.values()),
        errors={key: v.error for key, v in validations.items() if not v.is_valid and v.error},
        validations=validations,
        completion_percentage=completion_percentage(completed, len(validations)),
    )


def validate_payment_form(form: Mapping[str, Any]) -> FormValidation:
    """Validate a checkout form given as a mapping of snake_case field names."""
    validations = {
        "email": validate_email(form.get("email")),
        "amount": validate_amount(form.get("amount")),
        "terms": _terms(form.get("agreed_to_terms"), "You must agree to the terms and conditions"),
    }
    if form.get("phone_number"):
        validations["phone_number"] = validate_phone_number(form["phone_number"])
    if form.get("business_name"):
        validations["business_name"] = validate_business_name(form["business_name"])
    return _summarize(validations)


def validate_farmer_account(account: FarmerPaymentAccount) -> FormValidation:
    validations = {
        "business_name": validate_business_name(account.business_name, required=True),
        "bank_name": _required(account.bank_account.bank_name, "Bank selection is required"),
        "account_number": validate_bank_account(account.bank_account.account_number),
        "account_name": _required(account.bank_account.account_name, "Account verification is required"),
        "terms": _terms(account.agreed_to_terms, "You must agree to the payment terms"),
    }
    return _summarize(validations)


@dataclass(frozen=True)
class StatusInfo:
    color: str
    message: str
    can_cancel: bool
    can_refund: bool


PAYMENT_STATUS_INFO: dict[TransactionStatus, StatusInfo] = {
    TransactionStatus.PENDING: StatusInfo("yellow", "Payment is being processed", True, False),
    TransactionStatus.PROCESSING: StatusInfo("blue", "Payment is being verified", False, False),
    TransactionStatus.SUCCESS: StatusInfo("green", "Payment completed successfully", False, True),
    TransactionStatus.FAILED: StatusInfo("red", "Payment failed", False, False),
    TransactionStatus.CANCELLED: StatusInfo("gray", "Payment was cancelled", False, False),
    TransactionStatus.REFUNDED: StatusInfo("purple", "Payment has been refunded", False, False),
}


def get_payment_status_info(status: TransactionStatus | str) -> StatusInfo:
    try:
        return PAYMENT_STATUS_INFO[TransactionStatus(status)]
    except ValueError:
        return PAYMENT_STATUS_INFO[TransactionStatus.PENDING]


def get_button_state(
    validation: FormValidation,
    is_loading: bool = False,
    custom_text: str | None = None,
) -> ButtonState:
    if is_loading:
        return ButtonState(disabled=True, text="Processing...", show_spinner=True)
    if not validation.is_valid:
        count = len(validation.errors)
        return ButtonState(
            disabled=True,
            text=custom_text or f"Complete {count} field{'s' if count > 1 else ''} to continue",
        )
    return ButtonState(disabled=False, text=custom_text or "Continue")


def debounce(
    validator: Callable[[Any], ValidationResult],
    delay: float = 0.3,
) -> Callable[[Any, Callable[[ValidationResult], None]], None]:
    """
    Wrap ``validator`` so that rapid successive calls only validate the last value.

    The returned function takes ``(value, callback)``; ``callback`` receives the
    result once no new value has arrived for ``delay`` seconds.
    """
    lock = threading.Lock()
    timer: threading.Timer | None = None

    def run(value: Any, callback: Callable[[ValidationResult], None]) -> None:
        nonlocal timer
        with lock:
            if timer is not None:
                timer.cancel()
            timer = threading.Timer(delay, lambda: callback(validator(value)))
            timer.daemon = True
            timer.start()

    return run
