import logging

from pydantic import ValidationError

from .client import AgriConnectClient
from .config import BANKS_CACHE_KEY, MAX_RETRIES
from .errors import AgriConnectError, APIError, NetworkError
from .models import Bank
from .providers import ProviderSelection
from .types import (
    AccountVerification,
    ActionResult,
    FarmerPaymentAccount,
    FormValidation,
    MobileMoneyProvider,
    PayoutMethod,
    ValidationResult,
)
from .validation import (
    completion_percentage,
    validate_bank_account,
    validate_farmer_account,
    validate_ghana_card_number,
    validate_phone_number,
)

logger = logging.getLogger(__name__)

OFFLINE_MESSAGE = "No internet connection. Please check your network and try again."


class FarmerPaymentSetup:
    """
    The payout-account step of farmer registration.

    Collects business details and either a bank account or a mobile-money
    wallet, verifies the account with the server and submits it. Only one
    verification can be in flight at a time: ``can_verify`` is false while a
    request is running.
    """

    def __init__(
        self,
        client: AgriConnectClient,
        storage=None,
        business_name: str = "",
        is_online: bool = True,
    ):
        self.client = client
        self.storage = storage if storage is not None else client.storage
        self.account = FarmerPaymentAccount(business_name=business_name)
        self.payment_method: PayoutMethod = "bank"
        self.banks: list[Bank] = []
        self.selected_bank: Bank | None = None
        self.verification = AccountVerification()
        self.retry_count = 0
        self.is_online = is_online
        self.providers = ProviderSelection()

    def set_online(self, is_online: bool) -> None:
        self.is_online = is_online

    def fetch_supported_banks(self) -> list[Bank]:
        """Load the bank list, falling back to the last cached copy when the API is unreachable."""
        try:
            self.banks = self.client.get_supported_banks()
        except AgriConnectError as e:
            logger.warning(f"[FarmerSetup] Error fetching banks: {e}")
            self.banks = self._cached_banks()
            return self.banks

        self.storage[BANKS_CACHE_KEY] = [bank.model_dump() for bank in self.banks]
        return self.banks

    def _cached_banks(self) -> list[Bank]:
        banks = []
        for item in self.storage.get(BANKS_CACHE_KEY) or []:
            try:
                banks.append(Bank.model_validate(item))
            except ValidationError:
                logger.warning(f"[FarmerSetup] Skipping malformed cached bank: {item!r}")
        return banks

    # -- form input -------------------------------------------------------

    def _reset_verification(self) -> None:
        self.verification = AccountVerification()

    def set_business_name(self, name: str) -> None:
        self.account.business_name = name

    def set_ghana_card_number(self, card_number: str) -> None:
        self.account.ghana_card_number = card_number

    def set_tin_number(self, tin_number: str) -> None:
        self.account.tin_number = tin_number

    def set_agreed_to_terms(self, agreed: bool) -> None:
        self.account.agreed_to_terms = agreed

    def set_payment_method(self, method: PayoutMethod) -> None:
        if method not in ("bank", "mobile_money"):
            raise ValueError(f"Unsupported payout method: {method}")
        self.payment_method = method
        self.account.preferred_payout_method = method
        self._reset_verification()

    def select_bank(self, bank: Bank) -> None:
        self.selected_bank = bank
        self.account.bank_account.bank_name = bank.name
        self.account.bank_account.bank_code = bank.code
        self.account.bank_account.account_name = ""
        self._reset_verification()

    def set_account_number(self, account_number: str) -> None:
        if account_number != self.account.bank_account.account_number:
            self.account.bank_account.account_number = account_number
            self.account.bank_account.account_name = ""
            self._reset_verification()

    def set_mobile_money_number(self, phone_number: str) -> None:
        wallet = self.account.mobile_money_account
        if wallet.phone_number and not phone_number:
            self.providers.clear()
        wallet.phone_number = phone_number
        wallet.account_name = ""
        self._sync_provider()
        self._reset_verification()

    def select_mobile_money_provider(self, provider: MobileMoneyProvider | str | None) -> None:
        self.providers.select(provider)
        self._sync_provider()

    def _sync_provider(self) -> None:
        wallet = self.account.mobile_money_account
        is_valid = validate_phone_number(wallet.phone_number, international=True).is_valid
        wallet.provider = self.providers.on_phone_number_changed(wallet.phone_number, is_valid)

    # -- verification -----------------------------------------------------

    @property
    def can_verify(self) -> bool:
        return self.is_online and not self.verification.is_verifying

    def _network_error_message(self) -> str:
        attempt = min(self.retry_count, MAX_RETRIES)
        retry = f"Retry attempt {attempt}/{MAX_RETRIES}. " if attempt > 0 else ""
        return f"Network error occurred. {retry}Please try again."

    def verify_bank_account(self) -> AccountVerification:
        """
        Resolve the account holder name for the selected bank and account number.

        Server rejections are shown verbatim. Network failures bump
        ``retry_count``, which only feeds the "Retry attempt N/3" message;
        nothing is retried automatically.
        """
        if self.verification.is_verifying:
            return self.verification
        if not self.is_online:
            self.verification.error = OFFLINE_MESSAGE
            return self.verification

        bank = self.account.bank_account
        if not bank.account_number or not bank.bank_code:
            self.verification.error = "Please select a bank and enter account number"
            return self.verification
        account_check = validate_bank_account(bank.account_number)
        if not account_check.is_valid:
            self.verification.error = account_check.error
            return self.verification

        self.verification.is_verifying = True
        self.verification.error = None
        try:
            result = self.client.verify_bank_account(bank.account_number, bank.bank_code)
        except APIError as e:
            logger.info(f"[FarmerSetup] Bank account rejected: {e.message}")
            self.verification = AccountVerification(error=e.message or "Account verification failed")
            return self.verification
        except NetworkError as e:
            self.retry_count += 1
            logger.warning(f"[FarmerSetup] Bank verification network error ({self.retry_count}): {e}")
            self.verification = AccountVerification(error=self._network_error_message())
            return self.verification

        self.retry_count = 0
        bank.account_name = result.account_name
        self.verification = AccountVerification(is_verified=True, account_name=result.account_name)
        return self.verification

    def verify_mobile_money_account(self) -> AccountVerification:
        """
        Check the wallet number locally.

        There is no wallet-lookup endpoint; a well-formed Ghana number is
        accepted and labelled with a generated account name.
        """
        if not self.is_online:
            self.verification.error = OFFLINE_MESSAGE
            return self.verification

        wallet = self.account.mobile_money_account
        if not validate_phone_number(wallet.phone_number, international=True).is_valid:
            self.verification.error = "Please enter a valid Ghana phone number"
            return self.verification

        wallet.account_name = f"Mobile Money Account - {wallet.phone_number}"
        self.verification = AccountVerification(is_verified=True, account_name=wallet.account_name)
        return self.verification

    # -- derived state ----------------------------------------------------

    @property
    def ghana_card_validation(self) -> ValidationResult:
        return validate_ghana_card_number(self.account.ghana_card_number)

    def validation(self) -> FormValidation:
        return validate_farmer_account(self.account)

    def _checklist(self) -> list[bool]:
        bank = self.account.bank_account
        wallet = self.account.mobile_money_account
        items = [bool(self.account.business_name.strip())]
        if self.payment_method == "bank":
            items += [bool(bank.bank_name), bool(bank.account_number)]
        else:
            items.append(validate_phone_number(wallet.phone_number, international=True).is_valid)
        items += [self.verification.is_verified, self.account.agreed_to_terms]
        return items

    def completion_percentage(self) -> int:
        items = self._checklist()
        return completion_percentage(sum(items), len(items))

    def is_form_valid(self) -> bool:
        if not (self.account.business_name.strip() and self.account.agreed_to_terms):
            return False
        if not self.verification.is_verified:
            return False
        if self.payment_method == "bank":
            bank = self.account.bank_account
            return bool(bank.bank_name and bank.bank_code and bank.account_number)
        wallet = self.account.mobile_money_account
        return validate_phone_number(wallet.phone_number, international=True).is_valid

    def submit(self) -> ActionResult:
        if not self.is_online:
            return ActionResult(success=False, message=OFFLINE_MESSAGE)
        if not self.is_form_valid():
            return ActionResult(success=False, message="Please complete all required fields")
        try:
            record = self.client.setup_farmer_account(self.account)
        except AgriConnectError as e:
            logger.warning(f"[FarmerSetup] Account setup failed: {e}")
            return ActionResult(success=False, message=str(e))
        logger.info(f"[FarmerSetup] Payment account saved for {self.account.business_name.strip()}")
        return ActionResult(success=True, data=record)
