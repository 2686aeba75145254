import logging
import time
from decimal import Decimal
from typing import Any, Callable, Type, TypeVar
from urllib.parse import quote

import requests
from pydantic import BaseModel, ValidationError

from .config import (
    ACCESS_TOKEN_KEY,
    MAX_RETRIES,
    RETRY_BASE_DELAY_SECONDS,
    Settings,
)
from .errors import APIError, AuthenticationError, NetworkError
from .logger import setup_logging
from .models import (
    Bank,
    BankAccountVerification,
    Envelope,
    FarmerAccountRecord,
    InitializedPayment,
    RefundRecord,
    Transaction,
    TransactionPage,
    VerifiedPayment,
)
from .storage import LocalStorage, MemoryStorage
from .types import FarmerPaymentAccount, InitializePaymentRequest

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class AgriConnectClient:
    """
    HTTP client for the AgriConnect ``/payments`` API.

    Every response is a ``{success, data, message}`` envelope. Transport
    failures raise ``NetworkError``; envelopes with ``success: false`` raise
    ``APIError`` carrying the server message verbatim.

    Authenticated calls send the access token kept in ``storage`` under
    ``accessToken`` as a Bearer header.
    """

    def __init__(
        self,
        base_url: str | None = None,
        storage=None,
        session: requests.Session | None = None,
        timeout: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
        debug: bool = False,
        settings: Settings | None = None,
    ):
        settings = settings or Settings.from_env()
        self.base_url = (base_url or settings.api_url).rstrip("/")
        if storage is None:
            storage = LocalStorage(settings.storage_path) if settings.storage_path else MemoryStorage()
        self.storage = storage
        self.session = session or requests.Session()
        self.timeout = timeout or settings.timeout_seconds
        self.sleep = sleep
        self.debug = debug
        self.retry_count = 0

        if debug:
            setup_logging(logging.DEBUG)

    @property
    def access_token(self) -> str | None:
        return self.storage.get(ACCESS_TOKEN_KEY)

    def set_access_token(self, token: str | None) -> None:
        if token:
            self.storage[ACCESS_TOKEN_KEY] = token
        else:
            self.storage.pop(ACCESS_TOKEN_KEY, None)

    def _headers(self, auth: bool) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if auth:
            token = self.access_token
            if not token:
                raise AuthenticationError("Please log in to continue", status_code=401)
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _send(self, method: str, path: str, *, auth: bool = True, **kwargs) -> requests.Response:
        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = self._headers(auth)
        logger.debug(f"[Client] {method} {url}")
        try:
            return self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning(f"[Client] {method} {url} failed: {e}")
            raise NetworkError(f"Network error: {e}") from e

    def _unwrap(self, response: requests.Response, default_message: str) -> Envelope:
        try:
            body = response.json()
        except ValueError:
            raise NetworkError(f"Invalid response from server: HTTP {response.status_code}")
        if not isinstance(body, dict):
            raise NetworkError(f"Invalid response from server: HTTP {response.status_code}")

        envelope = self._parse(Envelope, body)
        if self.debug:
            logger.debug(f"[Client] Response {response.status_code}: {body}")
        if not envelope.success:
            raise APIError(envelope.message or default_message, status_code=response.status_code)
        return envelope

    @staticmethod
    def _parse(model: Type[M], data: Any) -> M:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise NetworkError(f"Invalid response from server: {e.error_count()} invalid field(s)") from e

    def _request(self, method: str, path: str, default_message: str, *, auth: bool = True, **kwargs) -> Envelope:
        return self._unwrap(self._send(method, path, auth=auth, **kwargs), default_message)

    def fetch_with_retry(self, method: str, path: str, *, auth: bool = True, **kwargs) -> requests.Response:
        """
        Send a request, retrying with exponential backoff.

        Transport errors and non-2xx answers are retried after 1s, 2s and 4s
        (``MAX_RETRIES`` retries). ``retry_count`` holds the number of the
        last retry and drops back to 0 on success.

        Only meant for idempotent reads; payment submission never goes
        through here.
        """
        for attempt in range(MAX_RETRIES + 1):
            try:
                response = self._send(method, path, auth=auth, **kwargs)
                if 200 <= response.status_code < 300:
                    self.retry_count = 0
                    return response
                error = NetworkError(f"HTTP {response.status_code}")
            except NetworkError as e:
                error = e

            if attempt == MAX_RETRIES:
                raise error

            delay = RETRY_BASE_DELAY_SECONDS * 2 ** attempt
            logger.info(f"[Client] {method} {path} failed ({error}), retrying in {delay}s")
            self.sleep(delay)
            self.retry_count = attempt + 1

        raise NetworkError("Retries exhausted")

    def initialize_payment(self, request: InitializePaymentRequest) -> InitializedPayment:
        """
        Create a payment intent for a buyer checkout.

        Args:
            request: Amount, farmer, order, method and metadata of the payment

        Returns:
            InitializedPayment whose ``reference`` is handed to the payment popup
        """
        if not self.access_token:
            raise AuthenticationError("Please log in to continue with payment", status_code=401)
        envelope = self._request(
            "POST",
            "/payments/initialize",
            "Payment initialization failed",
            json=request.to_payload(),
        )
        payment = self._parse(InitializedPayment, envelope.data)
        logger.info(f"[Client] Payment initialized: {payment.reference}")
        return payment

    def verify_payment(self, reference: str) -> VerifiedPayment:
        envelope = self._request(
            "GET",
            f"/payments/verify/{quote(reference, safe='')}",
            "Payment verification failed",
        )
        return self._parse(VerifiedPayment, envelope.data)

    def get_supported_banks(self) -> list[Bank]:
        response = self.fetch_with_retry("GET", "/payments/banks", auth=False)
        envelope = self._unwrap(response, "Failed to load banks")
        return [self._parse(Bank, item) for item in envelope.data or []]

    def verify_bank_account(self, account_number: str, bank_code: str) -> BankAccountVerification:
        envelope = self._request(
            "POST",
            "/payments/verify-bank-account",
            "Account verification failed",
            json={"accountNumber": account_number, "bankCode": bank_code},
        )
        return self._parse(BankAccountVerification, envelope.data)

    def get_farmer_account(self) -> FarmerAccountRecord:
        envelope = self._request("GET", "/payments/farmer/account", "Payment account not found")
        return self._parse(FarmerAccountRecord, envelope.data)

    def setup_farmer_account(self, account: FarmerPaymentAccount | dict) -> FarmerAccountRecord:
        payload = account.to_payload() if isinstance(account, FarmerPaymentAccount) else account
        envelope = self._request(
            "POST",
            "/payments/farmer/setup-account",
            "Payment account setup failed",
            json=payload,
        )
        return self._parse(FarmerAccountRecord, envelope.data)

    def get_transactions(
        self,
        status: str | None = None,
        page: int = 1,
        limit: int = 20,
        type: str | None = None,
    ) -> TransactionPage:
        params: dict[str, Any] = {"page": page, "limit": limit}
        if status:
            params["status"] = status
        if type:
            params["type"] = type
        envelope = self._request("GET", "/payments/transactions", "Failed to load transaction history", params=params)
        return TransactionPage(
            transactions=[self._parse(Transaction, item) for item in envelope.data or []],
            pagination=envelope.pagination,
        )

    def process_refund(self, transaction_id: str, amount: Decimal | None = None, reason: str = "") -> RefundRecord:
        payload = {
            "transactionId": transaction_id,
            "amount": float(amount) if amount is not None else None,
            "reason": reason,
        }
        envelope = self._request("POST", "/payments/refund", "Refund failed", json=payload)
        return self._parse(RefundRecord, envelope.data or {})

    def get_mobile_money_providers(self) -> list[dict]:
        envelope = self._request("GET", "/payments/mobile-money-providers", "Failed to load providers", auth=False)
        return list(envelope.data or [])

    def validate_phone(self, phone_number: str) -> dict:
        envelope = self._request(
            "POST",
            "/payments/validate-phone",
            "Phone number validation failed",
            auth=False,
            json={"phoneNumber": phone_number},
        )
        return dict(envelope.data or {})
