from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class APIModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class Pagination(APIModel):
    total: int = 0
    page: int = 1
    pages: int = 0
    limit: int = 20


class Envelope(APIModel):
    """The ``{success, data, message}`` wrapper every /payments endpoint answers with."""

    success: bool = False
    data: Any = None
    message: Optional[str] = None
    pagination: Optional[Pagination] = None


class Bank(APIModel):
    code: str
    name: str
    slug: Optional[str] = None

    @field_validator("code", mode="before")
    @classmethod
    def _code_as_string(cls, value):
        return str(value) if value is not None else value


class InitializedPayment(APIModel):
    reference: str
    authorization_url: Optional[str] = None
    access_code: Optional[str] = None


class VerifiedPayment(APIModel):
    reference: Optional[str] = None
    amount: Decimal = Decimal("0")
    status: str
    paid_at: Optional[datetime] = None
    channel: Optional[str] = None
    gateway_response: Optional[str] = None


class BankAccountVerification(APIModel):
    account_name: str
    account_number: Optional[str] = None
    bank_id: Optional[Any] = None


class Party(APIModel):
    id: Optional[str] = Field(default=None, alias="_id")
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)


class PaymentChannel(APIModel):
    channel: Optional[str] = None
    type: Optional[str] = None


class Transaction(APIModel):
    id: Optional[str] = Field(default=None, alias="_id")
    reference: str
    amount: Decimal = Decimal("0")
    farmer_amount: Optional[Decimal] = None
    platform_fee: Optional[Decimal] = None
    status: str = "pending"
    buyer_id: Union[Party, str, None] = None
    farmer_id: Union[Party, str, None] = None
    payment_method: Union[PaymentChannel, str, None] = None
    created_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None

    @property
    def channel(self) -> Optional[str]:
        if isinstance(self.payment_method, PaymentChannel):
            return self.payment_method.channel
        return self.payment_method


class TransactionPage(BaseModel):
    transactions: list[Transaction]
    pagination: Optional[Pagination] = None


class BankAccountRecord(APIModel):
    bank_name: Optional[str] = None
    bank_code: Optional[str] = None
    account_number: Optional[str] = None
    account_name: Optional[str] = None


class MobileMoneyAccountRecord(APIModel):
    provider: Optional[str] = None
    phone_number: Optional[str] = None
    account_name: Optional[str] = None


class FarmerAccountRecord(APIModel):
    """A farmer payout account as stored by the server."""

    id: Optional[str] = Field(default=None, alias="_id")
    business_name: Optional[str] = None
    bank_account: Optional[BankAccountRecord] = None
    mobile_money_account: Optional[MobileMoneyAccountRecord] = None
    subaccount_code: Optional[str] = None
    percentage_charge: Optional[Decimal] = None
    verification_status: str = "pending"
    total_earnings: Decimal = Decimal("0")


class RefundRecord(APIModel):
    id: Optional[str] = Field(default=None, alias="_id")
    transaction_id: Optional[Any] = None
    amount: Optional[Decimal] = None
    reason: Optional[str] = None
    status: Optional[str] = None


def party_id(party: Union[Party, str, None]) -> Optional[str]:
    if isinstance(party, Party):
        return party.id
    return party
