import pytest
import requests

from agriconnect.farmer import OFFLINE_MESSAGE, FarmerPaymentSetup
from agriconnect.models import Bank
from agriconnect.types import MobileMoneyProvider

GCB = Bank(code="040", name="GCB Bank")


@pytest.fixture
def setup(client):
    setup = FarmerPaymentSetup(client, business_name="Asante Farm")
    setup.select_bank(GCB)
    setup.set_account_number("1234567890")
    return setup


def test_banks_are_cached_for_offline_use(client, session):
    session.queue([{"code": "040", "name": "GCB Bank"}])
    setup = FarmerPaymentSetup(client)
    assert [b.name for b in setup.fetch_supported_banks()] == ["GCB Bank"]
    assert client.storage["ghanaBanks"][0]["code"] == "040"

    for _ in range(4):
        session.queue(error=requests.ConnectionError("down"))
    assert [b.name for b in setup.fetch_supported_banks()] == ["GCB Bank"]


def test_bank_list_empty_without_cache(client, session):
    for _ in range(4):
        session.queue(error=requests.ConnectionError("down"))
    assert FarmerPaymentSetup(client).fetch_supported_banks() == []


def test_verify_bank_account(setup, session):
    session.queue({"accountName": "KWAME ASANTE", "accountNumber": "1234567890"})

    verification = setup.verify_bank_account()

    assert verification.is_verified
    assert verification.account_name == "KWAME ASANTE"
    assert setup.account.bank_account.account_name == "KWAME ASANTE"
    assert session.calls[0]["json"] == {"accountNumber": "1234567890", "bankCode": "040"}


def test_short_account_number_is_rejected_locally(setup, session):
    setup.set_account_number("12345")
    verification = setup.verify_bank_account()
    assert verification.error == "Account number must be exactly 10 digits"
    assert session.calls == []


def test_verify_requires_bank_and_number(client, session):
    setup = FarmerPaymentSetup(client)
    setup.set_account_number("1234567890")
    assert setup.verify_bank_account().error == "Please select a bank and enter account number"
    assert session.calls == []


def test_server_rejection_is_shown_verbatim(setup, session):
    session.queue(None, status_code=400, success=False, message="Could not resolve account name")
    verification = setup.verify_bank_account()
    assert not verification.is_verified
    assert verification.error == "Could not resolve account name"
    assert setup.retry_count == 0


def test_network_errors_count_retry_attempts(setup, session):
    messages = []
    for _ in range(4):
        session.queue(error=requests.ConnectionError("down"))
        messages.append(setup.verify_bank_account().error)

    assert messages == [
        "Network error occurred. Retry attempt 1/3. Please try again.",
        "Network error occurred. Retry attempt 2/3. Please try again.",
        "Network error occurred. Retry attempt 3/3. Please try again.",
        "Network error occurred. Retry attempt 3/3. Please try again.",
    ]

    session.queue({"accountName": "KWAME ASANTE"})
    assert setup.verify_bank_account().is_verified
    assert setup.retry_count == 0


def test_offline_verification(setup, session):
    setup.set_online(False)
    assert not setup.can_verify
    assert setup.verify_bank_account().error == OFFLINE_MESSAGE
    assert session.calls == []


def test_editing_account_number_clears_verification(setup, session):
    session.queue({"accountName": "KWAME ASANTE"})
    setup.verify_bank_account()
    setup.set_account_number("0987654321")
    assert not setup.verification.is_verified
    assert setup.account.bank_account.account_name == ""


def test_completion_and_submit(setup, session):
    assert setup.completion_percentage() == 60
    assert not setup.is_form_valid()
    assert setup.submit().message == "Please complete all required fields"

    session.queue({"accountName": "KWAME ASANTE"})
    setup.verify_bank_account()
    setup.set_agreed_to_terms(True)
    assert setup.completion_percentage() == 100
    assert setup.validation().is_valid

    session.queue({"_id": "acc-1", "businessName": "Asante Farm", "verificationStatus": "pending"})
    result = setup.submit()
    assert result.success
    assert result.data.id == "acc-1"
    assert session.calls[-1]["url"].endswith("/payments/farmer/setup-account")


def test_submit_reports_server_error(setup, session):
    session.queue({"accountName": "KWAME ASANTE"})
    setup.verify_bank_account()
    setup.set_agreed_to_terms(True)
    session.queue(None, status_code=400, success=False, message="Payment account already exists")

    result = setup.submit()

    assert not result.success
    assert result.message == "Payment account already exists"


def test_mobile_money_payout(client, session):
    setup = FarmerPaymentSetup(client, business_name="Asante Farm")
    setup.set_payment_method("mobile_money")
    setup.set_mobile_money_number("0241234567")
    assert setup.account.mobile_money_account.provider == MobileMoneyProvider.MTN
    assert setup.completion_percentage() == 50

    verification = setup.verify_mobile_money_account()
    assert verification.is_verified
    assert verification.account_name == "Mobile Money Account - 0241234567"
    assert session.calls == []

    setup.select_mobile_money_provider("telecel")
    setup.set_mobile_money_number("0241234568")
    assert setup.account.mobile_money_account.provider == MobileMoneyProvider.TELECEL


def test_invalid_mobile_money_number(client):
    setup = FarmerPaymentSetup(client)
    setup.set_payment_method("mobile_money")
    setup.set_mobile_money_number("12345")
    assert setup.verify_mobile_money_account().error == "Please enter a valid Ghana phone number"


def test_unknown_payout_method(client):
    with pytest.raises(ValueError):
        FarmerPaymentSetup(client).set_payment_method("cheque")


def test_ghana_card_validation(client):
    setup = FarmerPaymentSetup(client)
    setup.set_ghana_card_number("GHA-123456789-0")
    assert setup.ghana_card_validation.is_valid


def test_malformed_cached_banks_are_skipped(client, session):
    client.storage["ghanaBanks"] = [{"code": "040", "name": "GCB Bank"}, {"code": "999"}, "junk"]
    for _ in range(4):
        session.queue(error=requests.ConnectionError("down"))

    banks = FarmerPaymentSetup(client).fetch_supported_banks()

    assert [b.name for b in banks] == ["GCB Bank"]


def test_picked_provider_needs_a_recognised_number(client):
    setup = FarmerPaymentSetup(client)
    setup.set_payment_method("mobile_money")
    setup.select_mobile_money_provider("airteltigo")
    assert setup.account.mobile_money_account.provider is None

    setup.set_mobile_money_number("0201234567")
    assert setup.account.mobile_money_account.provider is None

    setup.set_mobile_money_number("0541234567")
    assert setup.account.mobile_money_account.provider == MobileMoneyProvider.AIRTELTIGO
