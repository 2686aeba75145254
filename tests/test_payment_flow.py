from decimal import Decimal

import pytest
import requests

from agriconnect.errors import PaymentStateError
from agriconnect.payment import BuyerPayment, pay, to_minor_units
from agriconnect.types import MobileMoneyProvider, OrderData, PaymentMethod, PaymentStatus

from .conftest import FakePopup

INITIALIZED = {"reference": "AGC-001", "authorizationUrl": "https://checkout.test/AGC-001", "accessCode": "ac"}
VERIFIED = {
    "reference": "AGC-001",
    "amount": 120.5,
    "status": "success",
    "channel": "card",
    "paidAt": "2024-05-01T10:00:00Z",
}


@pytest.fixture
def events():
    return {"success": [], "error": []}


@pytest.fixture
def checkout(client, popup, events):
    checkout = BuyerPayment(
        client,
        popup,
        farmer_id="farmer-1",
        order=OrderData(amount=Decimal("120.50"), order_id="order-9", farm_name="Asante Farm"),
        public_key="pk_test_abc",
        on_success=events["success"].append,
        on_error=events["error"].append,
    )
    checkout.set_email("kofi@gmail.com")
    checkout.set_agreed_to_terms(True)
    return checkout


def test_successful_card_payment(checkout, session, popup, events):
    session.queue(INITIALIZED)
    session.queue(VERIFIED)

    result = checkout.submit()

    assert result.success
    assert result.status == PaymentStatus.SUCCESS
    assert result.reference == "AGC-001"
    assert result.amount == Decimal("120.5")
    assert result.channel == "card"
    assert checkout.state.payment_status == PaymentStatus.SUCCESS
    assert len(events["success"]) == 1
    assert events["success"][0].amount == Decimal("120.5")
    assert events["success"][0].reference == "AGC-001"
    assert events["error"] == []

    init_call, verify_call = session.calls
    assert init_call["method"] == "POST"
    assert init_call["url"] == "http://api.test/api/payments/initialize"
    assert init_call["headers"]["Authorization"] == "Bearer token-123"
    assert init_call["json"]["amount"] == 120.5
    assert init_call["json"]["farmerId"] == "farmer-1"
    assert init_call["json"]["orderId"] == "order-9"
    assert verify_call["url"] == "http://api.test/api/payments/verify/AGC-001"

    config = popup.configs[0]
    assert config.amount == 12050
    assert config.currency == "GHS"
    assert config.channels == ["card"]
    assert config.key == "pk_test_abc"


def test_cancelled_popup_skips_verification(client, session, cancelling_popup, events):
    checkout = BuyerPayment(client, cancelling_popup, farmer_id="farmer-1", on_error=events["error"].append)
    checkout.set_amount("40")
    checkout.set_email("ama@yahoo.com")
    checkout.set_agreed_to_terms(True)
    session.queue(INITIALIZED)

    result = checkout.submit()

    assert result.status == PaymentStatus.CANCELLED
    assert not result.success
    assert len(session.calls) == 1
    assert checkout.status_message == "Payment was cancelled"

    session.queue(INITIALIZED)
    cancelling_popup.outcome = None
    session.queue(VERIFIED)
    assert checkout.submit().status == PaymentStatus.SUCCESS


def test_rejected_verification_fails(checkout, session, events):
    session.queue(INITIALIZED)
    session.queue({**VERIFIED, "status": "failed", "gatewayResponse": "Declined"})

    result = checkout.submit()

    assert result.status == PaymentStatus.FAILED
    assert result.error == "Declined"
    assert events["error"] == ["Declined"]
    assert events["success"] == []


def test_initialize_error_returns_to_idle(checkout, session, events):
    session.queue(None, status_code=400, success=False, message="Farmer payment account not set up")

    result = checkout.submit()

    assert result.status == PaymentStatus.IDLE
    assert result.error == "Farmer payment account not set up"
    assert events["error"] == ["Farmer payment account not set up"]
    assert not checkout.state.is_loading


def test_network_error_during_initialize(checkout, session):
    session.queue(error=requests.ConnectionError("down"))
    result = checkout.submit()
    assert result.status == PaymentStatus.IDLE
    assert result.error.startswith("Network error")


def test_missing_token_blocks_initialize(checkout, session, client):
    client.set_access_token(None)
    result = checkout.submit()
    assert result.error == "Please log in to continue with payment"
    assert session.calls == []


def test_terminal_states_reject_resubmit(checkout, session):
    session.queue(INITIALIZED)
    session.queue(VERIFIED)
    checkout.submit()

    with pytest.raises(PaymentStateError):
        checkout.submit()

    checkout.reset()
    assert checkout.state.payment_status == PaymentStatus.IDLE


def test_offline_submit_makes_no_request(checkout, session):
    checkout.set_online(False)
    result = checkout.submit()
    assert result.status == PaymentStatus.IDLE
    assert result.error == "No internet connection. Please check your network and try again."
    assert session.calls == []
    assert checkout.button_state().text == "No Internet Connection"


def test_invalid_form_is_not_submitted(client, popup, session):
    checkout = BuyerPayment(client, popup, farmer_id="farmer-1")
    checkout.set_email("a@b")
    checkout.set_amount("25")
    result = checkout.submit()
    assert result.error == "Enter valid email"
    assert session.calls == []


def test_completion_percentage_grows_with_each_field(client, popup):
    checkout = BuyerPayment(client, popup, farmer_id="farmer-1")
    seen = [checkout.completion_percentage()]
    checkout.set_email("kofi@gmail.com")
    seen.append(checkout.completion_percentage())
    checkout.set_amount("10")
    seen.append(checkout.completion_percentage())
    checkout.set_agreed_to_terms(True)
    seen.append(checkout.completion_percentage())
    assert seen == sorted(seen)
    assert seen == [25, 50, 75, 100]


def test_mobile_money_adds_two_checklist_items(checkout):
    assert checkout.completion_percentage() == 100
    checkout.set_payment_method("mobile_money")
    assert checkout.completion_percentage() == 67
    assert checkout.button_state().text == "Enter valid phone number"

    checkout.set_phone_number("0241234567")
    assert checkout.state.mobile_money_provider == MobileMoneyProvider.MTN
    assert checkout.completion_percentage() == 100
    assert checkout.button_state().text == "Pay GH₵120.50 via Mobile Money"


def test_unrecognised_prefix_has_no_provider_even_when_picked(checkout):
    checkout.set_payment_method(PaymentMethod.MOBILE_MONEY)
    checkout.set_phone_number("0201234567")
    assert checkout.state.mobile_money_provider is None
    assert checkout.button_state().text == "Enter valid mobile money provider"

    checkout.select_provider("mtn")
    assert checkout.state.mobile_money_provider is None
    assert checkout.button_state().disabled

    checkout.set_phone_number("0541234567")
    assert checkout.state.mobile_money_provider == MobileMoneyProvider.MTN


def test_mobile_money_popup_uses_provider_channel(checkout, session, popup):
    checkout.set_payment_method(PaymentMethod.MOBILE_MONEY)
    checkout.set_phone_number("0241234567")
    checkout.select_provider("airteltigo")
    assert checkout.state.mobile_money_provider == MobileMoneyProvider.AIRTELTIGO

    session.queue(INITIALIZED)
    session.queue({**VERIFIED, "channel": "mobile_money"})
    checkout.submit()

    config = popup.configs[0]
    assert config.channels == ["atl"]
    assert config.phone == "0241234567"
    payload = session.calls[0]["json"]
    assert payload["mobileMoneyProvider"] == "airteltigo"
    assert payload["metadata"]["farm_name"] == "Asante Farm"


def test_clearing_phone_number_resets_manual_provider(checkout):
    checkout.set_payment_method("mobile_money")
    checkout.select_provider("telecel")
    checkout.set_phone_number("0241234567")
    assert checkout.state.mobile_money_provider == MobileMoneyProvider.TELECEL

    checkout.set_phone_number("")
    checkout.set_phone_number("0241234567")
    assert checkout.state.mobile_money_provider == MobileMoneyProvider.MTN


def test_to_minor_units_rounds_half_up():
    assert to_minor_units(Decimal("10.005")) == 1001
    assert to_minor_units(Decimal("1")) == 100


def test_pay_helper(client, session, popup):
    session.queue(INITIALIZED)
    session.queue({**VERIFIED, "amount": 50, "channel": "mobile_money"})

    result = pay(
        amount=50,
        email="ama@yahoo.com",
        farmer_id="farmer-1",
        popup=popup,
        payment_method="mobile_money",
        phone_number="0551234567",
        client=client,
    )

    assert result.success
    assert result.channel == "mobile_money"
    assert popup.configs[0].channels == ["mtn"]


def test_verification_network_error_fails_payment(checkout, session, events):
    session.queue(INITIALIZED)
    session.queue(error=requests.ConnectionError("connection reset"))

    result = checkout.submit()

    assert result.status == PaymentStatus.FAILED
    assert result.reference == "AGC-001"
    assert checkout.state.error.startswith("Network error")
    assert events["error"] == [checkout.state.error]
    assert events["success"] == []


def test_unparseable_verification_fails_payment(checkout, session):
    session.queue(INITIALIZED)
    session.queue({"reference": "AGC-001", "amount": "lots"})

    result = checkout.submit()

    assert result.status == PaymentStatus.FAILED
    assert result.error.startswith("Invalid response from server")


def test_popup_error_leaves_checkout_retryable(client, session, events):
    class BrokenPopup:
        def open(self, config):
            raise RuntimeError("inline script failed to load")

    checkout = BuyerPayment(client, BrokenPopup(), farmer_id="farmer-1", on_error=events["error"].append)
    checkout.set_amount("40")
    checkout.set_email("ama@yahoo.com")
    checkout.set_agreed_to_terms(True)
    session.queue(INITIALIZED)

    result = checkout.submit()

    assert result.status == PaymentStatus.IDLE
    assert result.error == "Unable to open the payment window. Please try again."
    assert events["error"] == [result.error]
    assert not checkout.state.is_loading

    checkout.popup = FakePopup()
    session.queue(INITIALIZED)
    session.queue(VERIFIED)
    assert checkout.submit().status == PaymentStatus.SUCCESS


def test_very_large_amount_is_rejected_not_raised(checkout):
    checkout.set_amount("99999999999999999999999999999")
    assert checkout.validation["amount"].error == "Amount cannot exceed GH₵1,000,000"
    assert checkout.button_state().text == "Enter valid form"
    assert checkout.validation["amount"].formatted == ""
    assert checkout.completion_percentage() == 100
    assert checkout.submit().error == "Enter valid form"
