import pytest

from agriconnect.client import AgriConnectClient
from agriconnect.config import Settings
from agriconnect.popup import PopupCancelled, PopupSuccess
from agriconnect.storage import MemoryStorage


class FakeResponse:
    def __init__(self, body, status_code=200):
        self.body = body
        self.status_code = status_code

    def json(self):
        if isinstance(self.body, Exception):
            raise self.body
        return self.body


class FakeSession:
    """Stands in for ``requests.Session``; answers from a queue and records every call."""

    def __init__(self):
        self.responses = []
        self.calls = []

    def queue(self, body=None, status_code=200, *, success=True, message=None, error=None):
        if error is not None:
            self.responses.append(error)
            return
        if body is None or not isinstance(body, dict) or "success" not in body:
            body = {"success": success, "data": body, "message": message}
        self.responses.append(FakeResponse(body, status_code))

    def request(self, method, url, headers=None, timeout=None, **kwargs):
        self.calls.append({"method": method, "url": url, "headers": headers, "timeout": timeout, **kwargs})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakePopup:
    def __init__(self, outcome=None):
        self.outcome = outcome
        self.configs = []

    def open(self, config):
        self.configs.append(config)
        if self.outcome is not None:
            return self.outcome
        return PopupSuccess(reference=config.ref)


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def client(session, sleeps):
    storage = MemoryStorage({"accessToken": "token-123"})
    return AgriConnectClient(
        storage=storage,
        session=session,
        sleep=sleeps.append,
        settings=Settings(api_url="http://api.test/api"),
    )


@pytest.fixture
def popup():
    return FakePopup()


@pytest.fixture
def cancelling_popup():
    return FakePopup(PopupCancelled())
