class AgriConnectError(Exception):
    """Base class for every error raised by the SDK."""


class NetworkError(AgriConnectError):
    """The request never produced a usable response (transport error, timeout, bad body)."""


class APIError(AgriConnectError):
    """The server answered with ``success: false``; ``message`` is shown to the user verbatim."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthenticationError(APIError):
    pass


class PaymentVerificationError(AgriConnectError):
    pass


class PaymentStateError(AgriConnectError):
    pass
