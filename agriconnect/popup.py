"""
The hosted payment popup seen from the payment flow.

The provider's inline SDK is callback driven (``onSuccess`` / ``onClose``).
Here it is wrapped behind a single blocking call, ``open(config)``, that
returns ``PopupSuccess`` or ``PopupCancelled``, so the checkout can be written
as straight-line code.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Protocol, Union

logger = logging.getLogger(__name__)


@dataclass
class PopupConfig:
    key: str
    email: str
    amount: int  # minor units (pesewas)
    currency: str
    ref: str
    channels: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    phone: str | None = None

    def to_dict(self) -> dict[str, Any]:
        config: dict[str, Any] = {
            "key": self.key,
            "email": self.email,
            "amount": self.amount,
            "currency": self.currency,
            "ref": self.ref,
            "metadata": self.metadata,
        }
        if self.channels:
            config["channels"] = list(self.channels)
        if self.phone:
            config["phone"] = self.phone
        return config


@dataclass(frozen=True)
class PopupSuccess:
    reference: str
    transaction: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PopupCancelled:
    pass


PopupOutcome = Union[PopupSuccess, PopupCancelled]


class PaymentPopup(Protocol):
    def open(self, config: PopupConfig) -> PopupOutcome: ...


class InlinePopup:
    """
    Adapter for a PaystackPop-style SDK.

    ``setup`` receives the popup configuration plus ``onSuccess(transaction)``
    and ``onClose()`` callbacks and returns a handler exposing
    ``openIframe()``. ``open`` blocks until one of the callbacks fires; the
    first one wins. No timeout is applied: only the popup can end the wait.
    """

    def __init__(self, setup: Callable[[dict], Any]):
        self.setup = setup

    def open(self, config: PopupConfig) -> PopupOutcome:
        done = threading.Event()
        lock = threading.Lock()
        outcome: list[PopupOutcome] = []

        def finish(result: PopupOutcome) -> None:
            with lock:
                if outcome:
                    return
                outcome.append(result)
            done.set()

        def on_success(transaction: Mapping[str, Any] | None = None) -> None:
            transaction = dict(transaction or {})
            finish(PopupSuccess(reference=transaction.get("reference") or config.ref, transaction=transaction))

        def on_close() -> None:
            logger.info(f"[Popup] Payment popup for {config.ref} was closed")
            finish(PopupCancelled())

        handler = self.setup({**config.to_dict(), "onSuccess": on_success, "onClose": on_close})
        handler.openIframe()
        done.wait()
        return outcome[0]
