"""Wallet provider capability (EIP-1193 shaped).

Business logic never reaches for a global wallet object: it receives a
``WalletProvider`` and talks to it through ``request`` and the
``on``/``remove_listener`` subscription pair.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, runtime_checkable

# EIP-1193 / EIP-1474 error codes
USER_REJECTED = 4001
UNAUTHORIZED = 4100
UNSUPPORTED_METHOD = 4200
DISCONNECTED = 4900
CHAIN_DISCONNECTED = 4901
UNRECOGNIZED_CHAIN = 4902
REQUEST_PENDING = -32002
INTERNAL_ERROR = -32603
EXECUTION_REVERTED = 3

ACCOUNTS_CHANGED = "accountsChanged"
CHAIN_CHANGED = "chainChanged"

Listener = Callable[..., None]


class ProviderRpcError(Exception):
    """Error raised by a wallet provider for a rejected or failed request."""

    def __init__(self, code: int, message: str, data: Any = None):
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"{message} (code {code})")


@runtime_checkable
class WalletProvider(Protocol):
    async def request(self, method: str, params: Optional[Sequence[Any]] = None) -> Any:
        ...

    def on(self, event: str, listener: Listener) -> None:
        ...

    def remove_listener(self, event: str, listener: Listener) -> None:
        ...


class EventEmitterMixin:
    """Minimal listener registry shared by concrete providers."""

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = {}

    def on(self, event: str, listener: Listener) -> None:
        self._listeners.setdefault(event, []).append(listener)

    def remove_listener(self, event: str, listener: Listener) -> None:
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def emit(self, event: str, *args: Any) -> None:
        # copy: listeners may deregister themselves while being notified
        for listener in list(self._listeners.get(event, [])):
            listener(*args)


def error_code(exc: BaseException) -> Optional[int]:
    """Return the provider error code, looking into wrapped mobile-wallet errors."""
    code = getattr(exc, "code", None)
    data = getattr(exc, "data", None)
    if isinstance(data, dict):
        original = data.get("originalError")
        if isinstance(original, dict) and original.get("code") == UNRECOGNIZED_CHAIN:
            return UNRECOGNIZED_CHAIN
    return code if isinstance(code, int) else None


def error_message(exc: BaseException) -> str:
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(exc) or type(exc).__name__
