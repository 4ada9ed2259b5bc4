"""Shared fixtures and fakes for the trustfi test suite."""

from __future__ import annotations

import inspect
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pytest

from trustfi.chains import MOONBASE_ALPHA
from trustfi.mint import MintAttempt, MintPipeline, MintStatus
from trustfi.network import NetworkNegotiator
from trustfi.provider import EventEmitterMixin, ProviderRpcError
from trustfi.session import SessionTracker


# ---------------------------------------------------------------------------
# Constants reused across tests
# ---------------------------------------------------------------------------

ACCOUNT_A = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"
ACCOUNT_B = "0xfB6916095ca1df60bB79Ce92cE3Ea74c37c5d359"
CONTRACT_ADDRESS = "0xdbF03B407c01E7cD3CBea99509d93f8DDDC8C6FB"
TX_HASH = "0x" + "ab" * 32

# Throwaway key, never funded
TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"

SUCCESS_RECEIPT = {"transactionHash": TX_HASH, "status": "0x1", "blockNumber": "0x10", "gasUsed": "0x5208"}
REVERTED_RECEIPT = {"transactionHash": TX_HASH, "status": "0x0", "blockNumber": "0x10", "gasUsed": "0x5208"}


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeProvider(EventEmitterMixin):
    """Scriptable wallet provider.

    ``responses`` maps a method name to a value, an exception instance (raised),
    or a callable taking ``params`` (sync or async). Every request is recorded.
    """

    def __init__(self, responses: Optional[Dict[str, Any]] = None):
        super().__init__()
        self.responses: Dict[str, Any] = dict(responses or {})
        self.calls: List[Tuple[str, Any]] = []

    def methods(self) -> List[str]:
        return [method for method, _ in self.calls]

    async def request(self, method: str, params: Optional[Sequence[Any]] = None) -> Any:
        self.calls.append((method, params))
        if method not in self.responses:
            raise ProviderRpcError(4200, f"unscripted method {method}")
        response = self.responses[method]
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            response = response(params)
            if inspect.isawaitable(response):
                response = await response
        return response


class FakeReader:
    def __init__(self, balances: Optional[Dict[str, int]] = None, error: Optional[Exception] = None):
        self.balances = {k.lower(): v for k, v in (balances or {}).items()}
        self.error = error
        self.calls: List[str] = []

    async def balance_of(self, account: str) -> int:
        self.calls.append(account)
        if self.error is not None:
            raise self.error
        return self.balances.get(account.lower(), 0)


def sequence(*values: Any) -> Callable[[Any], Any]:
    """Return a response callable yielding ``values`` in order, repeating the last."""
    remaining = list(values)

    def respond(params: Any) -> Any:
        value = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        if isinstance(value, BaseException):
            raise value
        return value

    return respond


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def provider() -> FakeProvider:
    """Provider that accepts the switch and shares ACCOUNT_A."""
    return FakeProvider(
        {
            "wallet_switchEthereumChain": None,
            "eth_requestAccounts": [ACCOUNT_A],
            "eth_accounts": [],
            "eth_chainId": MOONBASE_ALPHA.hex_chain_id,
            "eth_sendTransaction": TX_HASH,
            "eth_getTransactionReceipt": SUCCESS_RECEIPT,
        }
    )


@pytest.fixture()
def tracker(provider: FakeProvider) -> SessionTracker:
    return SessionTracker(provider, NetworkNegotiator(provider, MOONBASE_ALPHA))


@pytest.fixture()
def updates() -> List[MintStatus]:
    return []


@pytest.fixture()
def pipeline(provider: FakeProvider, tracker: SessionTracker, updates: List[MintStatus]) -> MintPipeline:
    def record(attempt: MintAttempt) -> None:
        updates.append(attempt.status)

    return MintPipeline(
        provider,
        tracker,
        CONTRACT_ADDRESS,
        on_update=record,
        poll_interval=0,
        confirmation_timeout=0.05,
    )
