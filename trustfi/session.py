"""Process-wide wallet session tracking.

The tracker is the only writer of the ``WalletSession``. It reacts to the
provider's ``accountsChanged`` and ``chainChanged`` notifications; a chain
change invalidates everything in flight by bumping ``generation``.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence

from .chains import normalise_chain_id
from .errors import AccountAccessDenied, ProviderUnavailable, SessionError
from .logging_utils import get_logger
from .network import NetworkNegotiator
from .provider import (
    ACCOUNTS_CHANGED,
    CHAIN_CHANGED,
    REQUEST_PENDING,
    USER_REJECTED,
    WalletProvider,
    error_code,
    error_message,
)

logger = get_logger("trustfi.session")


class SessionEvent(str, Enum):
    CONNECTED = "connected"
    ACCOUNT_CHANGED = "account_changed"
    DISCONNECTED = "disconnected"
    INVALIDATED = "invalidated"


@dataclass(frozen=True)
class WalletSession:
    account: Optional[str] = None
    chain_id: Optional[int] = None

    @property
    def is_connected(self) -> bool:
        return bool(self.account)


SessionListener = Callable[[SessionEvent, WalletSession], None]


def _first_account(accounts: Any) -> Optional[str]:
    if not isinstance(accounts, (list, tuple)) or not accounts:
        return None
    head = accounts[0]
    return str(head) if head else None


class SessionTracker:
    def __init__(
        self,
        provider: Optional[WalletProvider],
        negotiator: Optional[NetworkNegotiator] = None,
        on_reload: Optional[Callable[[], None]] = None,
    ):
        self.provider = provider
        self.negotiator = negotiator or NetworkNegotiator(provider)
        self.on_reload = on_reload
        self._session = WalletSession()
        self._generation = 0
        self._listeners: List[SessionListener] = []
        self._subscribed = False

    # ---- reads ----
    @property
    def session(self) -> WalletSession:
        return self._session

    @property
    def generation(self) -> int:
        return self._generation

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def current_account(self) -> Optional[str]:
        return self._session.account

    def on_session_change(self, listener: SessionListener) -> Callable[[], None]:
        """Register ``listener``; the returned callable unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ---- lifecycle ----
    async def start(self) -> None:
        """Subscribe to provider notifications and pick up an already-authorised account.

        The account lookup is silent (``eth_accounts``) and best effort.
        """
        if self.provider is None:
            logger.info("No wallet provider present; session stays empty")
            return
        self._subscribe()
        generation = self._generation
        try:
            accounts = await self.provider.request("eth_accounts")
        except Exception as exc:
            logger.warning("Could not auto-connect: %s", error_message(exc))
            return
        account = _first_account(accounts)
        if not account:
            return
        chain_id = await self._read_chain_id()
        if not self.is_current(generation):
            logger.info("Chain changed during auto-connect; ignoring %s", account)
            return
        self._set_session(WalletSession(account=account, chain_id=chain_id), SessionEvent.CONNECTED)

    async def connect(self) -> str:
        if self.provider is None:
            raise ProviderUnavailable()
        self._subscribe()
        await self.negotiator.ensure_target_network()
        # negotiation may itself change the chain; only later changes are stale
        generation = self._generation
        try:
            accounts = await self.provider.request("eth_requestAccounts")
        except Exception as exc:
            message = error_message(exc)
            code = error_code(exc)
            if code == USER_REJECTED:
                logger.info("User declined account access: %s", message)
            elif code == REQUEST_PENDING:
                logger.info("An account request is already open in the wallet")
            else:
                logger.warning("Account access failed (code %s): %s", code, message)
            raise AccountAccessDenied(f"Error connecting wallet: {message}", code=code) from exc
        if not self.is_current(generation):
            logger.info("Chain changed while account access was pending; discarding result")
            raise SessionError("Error connecting wallet: the network changed, please connect again")
        account = _first_account(accounts)
        if not account:
            raise AccountAccessDenied("Error connecting wallet: the wallet returned no accounts")
        self._set_session(
            WalletSession(account=account, chain_id=self.negotiator.chain.chain_id),
            SessionEvent.CONNECTED,
        )
        logger.info("Connected %s", account)
        return account

    def invalidate(self) -> None:
        """Tear the session down and mark every outstanding operation stale."""
        self._generation += 1
        self._session = WalletSession()
        logger.info("Session invalidated (generation %d)", self._generation)
        self._notify(SessionEvent.INVALIDATED)

    def teardown(self) -> None:
        if self.provider is not None and self._subscribed:
            self.provider.remove_listener(ACCOUNTS_CHANGED, self._handle_accounts_changed)
            self.provider.remove_listener(CHAIN_CHANGED, self._handle_chain_changed)
        self._subscribed = False
        self._listeners.clear()

    # ---- provider notifications ----
    def _handle_accounts_changed(self, accounts: Sequence[str]) -> None:
        account = _first_account(accounts)
        if account is None:
            logger.info("Wallet disconnected")
            self._set_session(WalletSession(), SessionEvent.DISCONNECTED)
            return
        if account == self._session.account:
            return
        logger.info("Active account changed to %s", account)
        self._set_session(replace(self._session, account=account), SessionEvent.ACCOUNT_CHANGED)

    def _handle_chain_changed(self, chain_id: Any) -> None:
        logger.info("Chain changed to %s; invalidating session", chain_id)
        self.invalidate()
        if self.on_reload is None:
            # no host to rebuild us: keep listening as the fresh session
            return
        self.teardown()
        self.on_reload()

    # ---- helpers ----
    def _subscribe(self) -> None:
        if self._subscribed or self.provider is None:
            return
        self.provider.on(ACCOUNTS_CHANGED, self._handle_accounts_changed)
        self.provider.on(CHAIN_CHANGED, self._handle_chain_changed)
        self._subscribed = True

    async def _read_chain_id(self) -> Optional[int]:
        try:
            return normalise_chain_id(await self.provider.request("eth_chainId"))
        except Exception as exc:
            logger.warning("Could not read wallet chain id: %s", error_message(exc))
            return None

    def _set_session(self, session: WalletSession, event: SessionEvent) -> None:
        self._session = session
        self._notify(event)

    def _notify(self, event: SessionEvent) -> None:
        for listener in list(self._listeners):
            listener(event, self._session)
