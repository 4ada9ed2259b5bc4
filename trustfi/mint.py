"""Credential mint pipeline: negotiate, sign, submit, await inclusion, report."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from . import config
from .chains import ChainConfig
from .contract import CREDENTIAL_METADATA_URI, build_mint_request, encode_credential_id, format_receipt
from .errors import (
    MintError,
    MintInProgress,
    NoActiveSession,
    ProviderDisconnected,
    TransactionConfirmationTimeout,
    TransactionRejectedByUser,
    TransactionReverted,
    TrustFiError,
)
from .logging_utils import get_logger
from .provider import (
    CHAIN_DISCONNECTED,
    DISCONNECTED,
    EXECUTION_REVERTED,
    USER_REJECTED,
    WalletProvider,
    error_code,
    error_message,
)
from .session import SessionTracker

logger = get_logger("trustfi.mint")


class MintStatus(str, Enum):
    PENDING = "Pending"
    AWAITING_APPROVAL = "AwaitingApproval"
    SUBMITTED = "Submitted"
    CONFIRMED = "Confirmed"
    FAILED = "Failed"


IN_FLIGHT_STATUSES = (MintStatus.PENDING, MintStatus.AWAITING_APPROVAL, MintStatus.SUBMITTED)


@dataclass
class MintAttempt:
    target_account: str
    label: str
    credential_id: bytes
    metadata_uri: str
    generation: int
    status: MintStatus = MintStatus.PENDING
    transaction_hash: Optional[str] = None
    failure_reason: Optional[str] = None
    error: Optional[TrustFiError] = None
    receipt: Optional[dict[str, Any]] = None
    explorer_url: Optional[str] = None
    orphaned: bool = False
    history: list[MintStatus] = field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.status in (MintStatus.CONFIRMED, MintStatus.FAILED)

    @property
    def in_flight(self) -> bool:
        return self.status in IN_FLIGHT_STATUSES

    @property
    def status_message(self) -> str:
        if self.status == MintStatus.PENDING:
            return "Preparing transaction..."
        if self.status == MintStatus.AWAITING_APPROVAL:
            return "Please approve the transaction in your wallet..."
        if self.status == MintStatus.SUBMITTED:
            if isinstance(self.error, TransactionConfirmationTimeout):
                return f"Transaction {self.transaction_hash} is still pending confirmation."
            return "Minting in progress... waiting for confirmation."
        if self.status == MintStatus.CONFIRMED:
            return f"Success! Your CRED NFT was minted. Tx: {self.transaction_hash}"
        return f"Minting failed: {self.failure_reason}"


def _is_revert(exc: BaseException) -> bool:
    if error_code(exc) == EXECUTION_REVERTED:
        return True
    return "revert" in error_message(exc).lower()


def classify_send_error(exc: BaseException) -> MintError:
    """Map a provider failure from ``eth_sendTransaction`` to a mint error kind."""
    code = error_code(exc)
    message = error_message(exc)
    if code == USER_REJECTED:
        return TransactionRejectedByUser(message, code=code)
    if code in (DISCONNECTED, CHAIN_DISCONNECTED):
        return ProviderDisconnected(message, code=code)
    if _is_revert(exc):
        return TransactionReverted(message, code=code, data=getattr(exc, "data", None))
    return MintError(message, code=code)


class MintPipeline:
    """Issue one credential to the connected account per ``mint_credential`` call.

    At most one attempt is in flight per live session; failures are reported
    on the attempt and never retried here.
    """

    def __init__(
        self,
        provider: Optional[WalletProvider],
        tracker: SessionTracker,
        contract_address: str,
        metadata_uri: str = CREDENTIAL_METADATA_URI,
        on_update: Optional[Callable[[MintAttempt], None]] = None,
        poll_interval: Optional[float] = None,
        confirmation_timeout: Optional[float] = None,
    ):
        self.provider = provider
        self.tracker = tracker
        self.contract_address = contract_address
        self.metadata_uri = metadata_uri
        self.on_update = on_update
        self.poll_interval = poll_interval if poll_interval is not None else config.get_poll_interval()
        self.confirmation_timeout = (
            confirmation_timeout if confirmation_timeout is not None else config.get_confirmation_timeout()
        )
        self._in_flight: Optional[MintAttempt] = None

    @property
    def chain(self) -> ChainConfig:
        return self.tracker.negotiator.chain

    @property
    def in_flight(self) -> Optional[MintAttempt]:
        attempt = self._in_flight
        if attempt is None or not attempt.in_flight or not self.tracker.is_current(attempt.generation):
            return None
        return attempt

    async def mint_credential(self, label: str) -> MintAttempt:
        account = self.tracker.current_account()
        if not account:
            raise NoActiveSession()
        if self.in_flight is not None:
            raise MintInProgress()
        credential_id = encode_credential_id(label)

        attempt = MintAttempt(
            target_account=account,
            label=label,
            credential_id=credential_id,
            metadata_uri=self.metadata_uri,
            generation=self.tracker.generation,
        )
        self._in_flight = attempt
        self._transition(attempt, MintStatus.PENDING)

        try:
            await self.tracker.negotiator.ensure_target_network()
        except TrustFiError as exc:
            if self._discard_if_stale(attempt):
                return attempt
            return self._fail(attempt, exc)
        if self._discard_if_stale(attempt):
            return attempt

        try:
            tx_request = build_mint_request(self.contract_address, account, self.metadata_uri, credential_id)
        except (ValueError, TypeError) as exc:
            if self._discard_if_stale(attempt):
                return attempt
            return self._fail(attempt, MintError(f"Unable to build mint transaction: {exc}"))

        self._transition(attempt, MintStatus.AWAITING_APPROVAL)
        try:
            tx_hash = await self.provider.request("eth_sendTransaction", [tx_request])
        except Exception as exc:
            if self._discard_if_stale(attempt):
                return attempt
            return self._fail(attempt, classify_send_error(exc))
        if self._discard_if_stale(attempt):
            return attempt

        attempt.transaction_hash = str(tx_hash)
        attempt.explorer_url = self.chain.tx_explorer_url(attempt.transaction_hash)
        self._transition(attempt, MintStatus.SUBMITTED)

        await self._await_confirmation(attempt)
        return attempt

    async def check_confirmation(self, attempt: MintAttempt) -> MintAttempt:
        """Poll once for a Submitted attempt's receipt (user-initiated re-check)."""
        if attempt.status != MintStatus.SUBMITTED or attempt.orphaned:
            return attempt
        if self._discard_if_stale(attempt):
            return attempt
        try:
            receipt = await self._fetch_receipt(attempt.transaction_hash)
        except Exception as exc:
            if not self._discard_if_stale(attempt):
                self._fail(attempt, classify_send_error(exc))
            return attempt
        if self._discard_if_stale(attempt):
            return attempt
        if receipt is not None:
            self._apply_receipt(attempt, receipt)
        return attempt

    async def _await_confirmation(self, attempt: MintAttempt) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.confirmation_timeout
        while True:
            try:
                receipt = await self._fetch_receipt(attempt.transaction_hash)
            except Exception as exc:
                if not self._discard_if_stale(attempt):
                    self._fail(attempt, classify_send_error(exc))
                return
            if self._discard_if_stale(attempt):
                return
            if receipt is not None:
                self._apply_receipt(attempt, receipt)
                return
            if loop.time() >= deadline:
                attempt.error = TransactionConfirmationTimeout(
                    f"No receipt for {attempt.transaction_hash} after {self.confirmation_timeout:.0f}s"
                )
                logger.warning("Mint %s still unconfirmed after %.0fs", attempt.transaction_hash, self.confirmation_timeout)
                self._notify(attempt)
                return
            await asyncio.sleep(self.poll_interval)

    async def _fetch_receipt(self, tx_hash: Optional[str]) -> Optional[dict[str, Any]]:
        raw = await self.provider.request("eth_getTransactionReceipt", [tx_hash])
        if raw is None:
            return None
        return format_receipt(raw)

    def _apply_receipt(self, attempt: MintAttempt, receipt: dict[str, Any]) -> None:
        attempt.receipt = receipt
        if receipt.get("status") == 1:
            attempt.error = None
            self._transition(attempt, MintStatus.CONFIRMED)
            logger.info("Mint %s confirmed in block %s", attempt.transaction_hash, receipt.get("blockNumber"))
            return
        self._fail(attempt, TransactionReverted(f"Transaction {attempt.transaction_hash} reverted"))

    def _discard_if_stale(self, attempt: MintAttempt) -> bool:
        if self.tracker.is_current(attempt.generation):
            return False
        if not attempt.orphaned:
            attempt.orphaned = True
            logger.info(
                "Discarding result of orphaned mint (%s) from generation %d",
                attempt.transaction_hash or attempt.label,
                attempt.generation,
            )
        return True

    def _fail(self, attempt: MintAttempt, exc: TrustFiError) -> MintAttempt:
        attempt.error = exc
        attempt.failure_reason = exc.message
        logger.warning("Mint for %s failed [%s]: %s", attempt.target_account, exc.kind, exc.message)
        self._transition(attempt, MintStatus.FAILED)
        return attempt

    def _transition(self, attempt: MintAttempt, status: MintStatus) -> None:
        attempt.status = status
        attempt.history.append(status)
        logger.info("Mint %s -> %s", attempt.label, status.value)
        self._notify(attempt)

    def _notify(self, attempt: MintAttempt) -> None:
        if self.on_update is not None and not attempt.orphaned:
            self.on_update(attempt)
