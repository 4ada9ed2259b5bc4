"""Software wallet that speaks the provider protocol over a private key.

Used where no injected browser wallet exists (the Streamlit pages, scripts).
Chains must be registered before the wallet can switch to them, so it goes
through the same switch/add negotiation a browser wallet does.
"""
from __future__ import annotations

import asyncio
import os
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Iterable, Optional, Sequence

from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import ContractLogicError, TransactionNotFound, Web3Exception

from . import config
from .chains import ChainConfig, normalise_chain_id
from .logging_utils import get_logger
from .provider import (
    ACCOUNTS_CHANGED,
    CHAIN_CHANGED,
    CHAIN_DISCONNECTED,
    EXECUTION_REVERTED,
    INTERNAL_ERROR,
    UNAUTHORIZED,
    UNRECOGNIZED_CHAIN,
    UNSUPPORTED_METHOD,
    EventEmitterMixin,
    ProviderRpcError,
)

logger = get_logger("trustfi.local_wallet")

INVALID_PARAMS = -32602


def _default_client(rpc_url: str) -> AsyncWeb3:
    return AsyncWeb3(AsyncHTTPProvider(rpc_url))


def _parse_gwei(env_name: str) -> Optional[int]:
    raw = os.getenv(env_name)
    if not raw:
        return None
    try:
        return int(Decimal(raw) * Decimal(1_000_000_000))
    except (InvalidOperation, ValueError):
        logger.warning("Ignoring unparsable %s=%s", env_name, raw)
        return None


def _quantity(value: Any) -> int:
    if not value:
        return 0
    if isinstance(value, str):
        return int(value, 0)
    return int(value)


async def fee_params(w3: AsyncWeb3) -> Dict[str, int]:
    """EIP-1559 fees when the chain reports a base fee, legacy gasPrice otherwise.

    Env overrides (optional): TRUSTFI_PRIORITY_FEE_GWEI, TRUSTFI_MAX_FEE_GWEI
    """
    try:
        latest = await w3.eth.get_block("latest")
        base = latest.get("baseFeePerGas")
    except Web3Exception:
        base = None
    if base is not None:
        prio = _parse_gwei(config.PRIORITY_FEE_GWEI_ENV) or Web3.to_wei(1, "gwei")
        max_fee = _parse_gwei(config.MAX_FEE_GWEI_ENV) or int(base) * 2 + prio
        return {"maxFeePerGas": max_fee, "maxPriorityFeePerGas": prio}
    return {"gasPrice": int(await w3.eth.gas_price)}


class LocalKeyProvider(EventEmitterMixin):
    def __init__(
        self,
        private_key: str,
        chains: Iterable[ChainConfig] = (),
        active_chain_id: Optional[int] = None,
        gas_limit: Optional[int] = None,
        client_factory: Callable[[str], AsyncWeb3] = _default_client,
    ):
        super().__init__()
        self._account = Account.from_key(private_key)
        self._chains: Dict[int, ChainConfig] = {chain.chain_id: chain for chain in chains}
        if active_chain_id is None and self._chains:
            active_chain_id = next(iter(self._chains))
        self._active_chain_id = active_chain_id
        self._authorized = False
        self._gas_limit = gas_limit
        self._client_factory = client_factory
        self._clients: Dict[int, AsyncWeb3] = {}
        self._last_nonce: Optional[int] = None
        self._handlers = {
            "eth_accounts": self._eth_accounts,
            "eth_requestAccounts": self._eth_request_accounts,
            "eth_chainId": self._eth_chain_id,
            "wallet_switchEthereumChain": self._wallet_switch_chain,
            "wallet_addEthereumChain": self._wallet_add_chain,
            "eth_sendTransaction": self._eth_send_transaction,
            "eth_getTransactionReceipt": self._eth_get_transaction_receipt,
        }

    @property
    def address(self) -> str:
        return self._account.address

    @property
    def active_chain(self) -> Optional[ChainConfig]:
        if self._active_chain_id is None:
            return None
        return self._chains.get(self._active_chain_id)

    def knows_chain(self, chain_id: int) -> bool:
        return chain_id in self._chains

    async def request(self, method: str, params: Optional[Sequence[Any]] = None) -> Any:
        handler = self._handlers.get(method)
        if handler is None:
            raise ProviderRpcError(UNSUPPORTED_METHOD, f"The wallet does not support {method}")
        logger.debug("request %s", method)
        return await handler(list(params or []))

    def disconnect(self) -> None:
        """Revoke account access, as a user would from the wallet UI."""
        if self._authorized:
            self._authorized = False
            self.emit(ACCOUNTS_CHANGED, [])

    # ---- accounts ----
    async def _eth_accounts(self, params: list) -> list[str]:
        return [self.address] if self._authorized else []

    async def _eth_request_accounts(self, params: list) -> list[str]:
        if not self._authorized:
            self._authorized = True
            self.emit(ACCOUNTS_CHANGED, [self.address])
        return [self.address]

    # ---- chains ----
    async def _eth_chain_id(self, params: list) -> str:
        if self._active_chain_id is None:
            raise ProviderRpcError(CHAIN_DISCONNECTED, "The wallet is not connected to any chain")
        return hex(self._active_chain_id)

    async def _wallet_switch_chain(self, params: list) -> None:
        chain_id = normalise_chain_id(params[0].get("chainId") if params and isinstance(params[0], dict) else None)
        if chain_id is None:
            raise ProviderRpcError(INVALID_PARAMS, "Expected params [{chainId}]")
        if chain_id not in self._chains:
            raise ProviderRpcError(
                UNRECOGNIZED_CHAIN,
                f"Unrecognized chain ID {hex(chain_id)}. Try adding the chain using wallet_addEthereumChain first.",
            )
        self._activate(chain_id)

    async def _wallet_add_chain(self, params: list) -> None:
        if not params or not isinstance(params[0], dict):
            raise ProviderRpcError(INVALID_PARAMS, "Expected params [AddEthereumChainParameter]")
        try:
            chain = ChainConfig.from_add_chain_params(params[0])
        except ValueError as exc:
            raise ProviderRpcError(INVALID_PARAMS, str(exc)) from exc
        self._chains[chain.chain_id] = chain
        self._clients.pop(chain.chain_id, None)
        logger.info("Added chain %s (%s)", chain.display_name, chain.hex_chain_id)
        self._activate(chain.chain_id)

    def _activate(self, chain_id: int) -> None:
        if chain_id == self._active_chain_id:
            return
        self._active_chain_id = chain_id
        self._last_nonce = None
        self.emit(CHAIN_CHANGED, hex(chain_id))

    def _client(self) -> AsyncWeb3:
        chain = self.active_chain
        if chain is None:
            raise ProviderRpcError(CHAIN_DISCONNECTED, "The wallet is not connected to any chain")
        client = self._clients.get(chain.chain_id)
        if client is None:
            client = self._client_factory(chain.rpc_url)
            self._clients[chain.chain_id] = client
        return client

    # ---- transactions ----
    async def _next_nonce(self, w3: AsyncWeb3) -> int:
        """Pending nonce, bumped locally so back-to-back sends never collide."""
        pending = await w3.eth.get_transaction_count(self.address, "pending")
        if self._last_nonce is not None and pending <= self._last_nonce:
            pending = self._last_nonce + 1
        self._last_nonce = pending
        return pending

    async def _eth_send_transaction(self, params: list) -> str:
        if not self._authorized:
            raise ProviderRpcError(UNAUTHORIZED, "The requested account has not been authorized")
        if not params or not isinstance(params[0], dict):
            raise ProviderRpcError(INVALID_PARAMS, "Expected params [TransactionRequest]")
        request = params[0]
        sender = request.get("from")
        if sender and str(sender).lower() != self.address.lower():
            raise ProviderRpcError(UNAUTHORIZED, f"Account {sender} is not managed by this wallet")

        w3 = self._client()
        tx: Dict[str, Any] = {
            "from": self.address,
            "to": Web3.to_checksum_address(request["to"]),
            "data": request.get("data", "0x"),
            "value": _quantity(request.get("value")),
            "chainId": self._active_chain_id,
        }
        try:
            if self._gas_limit is not None:
                tx["gas"] = self._gas_limit
            else:
                tx["gas"] = await w3.eth.estimate_gas(tx)
            tx.update(await fee_params(w3))
            tx["nonce"] = await self._next_nonce(w3)
        except ContractLogicError as exc:
            reason = getattr(exc, "message", None) or str(exc)
            if not reason.startswith("execution reverted"):
                reason = f"execution reverted: {reason}"
            raise ProviderRpcError(EXECUTION_REVERTED, reason, getattr(exc, "data", None)) from exc
        except (OSError, asyncio.TimeoutError) as exc:
            raise ProviderRpcError(CHAIN_DISCONNECTED, f"RPC endpoint unreachable: {exc}") from exc
        except (Web3Exception, ValueError) as exc:
            raise ProviderRpcError(INTERNAL_ERROR, str(exc)) from exc

        unsigned = dict(tx)
        unsigned.pop("from", None)
        signed = self._account.sign_transaction(unsigned)
        raw_tx = getattr(signed, "raw_transaction", None) or getattr(signed, "rawTransaction", None)
        if raw_tx is None:
            raise ProviderRpcError(INTERNAL_ERROR, "Signed transaction missing raw_transaction/rawTransaction")
        try:
            tx_hash = await w3.eth.send_raw_transaction(raw_tx)
        except (OSError, asyncio.TimeoutError) as exc:
            raise ProviderRpcError(CHAIN_DISCONNECTED, f"RPC endpoint unreachable: {exc}") from exc
        except (Web3Exception, ValueError) as exc:
            text = str(exc)
            if "already known" in text:
                return Web3.to_hex(Web3.keccak(raw_tx))
            raise ProviderRpcError(INTERNAL_ERROR, text) from exc
        logger.info("Broadcast %s (nonce %s)", Web3.to_hex(tx_hash), tx["nonce"])
        return Web3.to_hex(tx_hash)

    async def _eth_get_transaction_receipt(self, params: list) -> Optional[Dict[str, Any]]:
        if not params:
            raise ProviderRpcError(INVALID_PARAMS, "Expected params [transactionHash]")
        w3 = self._client()
        try:
            receipt = await w3.eth.get_transaction_receipt(params[0])
        except TransactionNotFound:
            return None
        except (OSError, asyncio.TimeoutError) as exc:
            raise ProviderRpcError(CHAIN_DISCONNECTED, f"RPC endpoint unreachable: {exc}") from exc
        except (Web3Exception, ValueError) as exc:
            raise ProviderRpcError(INTERNAL_ERROR, str(exc)) from exc
        return dict(receipt) if receipt is not None else None
