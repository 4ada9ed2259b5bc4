"""Read-only credential queries.

Reads go through a ``ChainReader`` bound to a fixed public RPC endpoint, so
they need neither wallet authorisation nor network negotiation.
"""
from __future__ import annotations

from typing import Any, Optional, Protocol

from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import ContractLogicError, Web3Exception

from .chains import TARGET_CHAIN, ChainConfig
from .contract import load_contract_abi
from .eligibility import EligibilityResult, evaluate
from .errors import QueryFailure
from .logging_utils import get_logger

logger = get_logger("trustfi.query")


class ChainReader(Protocol):
    async def balance_of(self, account: str) -> int:
        ...


class Web3ChainReader:
    """``balanceOf`` over an unsigned JSON-RPC connection."""

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        abi: Optional[list[dict[str, Any]]] = None,
    ):
        self.rpc_url = rpc_url
        self.contract_address = Web3.to_checksum_address(contract_address)
        self.abi = abi or load_contract_abi()
        self._w3: Optional[AsyncWeb3] = None

    @classmethod
    def for_chain(cls, contract_address: str, chain: ChainConfig = TARGET_CHAIN) -> "Web3ChainReader":
        return cls(chain.rpc_url, contract_address)

    @property
    def w3(self) -> AsyncWeb3:
        if self._w3 is None:
            self._w3 = AsyncWeb3(AsyncHTTPProvider(self.rpc_url))
        return self._w3

    async def balance_of(self, account: str) -> int:
        contract = self.w3.eth.contract(address=self.contract_address, abi=self.abi)
        return int(await contract.functions.balanceOf(account).call())


class CredentialQueryService:
    """Stateless credential lookups; safe to run concurrently for different accounts."""

    def __init__(self, reader: ChainReader):
        self.reader = reader

    async def query_balance(self, account: str) -> int:
        if not account or not Web3.is_address(account):
            raise QueryFailure(f"Invalid wallet address supplied: {account!r}")
        checksum = Web3.to_checksum_address(account)
        try:
            balance = await self.reader.balance_of(checksum)
        except ContractLogicError as exc:
            logger.warning("balanceOf(%s) reverted: %s", checksum, exc)
            raise QueryFailure(f"Error checking credentials: contract rejected the call: {exc}") from exc
        except Web3Exception as exc:
            logger.warning("balanceOf(%s) failed: %s", checksum, exc)
            raise QueryFailure(f"Error checking credentials: {exc}") from exc
        except Exception as exc:
            logger.warning("balanceOf(%s) could not complete: %s", checksum, exc)
            raise QueryFailure(f"Error checking credentials: {exc}") from exc
        if isinstance(balance, bool) or not isinstance(balance, int) or balance < 0:
            raise QueryFailure(f"Error checking credentials: unexpected balance {balance!r}")
        logger.info("balanceOf(%s) = %d", checksum, balance)
        return balance

    async def check_eligibility(self, account: str) -> EligibilityResult:
        balance = await self.query_balance(account)
        return evaluate(balance, account=Web3.to_checksum_address(account))
