"""Wire the TrustFi components together from environment configuration."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from . import config
from .chains import TARGET_CHAIN, ChainConfig
from .local_wallet import LocalKeyProvider
from .logging_utils import get_logger
from .mint import MintAttempt, MintPipeline
from .network import NetworkNegotiator
from .provider import WalletProvider
from .query import CredentialQueryService, Web3ChainReader
from .session import SessionListener, SessionTracker

logger = get_logger("trustfi.runtime")


class ConfigurationError(RuntimeError):
    """Raised when a required environment variable is missing."""


@dataclass
class TrustFiRuntime:
    provider: Optional[WalletProvider]
    tracker: SessionTracker
    mint: MintPipeline
    query: CredentialQueryService

    async def start(self) -> None:
        await self.tracker.start()

    def close(self) -> None:
        self.tracker.teardown()


def build_provider_from_env() -> Optional[WalletProvider]:
    """A local key wallet when PRIVATE_KEY is set; no provider otherwise.

    The wallet starts without the target chain registered, as a fresh
    browser wallet would, so the first connect goes through add-chain.
    """
    private_key, _ = config.get_private_key()
    if not private_key:
        logger.info("%s not set; running without a wallet provider", config.PRIVATE_KEY_ENV)
        return None
    return LocalKeyProvider(private_key, gas_limit=config.get_gas_limit())


def build_runtime(
    provider: Optional[WalletProvider] = None,
    contract_address: Optional[str] = None,
    chain: ChainConfig = TARGET_CHAIN,
    on_reload: Optional[Callable[[], None]] = None,
    on_mint_update: Optional[Callable[[MintAttempt], None]] = None,
    on_session_change: Optional[SessionListener] = None,
) -> TrustFiRuntime:
    if contract_address is None:
        contract_address, _ = config.get_credential_address()
    if not contract_address:
        raise ConfigurationError(
            f"Configure `{config.CREDENTIAL_ADDRESS_ENV}` with the deployed credential contract address."
        )
    negotiator = NetworkNegotiator(provider, chain)
    tracker = SessionTracker(provider, negotiator, on_reload=on_reload)
    if on_session_change is not None:
        tracker.on_session_change(on_session_change)
    return TrustFiRuntime(
        provider=provider,
        tracker=tracker,
        mint=MintPipeline(provider, tracker, contract_address, on_update=on_mint_update),
        query=CredentialQueryService(Web3ChainReader.for_chain(contract_address, chain)),
    )
