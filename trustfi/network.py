"""Get the wallet onto the target chain before any state-changing call."""
from __future__ import annotations

from typing import Optional

from .chains import TARGET_CHAIN, ChainConfig
from .errors import ChainAddRejected, ChainSwitchRejected, ChainUnknownToProvider, ProviderUnavailable
from .logging_utils import get_logger
from .provider import UNRECOGNIZED_CHAIN, WalletProvider, error_code, error_message

logger = get_logger("trustfi.network")


class NetworkNegotiator:
    def __init__(self, provider: Optional[WalletProvider], chain: ChainConfig = TARGET_CHAIN):
        self.provider = provider
        self.chain = chain

    async def ensure_target_network(self) -> None:
        """Switch to the target chain, adding it to the wallet if it is unknown.

        Raises ``ChainSwitchRejected`` for any switch failure other than
        "unrecognised chain" and ``ChainAddRejected`` when the add request
        fails. Neither case is retried.
        """
        if self.provider is None:
            raise ProviderUnavailable()
        try:
            await self._switch()
        except ChainUnknownToProvider:
            await self._add()

    async def _switch(self) -> None:
        chain_hex = self.chain.hex_chain_id
        logger.info("Requesting switch to %s (%s)", self.chain.display_name, chain_hex)
        try:
            await self.provider.request("wallet_switchEthereumChain", [{"chainId": chain_hex}])
        except Exception as exc:
            code = error_code(exc)
            message = error_message(exc)
            if code == UNRECOGNIZED_CHAIN:
                raise ChainUnknownToProvider(message, code=code) from exc
            logger.warning("Switch to %s rejected: %s", chain_hex, message)
            raise ChainSwitchRejected(f"Error switching network: {message}", code=code) from exc

    async def _add(self) -> None:
        # the add request also switches the wallet to the new chain
        logger.info("%s unknown to the wallet; requesting add", self.chain.display_name)
        try:
            await self.provider.request("wallet_addEthereumChain", [self.chain.to_add_chain_params()])
        except Exception as exc:
            message = error_message(exc)
            logger.warning("Adding %s failed: %s", self.chain.hex_chain_id, message)
            raise ChainAddRejected(
                f"Error adding {self.chain.display_name}: {message}", code=error_code(exc)
            ) from exc
