"""Static description of the networks the TrustFi clients talk to."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class NativeCurrency:
    name: str
    symbol: str
    decimals: int


@dataclass(frozen=True)
class ChainConfig:
    chain_id: int
    display_name: str
    rpc_urls: Tuple[str, ...]
    native_currency: NativeCurrency
    explorer_urls: Tuple[str, ...] = ()

    @property
    def hex_chain_id(self) -> str:
        return hex(self.chain_id)

    @property
    def rpc_url(self) -> str:
        return self.rpc_urls[0]

    def to_add_chain_params(self) -> Dict[str, Any]:
        """EIP-3085 payload for ``wallet_addEthereumChain``."""
        return {
            "chainId": self.hex_chain_id,
            "chainName": self.display_name,
            "rpcUrls": list(self.rpc_urls),
            "nativeCurrency": {
                "name": self.native_currency.name,
                "symbol": self.native_currency.symbol,
                "decimals": self.native_currency.decimals,
            },
            "blockExplorerUrls": list(self.explorer_urls),
        }

    def tx_explorer_url(self, tx_hash: str) -> Optional[str]:
        if not self.explorer_urls:
            return None
        return f"{self.explorer_urls[0].rstrip('/')}/tx/{tx_hash}"

    @classmethod
    def from_add_chain_params(cls, params: Dict[str, Any]) -> "ChainConfig":
        chain_id = normalise_chain_id(params.get("chainId"))
        if chain_id is None:
            raise ValueError(f"Invalid chainId in add-chain payload: {params.get('chainId')!r}")
        rpc_urls = tuple(params.get("rpcUrls") or ())
        if not rpc_urls:
            raise ValueError("Add-chain payload must include at least one rpcUrl")
        currency = params.get("nativeCurrency") or {}
        try:
            native = NativeCurrency(
                name=str(currency["name"]),
                symbol=str(currency["symbol"]),
                decimals=int(currency["decimals"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Invalid nativeCurrency in add-chain payload: {exc}") from exc
        return cls(
            chain_id=chain_id,
            display_name=str(params.get("chainName") or hex(chain_id)),
            rpc_urls=rpc_urls,
            native_currency=native,
            explorer_urls=tuple(params.get("blockExplorerUrls") or ()),
        )


def normalise_chain_id(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            return int(stripped, 0)
        except ValueError:
            return None
    return None


MOONBASE_ALPHA = ChainConfig(
    chain_id=1287,
    display_name="Moonbase Alpha",
    rpc_urls=("https://rpc.api.moonbase.moonbeam.network",),
    native_currency=NativeCurrency(name="DEV", symbol="DEV", decimals=18),
    explorer_urls=("https://moonbase.moonscan.io/",),
)

TARGET_CHAIN = MOONBASE_ALPHA
