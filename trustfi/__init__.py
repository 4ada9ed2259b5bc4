"""
TrustFi wallet-session and credential core.

Negotiates the wallet onto the target network, tracks the connected account,
mints achievement credentials and reads them back to decide loan eligibility.
"""

from .chains import MOONBASE_ALPHA, TARGET_CHAIN, ChainConfig, NativeCurrency
from .eligibility import EligibilityResult, evaluate
from .mint import MintAttempt, MintPipeline, MintStatus
from .network import NetworkNegotiator
from .query import CredentialQueryService, Web3ChainReader
from .session import SessionEvent, SessionTracker, WalletSession

__all__ = [
    "ChainConfig",
    "CredentialQueryService",
    "EligibilityResult",
    "MOONBASE_ALPHA",
    "MintAttempt",
    "MintPipeline",
    "MintStatus",
    "NativeCurrency",
    "NetworkNegotiator",
    "SessionEvent",
    "SessionTracker",
    "TARGET_CHAIN",
    "WalletSession",
    "Web3ChainReader",
    "evaluate",
]
