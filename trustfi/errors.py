"""Error kinds raised by the TrustFi wallet and credential clients.

Every provider or contract failure is converted into one of these at the
component boundary. The provider's original text is kept on ``message`` so it
can be shown to the user unchanged.
"""
from __future__ import annotations

from typing import Any, Optional


class TrustFiError(Exception):
    """Base class for all TrustFi client errors."""

    default_message = "TrustFi client error"

    def __init__(self, message: Optional[str] = None, *, code: Optional[int] = None, data: Any = None):
        self.message = message or self.default_message
        self.code = code
        self.data = data
        super().__init__(self.message)

    @property
    def kind(self) -> str:
        return type(self).__name__


class ProviderUnavailable(TrustFiError):
    default_message = "No wallet provider found. Please install MetaMask (or another injected wallet) to use this dApp!"


# ---- network negotiation ----
class NetworkError(TrustFiError):
    default_message = "Unable to switch the wallet to the required network"


class ChainUnknownToProvider(NetworkError):
    default_message = "The wallet does not know the requested network"


class ChainSwitchRejected(NetworkError):
    default_message = "Error switching network"


class ChainAddRejected(NetworkError):
    default_message = "Error adding network"


# ---- session ----
class SessionError(TrustFiError):
    default_message = "Wallet session error"


class AccountAccessDenied(SessionError):
    default_message = "Error connecting wallet: account access was denied"


# ---- mint ----
class MintError(TrustFiError):
    default_message = "Minting failed"


class NoActiveSession(MintError):
    default_message = "Please connect your wallet first."


class MintInProgress(MintError):
    default_message = "A mint is already in progress for this wallet."


class LabelEncodingOverflow(MintError):
    default_message = "Credential label does not fit the fixed-width identifier"


class TransactionRejectedByUser(MintError):
    default_message = "Transaction was rejected in the wallet"


class TransactionReverted(MintError):
    default_message = "Transaction reverted"


class TransactionConfirmationTimeout(MintError):
    default_message = "Transaction not confirmed yet"


class ProviderDisconnected(MintError):
    default_message = "Wallet provider disconnected"


# ---- reads ----
class QueryError(TrustFiError):
    default_message = "Credential query failed"


class QueryFailure(QueryError):
    default_message = "Error checking credentials"
