"""
Eligibility evaluation for the lending application.

Holding at least one TrustFi credential unlocks the premium loan rate. The
decision depends on the balance alone and is recomputed on every query.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

PREMIUM_RATE_PERCENT = 3
STANDARD_RATE_PERCENT = 5


@dataclass(frozen=True)
class EligibilityResult:
    account: Optional[str]
    credential_balance: int
    eligible: bool
    status_message: str
    interest_rate_percent: int


def evaluate(balance: int, account: Optional[str] = None) -> EligibilityResult:
    """Map a credential balance to an eligibility decision.

    Args:
        balance: Number of credentials held (non-negative).
        account: Address the balance belongs to, carried through for display.

    Returns:
        EligibilityResult with ``eligible`` set iff ``balance > 0``.
    """
    if isinstance(balance, bool) or not isinstance(balance, int):
        raise TypeError(f"Credential balance must be an integer, got {type(balance).__name__}")
    if balance < 0:
        raise ValueError(f"Credential balance cannot be negative: {balance}")

    if balance > 0:
        return EligibilityResult(
            account=account,
            credential_balance=balance,
            eligible=True,
            status_message=f"Verified! You hold {balance} CRED token(s).",
            interest_rate_percent=PREMIUM_RATE_PERCENT,
        )
    return EligibilityResult(
        account=account,
        credential_balance=0,
        eligible=False,
        status_message="No TrustFi credentials found in your wallet. (balance: 0)",
        interest_rate_percent=STANDARD_RATE_PERCENT,
    )
