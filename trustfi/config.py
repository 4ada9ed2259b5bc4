# Environment keys for the TrustFi credential clients.
# Chain parameters are fixed in chains.py; only deployment outputs and
# signing/gas knobs come from the environment.

import os
from typing import Optional, Tuple

# Address yielded by the deployment step for the credential contract
CREDENTIAL_ADDRESS_ENV = "CREDENTIAL_CONTRACT_ADDRESS"
CREDENTIAL_ABI_PATH_ENV = "CREDENTIAL_ABI_PATH"

# Local key wallet
PRIVATE_KEY_ENV = "PRIVATE_KEY"

# Gas settings (all optional)
GAS_LIMIT_ENV = "TRUSTFI_GAS_LIMIT"
PRIORITY_FEE_GWEI_ENV = "TRUSTFI_PRIORITY_FEE_GWEI"
MAX_FEE_GWEI_ENV = "TRUSTFI_MAX_FEE_GWEI"

# Confirmation polling
CONFIRMATION_TIMEOUT_ENV = "TRUSTFI_CONFIRMATION_TIMEOUT"
POLL_INTERVAL_ENV = "TRUSTFI_POLL_INTERVAL"
DEFAULT_CONFIRMATION_TIMEOUT = 180.0
DEFAULT_POLL_INTERVAL = 2.0

LOG_LEVEL_ENV = "TRUSTFI_LOG_LEVEL"


def get_credential_address() -> Tuple[Optional[str], str]:
    addr = os.getenv(CREDENTIAL_ADDRESS_ENV)
    return (addr, CREDENTIAL_ADDRESS_ENV) if addr else (None, "")


def get_private_key() -> Tuple[Optional[str], str]:
    key = os.getenv(PRIVATE_KEY_ENV)
    return (key, PRIVATE_KEY_ENV) if key else (None, "")


def get_gas_limit() -> Optional[int]:
    raw = os.getenv(GAS_LIMIT_ENV)
    if not raw:
        return None
    try:
        return int(raw, 0)
    except ValueError:
        return None


def _get_float(env_name: str, default: float) -> float:
    raw = os.getenv(env_name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def get_confirmation_timeout() -> float:
    return _get_float(CONFIRMATION_TIMEOUT_ENV, DEFAULT_CONFIRMATION_TIMEOUT)


def get_poll_interval() -> float:
    return _get_float(POLL_INTERVAL_ENV, DEFAULT_POLL_INTERVAL)
