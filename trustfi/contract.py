"""Binding for the TrustFi credential (reputation NFT) contract."""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from web3 import Web3
from web3.contract import Contract

from .config import CREDENTIAL_ABI_PATH_ENV
from .errors import LabelEncodingOverflow

CREDENTIAL_ID_WIDTH = 32
# bytes32 strings keep one byte for the NUL terminator
MAX_LABEL_BYTES = CREDENTIAL_ID_WIDTH - 1

DEFAULT_CREDENTIAL_LABEL = "job-logo-design-007"
CREDENTIAL_METADATA_URI = (
    "https://scarlet-gentle-chimpanzee-964.mypinata.cloud/ipfs/"
    "bafkreihqpcmmbygmdbjp34ply7oi4xyjfxwhiqyvmptzydf7loqhoc54ni"
)

CREDENTIAL_ABI: list[dict[str, Any]] = [
    {
        "inputs": [
            {"internalType": "address", "name": "to", "type": "address"},
            {"internalType": "string", "name": "uri", "type": "string"},
            {"internalType": "bytes32", "name": "achievementId", "type": "bytes32"},
        ],
        "name": "safeMint",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "address", "name": "owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]

_ENCODER = Web3()


def encode_credential_id(label: str) -> bytes:
    """Encode ``label`` as a zero-padded ``bytes32`` identifier.

    Over-long labels are rejected, never truncated.
    """
    if not label:
        raise LabelEncodingOverflow("Credential label must not be empty")
    raw = label.encode("utf-8")
    if len(raw) > MAX_LABEL_BYTES:
        raise LabelEncodingOverflow(
            f"Credential label is {len(raw)} bytes; at most {MAX_LABEL_BYTES} fit in bytes32"
        )
    return raw.ljust(CREDENTIAL_ID_WIDTH, b"\x00")


def decode_credential_id(value: bytes) -> str:
    return bytes(value).rstrip(b"\x00").decode("utf-8")


def load_contract_abi(abi_path: Optional[str] = None) -> list[dict[str, Any]]:
    """Return the credential ABI, from ``abi_path``/``CREDENTIAL_ABI_PATH`` when set.

    Accepts a raw ABI list or a compiler artifact with an ``abi`` key.
    Relative paths resolve from the repository root.
    """
    abi_path = abi_path or os.getenv(CREDENTIAL_ABI_PATH_ENV)
    if not abi_path:
        return CREDENTIAL_ABI
    p = Path(abi_path).expanduser()
    if not p.is_absolute():
        p = Path(__file__).resolve().parents[1] / p
    p = p.resolve()
    if not p.is_file():
        raise FileNotFoundError(f"ABI file not found: {p}")
    text = p.read_text(encoding="utf-8")
    if not text.strip():
        raise ValueError(f"ABI file is empty: {p}")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"ABI file is not valid JSON: {p} - {e}") from e
    if isinstance(data, dict) and isinstance(data.get("abi"), list):
        return data["abi"]
    if isinstance(data, list):
        return data
    raise ValueError(f"ABI file does not contain a valid ABI (expected dict with 'abi' key or list): {p}")


def credential_contract(contract_address: str, abi: Optional[list[dict[str, Any]]] = None) -> Contract:
    """Provider-less contract object, used only for call-data encoding."""
    return _ENCODER.eth.contract(
        address=Web3.to_checksum_address(contract_address), abi=abi or CREDENTIAL_ABI
    )


def encode_contract_call(contract: Contract, fn_name: str, args: Sequence[Any] | None = None) -> str:
    """Encode a contract function call: ``encode_abi`` on web3 v7, ``encodeABI`` on v6."""
    encode = getattr(contract, "encode_abi", None) or contract.encodeABI
    return encode(fn_name, args=list(args or []))


def build_mint_request(
    contract_address: str,
    recipient: str,
    metadata_uri: str,
    credential_id: bytes,
    abi: Optional[list[dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """Build the ``eth_sendTransaction`` request for ``safeMint``: {from, to, data}."""
    contract = credential_contract(contract_address, abi)
    recipient = Web3.to_checksum_address(recipient)
    data_hex = encode_contract_call(contract, "safeMint", [recipient, metadata_uri, credential_id])
    return {"from": recipient, "to": contract.address, "data": data_hex}


def _hex(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    text = str(value)
    return text if text.startswith("0x") else "0x" + text


def _int(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, str):
        return int(value, 0)
    return int(value)


def format_receipt(receipt: Any) -> Dict[str, Any]:
    """Normalise a receipt from web3.py (AttributeDict) or raw JSON-RPC (hex strings)."""
    if receipt is None:
        return {"status": "pending"}
    return {
        "transactionHash": _hex(receipt.get("transactionHash")),
        "status": _int(receipt.get("status")),
        "blockNumber": _int(receipt.get("blockNumber")),
        "gasUsed": _int(receipt.get("gasUsed")),
    }
