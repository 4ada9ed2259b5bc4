#!/usr/bin/env python3
"""Diagnostic script to check the TrustFi client configuration."""

import asyncio
import os
from pathlib import Path

from dotenv import load_dotenv
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3

from trustfi import config
from trustfi.chains import TARGET_CHAIN, normalise_chain_id
from trustfi.contract import load_contract_abi
from trustfi.errors import QueryError
from trustfi.query import CredentialQueryService, Web3ChainReader


def _mask(var: str, value: str) -> str:
    if "KEY" in var or "PRIVATE" in var:
        return f"{value[:6]}...{value[-4:]}" if len(value) > 12 else "***"
    return value


async def _probe(contract_address: str, probe_account: str, issues: list) -> None:
    w3 = AsyncWeb3(AsyncHTTPProvider(TARGET_CHAIN.rpc_url))
    try:
        chain_id = normalise_chain_id(await w3.eth.chain_id)
    except Exception as exc:
        print(f"  ✗ RPC unreachable: {exc}")
        issues.append(f"RPC endpoint {TARGET_CHAIN.rpc_url} unreachable")
        return
    if chain_id != TARGET_CHAIN.chain_id:
        print(f"  ✗ RPC reports chain {chain_id}, expected {TARGET_CHAIN.chain_id}")
        issues.append("RPC endpoint serves a different chain")
    else:
        print(f"  ✓ RPC reachable, chain id {chain_id}")

    service = CredentialQueryService(Web3ChainReader.for_chain(contract_address))
    try:
        result = await service.check_eligibility(probe_account)
    except QueryError as err:
        print(f"  ✗ balanceOf probe failed: {err.message}")
        issues.append("balanceOf call failed; check the contract address and ABI")
        return
    print(f"  ✓ balanceOf({probe_account}) = {result.credential_balance} -> {result.status_message}")


def main():
    print("=" * 60)
    print("TrustFi Configuration Diagnostic")
    print("=" * 60)

    repo_root = Path(__file__).parent
    env_path = repo_root / ".env"
    if env_path.exists():
        print(f"\n✓ Found .env file: {env_path}")
        load_dotenv(env_path)
    else:
        print(f"\n○ No .env file at {env_path}; using the process environment")

    issues = []

    print("\n--- Target network (fixed) ---")
    print(f"  {TARGET_CHAIN.display_name} ({TARGET_CHAIN.hex_chain_id}) via {TARGET_CHAIN.rpc_url}")

    required = {config.CREDENTIAL_ADDRESS_ENV: "Deployed credential contract address"}
    optional = {
        config.PRIVATE_KEY_ENV: "Local wallet key (needed to connect and mint)",
        config.CREDENTIAL_ABI_PATH_ENV: "ABI file overriding the bundled one",
        config.GAS_LIMIT_ENV: "Fixed gas limit",
        config.CONFIRMATION_TIMEOUT_ENV: "Seconds to wait for a mint receipt",
    }

    print("\n--- Required Variables ---")
    for var, desc in required.items():
        value = os.getenv(var)
        if value:
            print(f"  ✓ {var:32} = {_mask(var, value)}")
        else:
            print(f"  ✗ {var:32} = NOT SET")
            issues.append(f"Missing required variable: {var} ({desc})")

    print("\n--- Optional Variables ---")
    for var, desc in optional.items():
        value = os.getenv(var)
        if value:
            print(f"  ✓ {var:32} = {_mask(var, value)}")
        else:
            print(f"  ○ {var:32} = not set ({desc})")

    print("\n--- ABI ---")
    try:
        abi = load_contract_abi()
        names = {entry.get("name") for entry in abi if entry.get("type") == "function"}
        for expected in ("safeMint", "balanceOf"):
            mark = "✓" if expected in names else "✗"
            print(f"  {mark} {expected}")
            if expected not in names:
                issues.append(f"ABI is missing {expected}")
    except (FileNotFoundError, ValueError) as exc:
        print(f"  ✗ {exc}")
        issues.append(str(exc))

    contract_address, _ = config.get_credential_address()
    if contract_address and Web3.is_address(contract_address):
        print("\n--- Read-only probe ---")
        private_key, _ = config.get_private_key()
        probe_account = (
            Web3().eth.account.from_key(private_key).address
            if private_key
            else "0x000000000000000000000000000000000000dEaD"
        )
        asyncio.run(_probe(contract_address, probe_account, issues))
    elif contract_address:
        issues.append(f"{config.CREDENTIAL_ADDRESS_ENV} is not a valid address")

    print("\n" + "=" * 60)
    print("Summary")
    print("=" * 60)
    if issues:
        print(f"\n⚠️  Found {len(issues)} issue(s) to fix:\n")
        for i, issue in enumerate(issues, 1):
            print(f"  {i}. {issue}")
    else:
        print("\n✅ All checks passed! Run: streamlit run streamlit/src/frontend/app.py")


if __name__ == "__main__":
    main()
