"""Tests for trustfi.query -- read-only balance lookups and eligibility."""

import asyncio

import pytest
from web3.exceptions import ContractLogicError

from trustfi.contract import DEFAULT_CREDENTIAL_LABEL
from trustfi.errors import QueryFailure
from trustfi.mint import MintPipeline, MintStatus
from trustfi.query import CredentialQueryService, Web3ChainReader

from conftest import ACCOUNT_A, ACCOUNT_B, CONTRACT_ADDRESS, SUCCESS_RECEIPT, FakeReader


class TestQueryBalance:
    def test_returns_balance(self):
        service = CredentialQueryService(FakeReader({ACCOUNT_A: 2}))
        assert asyncio.run(service.query_balance(ACCOUNT_A)) == 2

    def test_unknown_account_reads_zero_without_a_session(self):
        reader = FakeReader()
        service = CredentialQueryService(reader)
        assert asyncio.run(service.query_balance(ACCOUNT_B)) == 0
        assert reader.calls == [ACCOUNT_B]

    def test_lowercase_address_is_checksummed(self):
        reader = FakeReader({ACCOUNT_A: 1})
        service = CredentialQueryService(reader)
        asyncio.run(service.query_balance(ACCOUNT_A.lower()))
        assert reader.calls == [ACCOUNT_A]

    @pytest.mark.parametrize("bad", ["", "0x123", "not-an-address"])
    def test_invalid_address(self, bad):
        reader = FakeReader()
        with pytest.raises(QueryFailure):
            asyncio.run(CredentialQueryService(reader).query_balance(bad))
        assert reader.calls == []

    @pytest.mark.parametrize(
        "error",
        [ContractLogicError("execution reverted"), ConnectionError("connection refused"), asyncio.TimeoutError()],
    )
    def test_read_errors_become_query_failure(self, error):
        service = CredentialQueryService(FakeReader(error=error))
        with pytest.raises(QueryFailure) as exc_info:
            asyncio.run(service.query_balance(ACCOUNT_A))
        assert exc_info.value.message.startswith("Error checking credentials")

    def test_negative_balance_from_reader_rejected(self):
        service = CredentialQueryService(FakeReader({ACCOUNT_A: -1}))
        with pytest.raises(QueryFailure):
            asyncio.run(service.query_balance(ACCOUNT_A))

    def test_concurrent_queries_for_different_accounts(self):
        service = CredentialQueryService(FakeReader({ACCOUNT_A: 1, ACCOUNT_B: 0}))

        async def both():
            return await asyncio.gather(service.query_balance(ACCOUNT_A), service.query_balance(ACCOUNT_B))

        assert asyncio.run(both()) == [1, 0]


class TestCheckEligibility:
    def test_fresh_on_every_call(self):
        reader = FakeReader({ACCOUNT_A: 0})
        service = CredentialQueryService(reader)
        assert asyncio.run(service.check_eligibility(ACCOUNT_A)).eligible is False
        reader.balances[ACCOUNT_A.lower()] = 1
        assert asyncio.run(service.check_eligibility(ACCOUNT_A)).eligible is True
        assert len(reader.calls) == 2

    def test_follows_account_switch(self):
        service = CredentialQueryService(FakeReader({ACCOUNT_A: 1, ACCOUNT_B: 0}))
        assert asyncio.run(service.check_eligibility(ACCOUNT_A)).eligible is True
        result = asyncio.run(service.check_eligibility(ACCOUNT_B))
        assert result.eligible is False
        assert result.account == ACCOUNT_B


def test_mint_then_query_scenario(tracker, provider):
    reader = FakeReader({ACCOUNT_A: 0})
    service = CredentialQueryService(reader)
    pipeline = MintPipeline(provider, tracker, CONTRACT_ADDRESS, poll_interval=0, confirmation_timeout=1)

    def mined(params):
        reader.balances[ACCOUNT_A.lower()] = 1
        return SUCCESS_RECEIPT

    provider.responses["eth_getTransactionReceipt"] = mined
    asyncio.run(tracker.connect())

    before = asyncio.run(service.check_eligibility(ACCOUNT_A))
    assert before.credential_balance == 0
    assert before.eligible is False

    attempt = asyncio.run(pipeline.mint_credential(DEFAULT_CREDENTIAL_LABEL))
    assert attempt.status == MintStatus.CONFIRMED

    after = asyncio.run(service.check_eligibility(ACCOUNT_A))
    assert after.credential_balance == 1
    assert after.eligible is True
    assert "1" in after.status_message


def test_web3_reader_targets_fixed_public_endpoint():
    reader = Web3ChainReader.for_chain(CONTRACT_ADDRESS.lower())
    assert reader.rpc_url == "https://rpc.api.moonbase.moonbeam.network"
    assert reader.contract_address == CONTRACT_ADDRESS
    assert {entry["name"] for entry in reader.abi} >= {"balanceOf"}
