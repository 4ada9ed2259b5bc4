"""Tests for trustfi.session -- connect, notifications and invalidation."""

import asyncio

import pytest

from trustfi.errors import AccountAccessDenied, ChainSwitchRejected, ProviderUnavailable, SessionError
from trustfi.provider import ACCOUNTS_CHANGED, CHAIN_CHANGED, ProviderRpcError
from trustfi.session import SessionEvent, SessionTracker, WalletSession

from conftest import ACCOUNT_A, ACCOUNT_B, FakeProvider


def _events(tracker):
    seen = []
    tracker.on_session_change(lambda event, session: seen.append((event, session)))
    return seen


class TestConnect:
    def test_connect_returns_first_account(self, tracker, provider):
        provider.responses["eth_requestAccounts"] = [ACCOUNT_A, ACCOUNT_B]
        assert asyncio.run(tracker.connect()) == ACCOUNT_A
        assert tracker.current_account() == ACCOUNT_A
        assert tracker.session.chain_id == 1287

    def test_negotiation_runs_before_account_request(self, tracker, provider):
        asyncio.run(tracker.connect())
        assert provider.methods() == ["wallet_switchEthereumChain", "eth_requestAccounts"]

    def test_failed_negotiation_skips_account_request(self, tracker, provider):
        provider.responses["wallet_switchEthereumChain"] = ProviderRpcError(4001, "User rejected the request.")
        with pytest.raises(ChainSwitchRejected):
            asyncio.run(tracker.connect())
        assert "eth_requestAccounts" not in provider.methods()
        assert tracker.current_account() is None

    def test_user_declines_account_access(self, tracker, provider):
        provider.responses["eth_requestAccounts"] = ProviderRpcError(4001, "User rejected the request.")
        with pytest.raises(AccountAccessDenied) as exc_info:
            asyncio.run(tracker.connect())
        assert exc_info.value.code == 4001
        assert "User rejected the request." in exc_info.value.message

    def test_empty_account_list_is_denied(self, tracker, provider):
        provider.responses["eth_requestAccounts"] = []
        with pytest.raises(AccountAccessDenied):
            asyncio.run(tracker.connect())

    def test_missing_provider_makes_no_requests(self):
        tracker = SessionTracker(None)
        with pytest.raises(ProviderUnavailable):
            asyncio.run(tracker.connect())
        assert tracker.current_account() is None

    def test_connect_notifies_listeners(self, tracker):
        seen = _events(tracker)
        asyncio.run(tracker.connect())
        assert seen[-1] == (SessionEvent.CONNECTED, WalletSession(account=ACCOUNT_A, chain_id=1287))

    def test_chain_change_during_account_request_discards_result(self, tracker, provider):
        def accounts_after_chain_change(params):
            provider.emit(CHAIN_CHANGED, "0x1")
            return [ACCOUNT_A]

        provider.responses["eth_requestAccounts"] = accounts_after_chain_change
        seen = _events(tracker)
        with pytest.raises(SessionError):
            asyncio.run(tracker.connect())
        assert tracker.generation == 1
        assert tracker.session == WalletSession()
        assert [event for event, _ in seen] == [SessionEvent.INVALIDATED]

    def test_chain_change_during_negotiation_is_not_stale(self, tracker, provider):
        def switch_and_notify(params):
            provider.emit(CHAIN_CHANGED, "0x507")

        provider.responses["wallet_switchEthereumChain"] = switch_and_notify
        assert asyncio.run(tracker.connect()) == ACCOUNT_A
        assert tracker.session == WalletSession(account=ACCOUNT_A, chain_id=1287)


class TestStart:
    def test_starts_empty_without_authorised_accounts(self, tracker, provider):
        asyncio.run(tracker.start())
        assert tracker.current_account() is None
        assert provider.methods() == ["eth_accounts"]

    def test_silently_restores_authorised_account(self, tracker, provider):
        provider.responses["eth_accounts"] = [ACCOUNT_B, ACCOUNT_A]
        asyncio.run(tracker.start())
        assert tracker.current_account() == ACCOUNT_B
        assert tracker.session.chain_id == 1287
        assert "eth_requestAccounts" not in provider.methods()

    def test_chain_change_during_silent_query_is_ignored(self, tracker, provider):
        def accounts_after_chain_change(params):
            provider.emit(CHAIN_CHANGED, "0x1")
            return [ACCOUNT_A]

        provider.responses["eth_accounts"] = accounts_after_chain_change
        asyncio.run(tracker.start())
        assert tracker.generation == 1
        assert tracker.session == WalletSession()

    def test_silent_query_failure_is_tolerated(self, tracker, provider):
        provider.responses["eth_accounts"] = ProviderRpcError(4900, "Disconnected")
        asyncio.run(tracker.start())
        assert tracker.current_account() is None

    def test_no_provider_is_a_no_op(self):
        tracker = SessionTracker(None)
        asyncio.run(tracker.start())
        assert tracker.session == WalletSession()

    def test_start_subscribes_once(self, tracker, provider):
        asyncio.run(tracker.start())
        asyncio.run(tracker.connect())
        assert provider.listener_count(ACCOUNTS_CHANGED) == 1
        assert provider.listener_count(CHAIN_CHANGED) == 1


class TestAccountsChanged:
    def test_non_empty_list_selects_head(self, tracker, provider):
        asyncio.run(tracker.connect())
        seen = _events(tracker)
        provider.emit(ACCOUNTS_CHANGED, [ACCOUNT_B, ACCOUNT_A])
        assert tracker.current_account() == ACCOUNT_B
        assert seen == [(SessionEvent.ACCOUNT_CHANGED, WalletSession(account=ACCOUNT_B, chain_id=1287))]

    def test_empty_list_clears_session(self, tracker, provider):
        asyncio.run(tracker.connect())
        seen = _events(tracker)
        provider.emit(ACCOUNTS_CHANGED, [])
        assert tracker.current_account() is None
        assert tracker.session == WalletSession()
        assert seen == [(SessionEvent.DISCONNECTED, WalletSession())]

    def test_same_head_is_not_an_event(self, tracker, provider):
        asyncio.run(tracker.connect())
        seen = _events(tracker)
        provider.emit(ACCOUNTS_CHANGED, [ACCOUNT_A, ACCOUNT_B])
        assert seen == []


class TestChainChanged:
    def test_invalidates_and_bumps_generation(self, tracker, provider):
        asyncio.run(tracker.connect())
        generation = tracker.generation
        seen = _events(tracker)
        provider.emit(CHAIN_CHANGED, "0x1")
        assert tracker.current_account() is None
        assert not tracker.is_current(generation)
        assert seen[0][0] == SessionEvent.INVALIDATED

    def test_reload_host_tears_down_listeners(self, provider):
        reloads = []
        tracker = SessionTracker(provider, on_reload=lambda: reloads.append(True))
        asyncio.run(tracker.connect())
        provider.emit(CHAIN_CHANGED, "0x1")
        assert reloads == [True]
        assert provider.listener_count(ACCOUNTS_CHANGED) == 0
        assert provider.listener_count(CHAIN_CHANGED) == 0


def test_teardown_deregisters_everything(tracker, provider):
    asyncio.run(tracker.start())
    seen = _events(tracker)
    tracker.teardown()
    assert provider.listener_count(ACCOUNTS_CHANGED) == 0
    assert provider.listener_count(CHAIN_CHANGED) == 0
    provider.emit(ACCOUNTS_CHANGED, [ACCOUNT_A])
    assert seen == []


def test_unsubscribe_handle(tracker, provider):
    seen = []
    unsubscribe = tracker.on_session_change(lambda event, session: seen.append(event))
    unsubscribe()
    asyncio.run(tracker.connect())
    assert seen == []
