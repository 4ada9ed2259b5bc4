"""Decentralized Gigs page: connect, switch network, claim a credential."""

from __future__ import annotations

from typing import Optional

import streamlit as st

from trustfi.contract import DEFAULT_CREDENTIAL_LABEL
from trustfi.errors import MintError, ProviderUnavailable, TrustFiError
from trustfi.mint import MintAttempt, MintStatus

from .runtime_state import (
    LAST_ATTEMPT_KEY,
    get_runtime,
    handle_reload,
    render_disconnect,
    render_status,
    run_async,
    set_status,
    short_address,
)


def _render_attempt(attempt: Optional[MintAttempt]) -> None:
    if attempt is None or attempt.transaction_hash is None:
        return
    if attempt.explorer_url:
        st.markdown(f"**Transaction:** [`{attempt.transaction_hash}`]({attempt.explorer_url})")
    else:
        st.markdown(f"**Transaction:** `{attempt.transaction_hash}`")


def render_gigs_page() -> None:
    st.title("TrustFi Decentralized Gigs")
    st.caption("Complete a gig, earn a credential NFT.")

    runtime = get_runtime()
    if runtime is None:
        return
    if runtime.provider is None:
        st.error(ProviderUnavailable.default_message)
        return

    account = runtime.tracker.current_account()
    if not account:
        if st.button("Connect Wallet", type="primary"):
            try:
                with st.spinner("Waiting for the wallet…"):
                    run_async(runtime.tracker.connect())
                set_status(None)
            except TrustFiError as err:
                set_status(err.message)
            handle_reload()
            st.rerun()
    else:
        st.write(f"Connected: `{short_address(account)}`")
        render_disconnect(runtime)
        busy = runtime.mint.in_flight is not None
        label = "Minting..." if busy else 'Claim "Good Work" CRED'
        if st.button(label, disabled=busy, type="primary"):
            try:
                with st.spinner("Minting in progress… waiting for confirmation."):
                    run_async(runtime.mint.mint_credential(DEFAULT_CREDENTIAL_LABEL))
            except MintError as err:
                set_status(err.message)
            handle_reload()

        attempt: Optional[MintAttempt] = st.session_state.get(LAST_ATTEMPT_KEY)
        _render_attempt(attempt)
        if attempt is not None and attempt.status == MintStatus.SUBMITTED:
            if st.button("Check confirmation"):
                run_async(runtime.mint.check_confirmation(attempt))
                handle_reload()
                st.rerun()

    render_status()
