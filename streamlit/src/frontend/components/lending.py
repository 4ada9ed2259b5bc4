"""Trust-Based Lending page: read the credential and show the loan offer."""

from __future__ import annotations

import streamlit as st

from trustfi.eligibility import STANDARD_RATE_PERCENT
from trustfi.errors import ProviderUnavailable, QueryError, TrustFiError

from .runtime_state import (
    get_runtime,
    handle_reload,
    render_disconnect,
    render_status,
    run_async,
    set_status,
    short_address,
)

DISCONNECT_MESSAGE = "Wallet disconnected. Please connect to check eligibility."


def render_lending_page() -> None:
    st.title("TrustFi Lending")
    st.caption("Unlock better loan rates with your on-chain reputation.")

    runtime = get_runtime(DISCONNECT_MESSAGE)
    if runtime is None:
        return
    if runtime.provider is None:
        st.error(ProviderUnavailable.default_message)
        return

    account = runtime.tracker.current_account()
    if not account:
        if st.button("Connect Wallet", type="primary"):
            try:
                run_async(runtime.tracker.connect())
                set_status(None)
            except TrustFiError as err:
                set_status(err.message)
            handle_reload()
            st.rerun()
        render_status()
        return

    st.write(f"Connected: `{short_address(account)}`")
    render_disconnect(runtime)
    # read fresh on every render
    try:
        with st.spinner("Checking your TrustFi credentials on the blockchain..."):
            result = run_async(runtime.query.check_eligibility(account))
    except QueryError as err:
        st.error(f"❌ {err.message}")
        return

    if result.eligible:
        st.success("Congratulations! You're Eligible!")
        st.markdown(
            "Because you hold a TrustFi Credential, you qualify for our premium loan terms.\n\n"
            f"**Interest Rate: {result.interest_rate_percent}%** (Standard: {STANDARD_RATE_PERCENT}%)"
        )
        st.button("Apply for Loan")
    else:
        st.error("❌ You're Not Eligible!")
        st.markdown("To qualify for TrustFi Lending, please acquire a TrustFi Credential.")
    st.caption(result.status_message)
    render_status()
