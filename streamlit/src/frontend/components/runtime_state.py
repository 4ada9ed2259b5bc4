"""Per-browser-session TrustFi runtime kept in ``st.session_state``.

The wallet provider outlives reloads (like a browser extension does); the
runtime built on top of it is thrown away whenever the chain changes.
"""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Optional, TypeVar

import streamlit as st

from trustfi.mint import MintAttempt
from trustfi.runtime import ConfigurationError, TrustFiRuntime, build_provider_from_env, build_runtime
from trustfi.session import SessionEvent, WalletSession

PROVIDER_KEY = "trustfi_provider"
RUNTIME_KEY = "trustfi_runtime"
LOOP_KEY = "trustfi_event_loop"
RELOAD_KEY = "trustfi_reload_requested"
STATUS_KEY = "trustfi_status_message"
LAST_ATTEMPT_KEY = "trustfi_last_mint_attempt"
DISCONNECT_MESSAGE_KEY = "trustfi_disconnect_message"

DEFAULT_DISCONNECT_MESSAGE = "Wallet disconnected."

T = TypeVar("T")


def run_async(coro: Awaitable[T]) -> T:
    """Run ``coro`` on this session's event loop (AsyncWeb3 sessions are loop-bound)."""
    loop: Optional[asyncio.AbstractEventLoop] = st.session_state.get(LOOP_KEY)
    if loop is None or loop.is_closed():
        loop = asyncio.new_event_loop()
        st.session_state[LOOP_KEY] = loop
    return loop.run_until_complete(coro)


def set_status(message: Optional[str]) -> None:
    st.session_state[STATUS_KEY] = message


def _request_reload() -> None:
    st.session_state[RELOAD_KEY] = True


def _record_mint_update(attempt: MintAttempt) -> None:
    st.session_state[LAST_ATTEMPT_KEY] = attempt
    set_status(attempt.status_message)


def _record_session_change(event: SessionEvent, session: WalletSession) -> None:
    if event == SessionEvent.DISCONNECTED:
        st.session_state.pop(LAST_ATTEMPT_KEY, None)
        set_status(st.session_state.get(DISCONNECT_MESSAGE_KEY, DEFAULT_DISCONNECT_MESSAGE))


def get_runtime(disconnect_message: str = DEFAULT_DISCONNECT_MESSAGE) -> Optional[TrustFiRuntime]:
    """Return this browser session's runtime, building it on first use.

    ``disconnect_message`` is the status shown if the wallet disconnects
    while the calling page is active.
    """
    st.session_state[DISCONNECT_MESSAGE_KEY] = disconnect_message
    runtime: Optional[TrustFiRuntime] = st.session_state.get(RUNTIME_KEY)
    if runtime is not None:
        return runtime
    if PROVIDER_KEY not in st.session_state:
        st.session_state[PROVIDER_KEY] = build_provider_from_env()
    try:
        runtime = build_runtime(
            provider=st.session_state[PROVIDER_KEY],
            on_reload=_request_reload,
            on_mint_update=_record_mint_update,
            on_session_change=_record_session_change,
        )
    except ConfigurationError as err:
        st.error(str(err))
        return None
    run_async(runtime.start())
    st.session_state[RUNTIME_KEY] = runtime
    return runtime


def handle_reload() -> None:
    """Drop the runtime and rerun the script after a chain change."""
    if not st.session_state.pop(RELOAD_KEY, False):
        return
    runtime: Optional[TrustFiRuntime] = st.session_state.pop(RUNTIME_KEY, None)
    if runtime is not None:
        runtime.close()
    st.session_state.pop(LAST_ATTEMPT_KEY, None)
    st.rerun()


def render_disconnect(runtime: TrustFiRuntime) -> None:
    """Offer a disconnect button when the wallet supports revoking access."""
    disconnect = getattr(runtime.provider, "disconnect", None)
    if not callable(disconnect):
        return
    if st.button("Disconnect"):
        disconnect()
        st.rerun()


def short_address(address: Any) -> str:
    text = str(address or "")
    if len(text) <= 10:
        return text
    return f"{text[:6]}...{text[-4:]}"


def render_status() -> None:
    message = st.session_state.get(STATUS_KEY)
    if message:
        st.markdown(f"<p class='message'>{message}</p>", unsafe_allow_html=True)
