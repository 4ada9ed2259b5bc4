"""Streamlit front end for the TrustFi gig credential and lending apps."""

from __future__ import annotations

from pathlib import Path

import streamlit as st
from dotenv import load_dotenv

from components.gigs import render_gigs_page
from components.lending import render_lending_page

env_path = Path(__file__).resolve().parents[3] / ".env"
load_dotenv(env_path)

st.set_page_config(page_title="TrustFi", page_icon="🪪", layout="centered")

PAGES = {
    "🧑‍💻 Decentralized Gigs": render_gigs_page,
    "🏦 Trust-Based Lending": render_lending_page,
}

selected = st.sidebar.radio("TrustFi apps", list(PAGES), key="active_page")
PAGES[selected]()
