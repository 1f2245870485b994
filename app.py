#!/usr/bin/env python3
"""Streamlit page hosting the single-axis solar monitor widget."""

from __future__ import annotations

import atexit
import logging
import os

import streamlit as st

from sensor_poller import LOG_LEVEL, Poller
from sensor_view import TITLE, render

REFRESH_SECONDS = int(os.getenv("SENSOR_UI_REFRESH", "1"))

logging.basicConfig(level=LOG_LEVEL, format="[%(name)s] %(message)s")


@st.cache_resource
def get_poller() -> Poller:
    # One poller per server process, shared by every browser session.
    poller = Poller()
    poller.start_background()
    atexit.register(poller.stop)
    return poller


st.set_page_config(page_title=TITLE, layout="centered")

poller = get_poller()
st.markdown(render(poller.state), unsafe_allow_html=True)

st.caption(f"Auto refresh: every {REFRESH_SECONDS}s")
st.markdown(f"<meta http-equiv='refresh' content='{REFRESH_SECONDS}'>", unsafe_allow_html=True)
