# =============================================================================
# fleet_core/ui/session.py
# One AppState per Browser Session
# =============================================================================

import streamlit as st

from fleet_core.app_state import AppState
from fleet_core.config import load_config
from fleet_core.logging import get_logger, setup_logging
from fleet_core.notifications import NoticeLevel

logger = get_logger(__name__)

STATE_KEY = "fleet_app_state"
RELOAD_KEY = "_fleet_reload_requested"

TOAST_ICONS = {
    NoticeLevel.SUCCESS: "✅",
    NoticeLevel.ERROR: "❌",
    NoticeLevel.WARNING: "⚠️",
    NoticeLevel.INFO: "ℹ️",
}


def _request_reload():
    """Session recovery hook: drop everything held for this browser session."""
    for key in list(st.session_state.keys()):
        if key != STATE_KEY:
            del st.session_state[key]
    st.session_state[RELOAD_KEY] = True


def get_app_state() -> AppState:
    """Build (first run) or return the session's AppState."""
    if STATE_KEY not in st.session_state:
        config = load_config()
        setup_logging(level=config.log_level)
        state = AppState.create(config, reload_hook=_request_reload)
        state.fetch_all(st.session_state.get("session_user"))
        state.start_realtime()
        st.session_state[STATE_KEY] = state
    return st.session_state[STATE_KEY]


def show_notices(state: AppState):
    """Toast every notice emitted since the last render."""
    for notice in state.notifier.drain():
        st.toast(notice.message, icon=TOAST_ICONS.get(notice.level))


def finish_render(state: AppState):
    """
    Call at the end of every page. Shows pending notices and, after a session
    recovery, closes the old state and reruns the script from scratch.
    """
    show_notices(state)
    if st.session_state.pop(RELOAD_KEY, False):
        logger.warning("Reloading application after session recovery")
        state.close()
        st.session_state.pop(STATE_KEY, None)
        st.rerun()
