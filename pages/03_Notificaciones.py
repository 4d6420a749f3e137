# =============================================================================
# 03_Notificaciones.py - Notification Feed
# =============================================================================
import streamlit as st

from fleet_core.notifications import NOTIFICATION_TYPES
from fleet_core.ui.components import header
from fleet_core.ui.session import finish_render, get_app_state
from fleet_core.ui.theme import apply_css

st.set_page_config(page_title="FleetOps - Notificaciones", page_icon="🔔", layout="wide")
apply_css()

state = get_app_state()
header("Notificaciones", f"{state.feed.unread_count} sin leer", "🔔")

col1, col2 = st.columns(2)
if col1.button("Marcar todas como leídas"):
    state.feed.mark_all_read()
if col2.button("Limpiar"):
    state.feed.clear()

type_filter = st.multiselect("Tipo", NOTIFICATION_TYPES)
for notification in state.feed.items:
    if type_filter and notification.type not in type_filter:
        continue
    marker = "" if notification.read else "🔵 "
    with st.container(border=True):
        st.markdown(f"{marker}**{notification.title}**")
        st.caption(notification.timestamp[:16].replace("T", " "))
        st.write(notification.message)
        if not notification.read and st.button("Marcar como leída", key=f"read_{notification.id}"):
            state.feed.mark_read(notification.id)

finish_render(state)
