# =============================================================================
# fleet_core/ui/components.py
# Dashboard Building Blocks
# =============================================================================

from typing import Any, List, Dict

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from fleet_core.offline.connection_manager import ConnectionMonitor, ConnectionStatus
from .theme import (PRIMARY_COLOR, SECONDARY_COLOR, SUCCESS_COLOR, WARNING_COLOR,
                    DANGER_COLOR, TEXT_COLOR, SUBTLE_TEXT, GRID_COLOR, CARD_BG_LIGHT, FONT_STACK)

CONNECTION_BADGES = {
    ConnectionStatus.ONLINE: ("En línea", SUCCESS_COLOR),
    ConnectionStatus.OFFLINE: ("Sin conexión: guardando en este equipo", DANGER_COLOR),
    ConnectionStatus.LOCAL_ONLY: ("Modo local", WARNING_COLOR),
    ConnectionStatus.UNKNOWN: ("Conectando…", SUBTLE_TEXT),
}


def header(title: str, subtitle: str, icon: str = "🚜"):
    st.markdown(
        f'<div class="main-header"><h1>{icon} {title}</h1><p>{subtitle}</p></div>',
        unsafe_allow_html=True,
    )


AXIS_STYLE = dict(
    showgrid=True, gridcolor=GRID_COLOR, zeroline=False, linecolor=GRID_COLOR,
    tickfont=dict(color=SUBTLE_TEXT), title_font=dict(color=TEXT_COLOR),
)


def style_figure(fig: go.Figure) -> go.Figure:
    """Fleet palette and light grid for any plotly figure."""
    fig.update_xaxes(**AXIS_STYLE)
    fig.update_yaxes(**AXIS_STYLE)
    fig.update_layout(
        plot_bgcolor=CARD_BG_LIGHT,
        paper_bgcolor=CARD_BG_LIGHT,
        font=dict(family=FONT_STACK, size=12, color=TEXT_COLOR),
    )
    return fig


def render_stat_card(label: str, value: Any, unit: str = "", icon: str = "", color: str = PRIMARY_COLOR):
    """
    Render a stat card.

    Args:
        label: KPI label text
        value: Value to display (floats are shown with one decimal)
        unit: Unit suffix
        icon: Emoji icon
        color: Accent for the top border and value
    """
    value_str = f"{value:.1f}" if isinstance(value, float) else str(value)
    st.markdown(f"""
    <div class="metric-card" style="--accent: {color};">
        <div class="label">{icon} {label}</div>
        <div class="value">{value_str}</div>
        <div class="unit">{unit}</div>
    </div>
    """, unsafe_allow_html=True)


def render_connection_badge(monitor: ConnectionMonitor, unsynced: int = 0):
    """Online/offline indicator, with the count of records saved only on this device."""
    text, color = CONNECTION_BADGES[monitor.status]
    pending = f" · {unsynced} sin sincronizar" if unsynced else ""
    st.markdown(
        f'<span class="connection-badge" style="background:{color};">{text}{pending}</span>',
        unsafe_allow_html=True,
    )


def fuel_by_month_chart(rows: List[Dict], height: int = 320) -> go.Figure:
    """Liters (bars) and cost (line, secondary axis) per month."""
    df = pd.DataFrame(rows, columns=["month", "liters", "total_cost"])
    fig = go.Figure()
    fig.add_trace(go.Bar(x=df["month"], y=df["liters"], name="Litros", marker_color=PRIMARY_COLOR))
    fig.add_trace(go.Scatter(
        x=df["month"], y=df["total_cost"], name="Costo (CLP)",
        mode="lines+markers", line=dict(color=SECONDARY_COLOR, width=2), yaxis="y2",
    ))
    style_figure(fig)
    fig.update_layout(
        height=height,
        margin=dict(l=40, r=40, t=40, b=40),
        legend=dict(orientation="h", y=1.1),
        yaxis=dict(title="Litros"),
        yaxis2=dict(title="CLP", overlaying="y", side="right", showgrid=False),
    )
    return fig
