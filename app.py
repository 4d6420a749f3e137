# =============================================================================
# app.py - FleetOps Dashboard (Streamlit entry point)
# =============================================================================
"""
Dashboard: KPIs, fuel consumption per month, latest work orders and the
connection indicator. Other screens live under pages/.

Run with:  streamlit run app.py
"""
import streamlit as st

from fleet_core.services import KPIService, format_clp
from fleet_core.services.work_order_service import LIST_COLUMNS
from fleet_core.ui.components import (
    fuel_by_month_chart, header, render_connection_badge, render_stat_card,
)
from fleet_core.ui.session import finish_render, get_app_state
from fleet_core.ui.theme import (
    apply_css, DANGER_COLOR, PRIMARY_COLOR, SUCCESS_COLOR, WARNING_COLOR,
)

st.set_page_config(
    page_title="FleetOps - Dashboard",
    page_icon="🚜",
    layout="wide",
)
apply_css()

state = get_app_state()
header("FleetOps", "Maquinaria, mantenimiento y combustible")

result = KPIService().compute(state)
if not result.success:
    st.error(f"No se pudieron calcular los indicadores: {result.error}")
    finish_render(state)
    st.stop()
kpis = result.data

render_connection_badge(state.monitor, kpis.unsynced_records)

# =============================================================================
# KPI CARDS
# =============================================================================
c1, c2, c3, c4 = st.columns(4)
with c1:
    render_stat_card("OT en ejecución", kpis.work_orders_in_progress, f"de {kpis.work_orders_total}", "🛠️", PRIMARY_COLOR)
with c2:
    render_stat_card("OT retrasadas", kpis.work_orders_delayed, "órdenes", "⏰", DANGER_COLOR)
with c3:
    render_stat_card("Mantenimientos pendientes", kpis.maintenances_pending, "programados", "🔧", WARNING_COLOR)
with c4:
    render_stat_card("Disponibilidad", kpis.availability_pct, "% de la flota", "🚜", SUCCESS_COLOR)

c5, c6, c7 = st.columns(3)
with c5:
    render_stat_card("Stock bajo", kpis.low_stock_parts, "repuestos", "📦", WARNING_COLOR)
with c6:
    render_stat_card("Combustible", kpis.fuel_liters_total, "litros", "⛽", PRIMARY_COLOR)
with c7:
    render_stat_card("Costo mantenimiento", format_clp(kpis.maintenance_cost_total), "CLP", "💰", PRIMARY_COLOR)

# =============================================================================
# FUEL + WORK ORDERS
# =============================================================================
left, right = st.columns([3, 2])
with left:
    st.subheader("Combustible por mes")
    if kpis.fuel_by_month:
        st.plotly_chart(fuel_by_month_chart(kpis.fuel_by_month), use_container_width=True)
    else:
        st.info("Sin cargas de combustible registradas.")

with right:
    st.subheader("Repuestos con stock bajo")
    if kpis.low_stock_items:
        st.dataframe(kpis.low_stock_items, hide_index=True, use_container_width=True)
    else:
        st.success("Todo el inventario sobre el mínimo.")

st.subheader("Últimas órdenes de trabajo")
orders = state.work_orders.table()
st.dataframe(orders.reindex(columns=LIST_COLUMNS).head(10), hide_index=True, use_container_width=True)

with st.sidebar:
    st.markdown(f"**Notificaciones:** {state.feed.unread_count} sin leer")
    if st.button("Recargar datos"):
        state.fetch_all(st.session_state.get("session_user"))
    with st.expander("Estado de conexión"):
        link = state.monitor.describe()
        st.caption(f"Última conexión: {link['online_at'] or '-'} · fallos seguidos: {link['failures']}")
        if link["error"]:
            st.caption(link["error"])

finish_render(state)
