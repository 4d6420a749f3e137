# =============================================================================
# 01_Ordenes_de_Trabajo.py - Work Orders
# =============================================================================
import streamlit as st

from fleet_core.models import Priority, WorkOrderStatus, enum_values
from fleet_core.services import ExportColumn, ExportService
from fleet_core.services.work_order_service import LIST_COLUMNS
from fleet_core.ui.components import header
from fleet_core.ui.session import finish_render, get_app_state
from fleet_core.ui.theme import apply_css

st.set_page_config(page_title="FleetOps - Órdenes de trabajo", page_icon="🛠️", layout="wide")
apply_css()

state = get_app_state()
header("Órdenes de trabajo", "Planificación y avance de las labores en terreno", "🛠️")

EXPORT_COLUMNS = [
    ExportColumn("id", "N° OT"),
    ExportColumn("client_name", "Cliente"),
    ExportColumn("field_name", "Predio"),
    ExportColumn("task_type", "Labor"),
    ExportColumn("priority", "Prioridad"),
    ExportColumn("status", "Estado"),
    ExportColumn("planned_start_date", "Inicio", "date"),
    ExportColumn("planned_end_date", "Término", "date"),
    ExportColumn("progress_percentage", "Avance %", "number"),
]

# =============================================================================
# LIST
# =============================================================================
status_filter = st.multiselect("Estado", enum_values(WorkOrderStatus))
orders = state.work_orders.table()
if status_filter and not orders.empty:
    orders = orders[orders["status"].isin(status_filter)]
st.dataframe(orders.reindex(columns=LIST_COLUMNS), hide_index=True, use_container_width=True)

csv = ExportService().to_csv(orders.to_dict("records"), EXPORT_COLUMNS)
if csv.success:
    st.download_button("Exportar CSV", csv.data, "ordenes_de_trabajo.csv", mime="text/csv")

# =============================================================================
# CREATE
# =============================================================================
with st.form("new_work_order", clear_on_submit=True):
    st.subheader("Nueva orden de trabajo")
    col1, col2 = st.columns(2)
    client_name = col1.text_input("Cliente")
    field_name = col2.text_input("Predio")
    task_type = col1.text_input("Labor")
    priority = col2.selectbox("Prioridad", enum_values(Priority), index=1)
    start = col1.date_input("Inicio planificado")
    end = col2.date_input("Término planificado")
    hectares = col1.number_input("Hectáreas planificadas", min_value=0.0, step=1.0)
    machinery = col2.multiselect(
        "Maquinaria",
        [m.get("id") for m in state.machinery.available()],
        format_func=state.machinery.code_of,
    )
    if st.form_submit_button("Crear orden"):
        state.work_orders.add({
            "client_name": client_name,
            "field_name": field_name,
            "task_type": task_type,
            "priority": priority,
            "status": WorkOrderStatus.PLANIFICADA.value,
            "planned_start_date": start.isoformat(),
            "planned_end_date": end.isoformat(),
            "planned_hectares": hectares,
            "assigned_machinery": machinery,
        })

# =============================================================================
# UPDATE PROGRESS
# =============================================================================
ids = state.stores["workOrders"].ids
if ids:
    with st.form("update_work_order"):
        st.subheader("Actualizar avance")
        order_id = st.selectbox("Orden", ids)
        status = st.selectbox("Estado", enum_values(WorkOrderStatus))
        progress = st.slider("Avance %", 0, 100, 0)
        if st.form_submit_button("Guardar"):
            state.work_orders.update(order_id, {"status": status, "progress_percentage": progress})

finish_render(state)
