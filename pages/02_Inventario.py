# =============================================================================
# 02_Inventario.py - Spare Parts and Stock Movements
# =============================================================================
import streamlit as st

from fleet_core.models import MovementType, enum_values
from fleet_core.ui.components import header
from fleet_core.ui.session import finish_render, get_app_state
from fleet_core.ui.theme import apply_css

st.set_page_config(page_title="FleetOps - Inventario", page_icon="📦", layout="wide")
apply_css()

state = get_app_state()
header("Inventario", "Repuestos, stock y movimientos", "📦")

tab_parts, tab_moves = st.tabs(["Repuestos", "Movimientos"])

with tab_parts:
    st.dataframe(
        state.spare_parts.dataframe(["code", "description", "current_stock", "minimum_stock", "location"]),
        hide_index=True,
        use_container_width=True,
    )
    with st.form("new_part", clear_on_submit=True):
        st.subheader("Nuevo repuesto")
        description = st.text_input("Descripción")
        current_stock = st.number_input("Stock inicial", min_value=0, step=1)
        minimum_stock = st.number_input("Stock mínimo", min_value=0, step=1)
        if st.form_submit_button("Agregar"):
            state.spare_parts.add({
                "description": description,
                "current_stock": current_stock,
                "minimum_stock": minimum_stock,
            })

with tab_moves:
    st.dataframe(
        state.part_movements.dataframe(["id", "date", "part_description", "movement_type", "quantity", "reason"]),
        hide_index=True,
        use_container_width=True,
    )
    parts = {p.get("id"): p.get("description") for p in state.spare_parts.list()}
    if parts:
        with st.form("new_movement", clear_on_submit=True):
            st.subheader("Registrar movimiento")
            part_id = st.selectbox("Repuesto", list(parts), format_func=lambda pid: parts.get(pid) or str(pid))
            movement_type = st.radio("Tipo", enum_values(MovementType), horizontal=True)
            quantity = st.number_input("Cantidad", min_value=1, step=1)
            reason = st.text_input("Motivo")
            date = st.date_input("Fecha")
            if st.form_submit_button("Registrar"):
                state.part_movements.add({
                    "part_id": part_id,
                    "movement_type": movement_type,
                    "quantity": quantity,
                    "reason": reason,
                    "date": date.isoformat(),
                })

finish_render(state)
