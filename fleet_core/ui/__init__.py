# =============================================================================
# fleet_core/ui/__init__.py
# Streamlit helpers (the core packages never import this)
# =============================================================================
