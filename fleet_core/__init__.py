# =============================================================================
# fleet_core/__init__.py
# FleetOps: fleet and maintenance data layer
# =============================================================================
"""
Remote-first data layer for a fleet and maintenance operations app.

Packages:
- state: in-memory entity stores
- offline: gateway, local persistence, realtime, attachments
- services: entity services and the sync controller
- notifications: operation notices and the notification feed
- ui: Streamlit helpers
"""

__version__ = "0.1.0"
