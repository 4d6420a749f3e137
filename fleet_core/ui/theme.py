import streamlit as st

# === FLEET PALETTE (tractor green / harvest amber) ===
PRIMARY_COLOR    = "#2f5d3a"
SECONDARY_COLOR  = "#c98a12"
SUCCESS_COLOR    = "#3f9d5a"
WARNING_COLOR    = "#e0a21b"
DANGER_COLOR     = "#c0392b"
TEXT_COLOR       = "#23302a"
SUBTLE_TEXT      = "#5f6b63"
GRID_COLOR       = "#dfe5e0"
BACKGROUND_COLOR = "#f4f6f2"
CARD_BG_LIGHT    = "#fdfdfb"

FONT_STACK = "'Inter','Segoe UI',Roboto,sans-serif"


def apply_css():
    """Page-wide styles shared by the dashboard and every page."""
    st.markdown(f"""
        <style>
        .main {{ background:{BACKGROUND_COLOR}; color:{TEXT_COLOR}; font-family:{FONT_STACK}; }}
        .main-header {{
            background:{PRIMARY_COLOR}; border-left:8px solid {SECONDARY_COLOR};
            padding:1.2rem 1.8rem; border-radius:8px; margin-bottom:1.2rem;
        }}
        .main-header h1, .main-header p {{ color:#ffffff; margin:0; }}
        .metric-card {{
            background:{CARD_BG_LIGHT}; border:1px solid {GRID_COLOR}; border-top:4px solid var(--accent);
            border-radius:8px; padding:14px 16px; margin:8px 0;
        }}
        .metric-card .label {{ color:{SUBTLE_TEXT}; font-size:.8rem; text-transform:uppercase; }}
        .metric-card .value {{ font-size:1.6rem; font-weight:700; color:var(--accent); }}
        .metric-card .unit {{ color:{SUBTLE_TEXT}; font-size:.75rem; }}
        .connection-badge {{
            display:inline-block; border-radius:4px; padding:3px 10px;
            color:#ffffff; font-size:.78rem; font-weight:600;
        }}
        .stButton button {{
            background:{PRIMARY_COLOR}; color:#ffffff; border:0;
            border-radius:6px; font-weight:600;
        }}
        .stButton button:hover {{ background:{SECONDARY_COLOR}; }}
        </style>
    """, unsafe_allow_html=True)
