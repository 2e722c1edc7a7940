# kmh_project_root/visualization/__init__.py
# SME PLATINUM STANDARD - ROBUST & EXPLICIT PACKAGE API

"""
Initializes the visualization package, defining its public API.
"""

# --- Core Plotting Functions from plots.py ---
from .plots import (
    set_plotly_theme,
    create_empty_figure,
    plot_bar_chart,
    plot_donut_chart,
    plot_line_chart,
    plot_district_markers,
)

# --- Custom UI Element Renderers from ui_elements.py ---
from .ui_elements import (
    load_and_inject_css,
    render_kpi_card,
    render_alert_card,
    render_sidebar_navigation,
    require_page_access,
    get_auth_session,
    sign_out,
    run_async,
    open_record_store,
    rerun_with_notice,
    show_pending_notice,
    SESSION_KEY,
)

__all__ = [
    # from plots.py
    "set_plotly_theme",
    "create_empty_figure",
    "plot_bar_chart",
    "plot_donut_chart",
    "plot_line_chart",
    "plot_district_markers",

    # from ui_elements.py
    "load_and_inject_css",
    "render_kpi_card",
    "render_alert_card",
    "render_sidebar_navigation",
    "require_page_access",
    "get_auth_session",
    "sign_out",
    "run_async",
    "open_record_store",
    "rerun_with_notice",
    "show_pending_notice",
    "SESSION_KEY",
]
