# kmh_project_root/visualization/plots.py
# SME PLATINUM STANDARD - CENTRALIZED PLOTTING FACTORY

import html
import logging
from typing import Any, Dict, List, Optional, Union

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import plotly.io as pio

from config import settings

logger = logging.getLogger(__name__)

# --- Helper Functions ---
def _hex_to_rgba(hex_color: str, alpha: float) -> str:
    """Converts a hex color string to an rgba string for Plotly compatibility."""
    hex_color = hex_color.lstrip('#')
    if len(hex_color) != 6: return 'rgba(0,0,0,0.1)'
    try:
        rgb = tuple(int(hex_color[i:i+2], 16) for i in (0, 2, 4))
        return f'rgba({rgb[0]}, {rgb[1]}, {rgb[2]}, {alpha})'
    except ValueError:
        return 'rgba(0,0,0,0.1)'

def _bold_title(title: str) -> str:
    return f"<b>{html.escape(title)}</b>"

# --- Theme Setup ---
def set_plotly_theme():
    """Registers the 'kmh' template and makes it the default for all Plotly charts."""
    base_layout = {
        'font': {'family': "sans-serif", 'size': 12, 'color': settings.COLOR_TEXT_PRIMARY},
        'title': {'x': 0.5, 'xanchor': 'center', 'font': {'size': 18, 'color': settings.COLOR_TEXT_HEADINGS}},
        'paper_bgcolor': settings.COLOR_BACKGROUND_CONTENT,
        'plot_bgcolor': settings.COLOR_BACKGROUND_CONTENT,
        'margin': dict(l=60, r=40, t=60, b=60),
        'legend': dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1, font={'size': 10}),
        'xaxis': {'showgrid': False, 'zeroline': False},
        'yaxis': {'gridcolor': '#e9ecef', 'zeroline': False},
    }
    kmh_template = go.layout.Template(layout=base_layout)
    kmh_template.layout.colorway = settings.PLOTLY_COLORWAY
    pio.templates['kmh'] = kmh_template
    pio.templates.default = 'kmh'
    logger.debug("Custom 'kmh' Plotly theme applied.")

# --- Factory Functions for Charts ---
def create_empty_figure(title: str, message: str = "No data available.") -> go.Figure:
    fig = go.Figure()
    fig.update_layout(
        title_text=_bold_title(title),
        xaxis={"visible": False}, yaxis={"visible": False},
        annotations=[{"text": html.escape(message), "xref": "paper", "yref": "paper", "showarrow": False, "font": {"size": 14, "color": settings.COLOR_TEXT_MUTED}}]
    )
    return fig

def plot_bar_chart(
    df: pd.DataFrame, x_col: str, y_col: Union[str, List[str]], title: str,
    x_title: Optional[str] = None, y_title: Optional[str] = None, **px_kwargs: Any
) -> go.Figure:
    """
    Themed bar chart with a non-negative integer count axis. Passing a list
    for `y_col` draws one bar series per column (e.g. migrant vs local).
    """
    if not isinstance(df, pd.DataFrame) or df.empty:
        return create_empty_figure(title)

    value_cols = [y_col] if isinstance(y_col, str) else list(y_col)
    labels = {x_col: x_title or x_col.replace('_', ' ').title()}
    for col in value_cols:
        labels[col] = col.replace('_', ' ').title()
    if isinstance(y_col, str) and y_title:
        labels[y_col] = y_title

    try:
        horizontal = px_kwargs.get('orientation') == 'h'
        fig = px.bar(df, x=x_col, y=y_col, title=_bold_title(title), labels=labels, **px_kwargs)
        if isinstance(y_col, str):
            fig.update_traces(texttemplate='%{x:,.0f}' if horizontal else '%{y:,.0f}', textposition='outside')
        else:
            fig.update_layout(yaxis_title=y_title or "Cases", legend_title_text="")
        if horizontal:
            fig.update_xaxes(tickformat='d', rangemode='tozero')
            fig.update_yaxes(autorange='reversed')
        else:
            fig.update_yaxes(tickformat='d', rangemode='tozero')
        return fig
    except Exception as e:
        logger.error(f"Failed to create bar chart '{title}': {e}", exc_info=True)
        return create_empty_figure(title, "Error generating chart.")

def plot_donut_chart(df: pd.DataFrame, label_col: str, value_col: str, title: str,
                     color_map: Optional[Dict[str, str]] = None) -> go.Figure:
    if not isinstance(df, pd.DataFrame) or df.empty or df[value_col].sum() == 0: return create_empty_figure(title)
    try:
        fig = px.pie(df, names=label_col, values=value_col, title=_bold_title(title), hole=0.5,
                     color=label_col if color_map else None, color_discrete_map=color_map or {})
        fig.update_traces(textinfo='percent+label', textposition='inside', insidetextorientation='radial', marker_line_width=2, marker_line_color=settings.COLOR_BACKGROUND_CONTENT, hovertemplate='<b>%{label}</b><br>Count: %{value}<br>Percentage: %{percent}<extra></extra>')
        fig.update_layout(legend_title_text=label_col.replace("_", " ").title()); return fig
    except Exception as e: logger.error(f"Failed to create donut chart '{title}': {e}", exc_info=True); return create_empty_figure(title, "Error generating chart.")

def plot_line_chart(df: pd.DataFrame, x_col: str, y_cols: Dict[str, str], title: str, y_title: str) -> go.Figure:
    """One line per entry of `y_cols` ({column: colour}), plotted against `x_col`."""
    if not isinstance(df, pd.DataFrame) or df.empty: return create_empty_figure(title)
    try:
        fig = go.Figure()
        for col, color in y_cols.items():
            name = col.replace('_', ' ').title()
            fig.add_trace(go.Scatter(
                x=df[x_col], y=df[col], mode='lines+markers', name=name, line=dict(color=color, width=3),
                hovertemplate=f'<b>%{{x}}</b><br>{html.escape(name)}: %{{y:,.0f}}<extra></extra>'))
        fig.update_layout(title_text=_bold_title(title), yaxis_title=y_title, xaxis_title="Date")
        fig.update_yaxes(tickformat='d', rangemode='tozero')
        return fig
    except Exception as e: logger.error(f"Failed to create line chart '{title}': {e}", exc_info=True); return create_empty_figure(title, "Error generating chart.")

def plot_district_markers(df: pd.DataFrame, title: str, color_col: str = 'color', hover_col: str = 'total_cases') -> go.Figure:
    """District point markers over an open street map, coloured per row by `color_col`."""
    if not isinstance(df, pd.DataFrame) or df.empty: return create_empty_figure(title, "No geographic data.")
    try:
        fig = go.Figure()
        # Halo ring under each marker.
        fig.add_trace(go.Scattermapbox(
            lat=df['lat'], lon=df['lon'], mode='markers', hoverinfo='skip', showlegend=False,
            marker=dict(size=30, color=[_hex_to_rgba(c, 0.35) for c in df[color_col]]),
        ))
        fig.add_trace(go.Scattermapbox(
            lat=df['lat'], lon=df['lon'], mode='markers', text=df['district'], customdata=df[[hover_col]], showlegend=False,
            marker=dict(size=14, color=df[color_col].tolist()),
            hovertemplate='<b>%{text}</b><br>Total cases: %{customdata[0]:,}<extra></extra>',
        ))
        fig.update_layout(
            title_text=_bold_title(title), height=settings.MAP_HEIGHT, margin={"r": 0, "t": 40, "l": 0, "b": 0},
            mapbox=dict(style=settings.MAPBOX_STYLE, zoom=settings.MAP_DEFAULT_ZOOM,
                        center={"lat": settings.MAP_DEFAULT_CENTER[0], "lon": settings.MAP_DEFAULT_CENTER[1]}),
        )
        return fig
    except Exception as e: logger.error(f"Failed to create district map '{title}': {e}", exc_info=True); return create_empty_figure(title, "Error generating map.")
