# kmh_project_root/tests/test_ui_visualization_helpers.py
# SME PLATINUM STANDARD - VISUALIZATION & UI TESTS

import html
from unittest.mock import patch

import pandas as pd
import plotly.graph_objects as go
import pytest

from analytics import generate_health_alerts
from config import settings
from data_processing import AuthSession, severity_breakdown
from data_processing.models import UserProfile
from visualization import (SESSION_KEY, create_empty_figure, plot_bar_chart, plot_district_markers,
                           plot_donut_chart, plot_line_chart, render_alert_card, render_kpi_card,
                           open_record_store, require_page_access, rerun_with_notice, set_plotly_theme,
                           show_pending_notice)
from tests.conftest import make_patient

# Fixtures are sourced from conftest.py


class PageStopped(Exception):
    """Raised by the patched st.stop so page guards halt the test like they halt a page run."""


@pytest.fixture(scope="module", autouse=True)
def apply_theme():
    """Apply the custom Plotly theme for all tests in this module."""
    set_plotly_theme()


def _session(role, district=None):
    profile = UserProfile(id="u1", email="u1@kerala.gov.in", full_name="Test User", role=role, district=district)
    return AuthSession(profile=profile, access_token="jwt")


# --- Plotting Tests ---
def test_create_empty_figure_properties():
    """Verifies that empty figures are created with the correct message and layout."""
    fig = create_empty_figure(title="Empty Test", message="No data here.")
    assert isinstance(fig, go.Figure)
    assert "Empty Test" in fig.layout.title.text
    assert fig.layout.annotations[0].text == "No data here."


def test_plot_line_chart_structure():
    """One trace per requested series, coloured as requested."""
    df = pd.DataFrame({'date': ["2026-10-16", "2026-10-17"], 'cases': [3, 5], 'migrant': [1, 2]})
    fig = plot_line_chart(df, 'date', {'cases': settings.COLOR_PRIMARY, 'migrant': settings.COLOR_MIGRANT},
                          title="Case Trend", y_title="Cases")
    assert [t.name for t in fig.data] == ["Cases", "Migrant"]
    assert fig.data[1].line.color == settings.COLOR_MIGRANT
    assert fig.layout.yaxis.title.text == "Cases"


def test_plot_bar_chart_grouped_series():
    df = pd.DataFrame({'name': ["Kozhikode", "Ernakulam"], 'migrant': [6, 0], 'local': [0, 3]})
    fig = plot_bar_chart(df, 'name', ['migrant', 'local'], title="Cases by District", barmode='group')
    assert len(fig.data) == 2
    assert all(t.type == 'bar' for t in fig.data)
    assert "Cases by District" in fig.layout.title.text


def test_plot_bar_chart_horizontal_reverses_categories():
    df = pd.DataFrame({'name': ["Dengue", "Malaria"], 'cases': [3, 1]})
    fig = plot_bar_chart(df, 'cases', 'name', title="Top Diseases", orientation='h')
    assert fig.data[0].orientation == 'h'
    assert fig.layout.yaxis.autorange == 'reversed'


def test_plot_bar_chart_empty_input():
    fig = plot_bar_chart(pd.DataFrame(), 'name', 'total', title="Nothing")
    assert fig.layout.annotations[0].text == "No data available."


def test_plot_donut_chart_uses_severity_colours(sample_cases):
    df = severity_breakdown(pd.DataFrame(sample_cases))
    color_map = dict(zip(df['name'], df['color']))
    fig = plot_donut_chart(df, label_col='name', value_col='value', title="Severity", color_map=color_map)
    assert fig.data[0].type == 'pie'
    assert fig.data[0].hole > 0.4


def test_plot_donut_chart_all_zero_is_empty():
    df = pd.DataFrame({'name': ["Mild"], 'value': [0]})
    fig = plot_donut_chart(df, 'name', 'value', title="Severity")
    assert len(fig.data) == 0


def test_plot_district_markers_draws_halo_and_marker():
    df = pd.DataFrame({'district': ["Ernakulam"], 'lat': [9.98], 'lon': [76.28], 'total_cases': [3000],
                       'color': [settings.MAP_SEVERITY.color_moderate]})
    fig = plot_district_markers(df, title="Kerala")
    assert [t.type for t in fig.data] == ['scattermapbox', 'scattermapbox']
    assert list(fig.data[1].marker.color) == [settings.MAP_SEVERITY.color_moderate]
    assert fig.layout.mapbox.style == settings.MAPBOX_STYLE


# --- UI Element Tests ---
@patch('visualization.ui_elements.st')
def test_render_kpi_card_html(mock_st):
    """Tests that KPI cards render with the correct HTML structure and classes."""
    render_kpi_card(title="Test KPI", value=1234, unit="cases", status_level="HIGH_RISK", help_text="A test tooltip.")

    html_out, kwargs = mock_st.markdown.call_args
    html_content = html_out[0]
    assert 'class="kpi-card status-high-risk"' in html_content
    assert f'title="{html.escape("A test tooltip.")}"' in html_content
    assert '<div class="kpi-title">Test KPI</div>' in html_content
    assert '<p class="kpi-value">1,234' in html_content
    assert '<span class="kpi-units">cases</span>' in html_content
    assert kwargs['unsafe_allow_html'] is True


@patch('visualization.ui_elements.st')
def test_render_alert_card_escapes_and_marks_priority(mock_st, now):
    alert = generate_health_alerts([make_patient("x1", 400, name="<b>Asha</b>")], [], [], now)[0]
    render_alert_card(alert)
    html_content = mock_st.markdown.call_args[0][0]
    assert 'class="alert-card priority-high"' in html_content
    assert "&lt;b&gt;Asha&lt;/b&gt;" in html_content
    assert "<b>Asha</b>" not in html_content
    assert settings.PRIORITY_COLORS["high"] in html_content


@patch('visualization.ui_elements.st')
def test_require_page_access_stops_without_session(mock_st):
    mock_st.session_state = {}
    mock_st.stop.side_effect = PageStopped
    mock_st.button.return_value = False
    with pytest.raises(PageStopped):
        require_page_access("Dashboard")
    mock_st.warning.assert_called_once()


@patch('visualization.ui_elements.st')
def test_require_page_access_blocks_wrong_role(mock_st):
    mock_st.session_state = {SESSION_KEY: _session("government_official")}
    mock_st.stop.side_effect = PageStopped
    mock_st.button.return_value = False
    with pytest.raises(PageStopped):
        require_page_access("Patients")
    assert "Government Official" in mock_st.error.call_args[0][0]


@patch('visualization.ui_elements.st')
def test_require_page_access_returns_session_for_allowed_role(mock_st):
    session = _session("doctor", "Ernakulam")
    mock_st.session_state = {SESSION_KEY: session}
    mock_st.button.return_value = False
    assert require_page_access("Patients") is session
    mock_st.stop.assert_not_called()
    linked = [c.args[0] for c in mock_st.page_link.call_args_list]
    assert "pages/03_Patients.py" in linked


@patch('visualization.ui_elements.st')
def test_open_record_store_shows_error_when_backend_unconfigured(mock_st, monkeypatch):
    monkeypatch.setattr(settings, "RECORD_STORE_BACKEND", "rest")
    monkeypatch.setattr(settings, "SUPABASE_URL", None)
    mock_st.stop.side_effect = PageStopped
    with pytest.raises(PageStopped):
        open_record_store("jwt")
    assert "KMH_SUPABASE_URL" in mock_st.error.call_args[0][0]


@patch('visualization.ui_elements.st')
def test_open_record_store_returns_local_store(mock_st, monkeypatch):
    from data_processing import CsvRecordStore
    monkeypatch.setattr(settings, "RECORD_STORE_BACKEND", "csv")
    assert isinstance(open_record_store(None), CsvRecordStore)
    mock_st.error.assert_not_called()


@patch('visualization.ui_elements.st')
def test_notice_survives_one_rerun_only(mock_st):
    mock_st.session_state = {}
    rerun_with_notice("Registered patient KL12345678.")
    mock_st.rerun.assert_called_once()

    show_pending_notice()
    show_pending_notice()
    mock_st.success.assert_called_once_with("Registered patient KL12345678.")
    assert mock_st.session_state == {}
