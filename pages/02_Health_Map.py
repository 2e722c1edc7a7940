# kmh_project_root/pages/02_Health_Map.py
# SME PLATINUM STANDARD - DISTRICT HEALTH MAP

import html
import logging
from typing import Any, Dict

import pandas as pd
import streamlit as st

from analytics import DistrictInsightsClient, DistrictInsightsError, severity_color, summary_to_frame, total_cases
from config import settings
from data_processing import load_district_points
from visualization import load_and_inject_css, plot_district_markers, require_page_access, run_async

# --- Page Setup ---
st.set_page_config(page_title="Health Map", page_icon="🗺️", layout="wide")
logger = logging.getLogger(__name__)
load_and_inject_css(settings.STYLE_CSS_PATH)


# --- Data Loading ---
@st.cache_data(ttl=settings.WEB_CACHE_TTL_SECONDS, show_spinner="Fetching district summaries...")
def get_marker_frame() -> pd.DataFrame:
    points = load_district_points()
    if points.empty:
        return points
    summaries = run_async(DistrictInsightsClient().fetch_all_summaries(points['district'].tolist()))
    points['total_cases'] = points['district'].map(lambda d: total_cases(summaries.get(d)))
    points['color'] = points['district'].map(lambda d: severity_color(summaries.get(d)))
    return points


@st.cache_data(ttl=settings.WEB_CACHE_TTL_SECONDS, show_spinner=False)
def get_district_info(district: str) -> Dict[str, Any]:
    return run_async(DistrictInsightsClient().fetch_district_info(district))


# --- UI Rendering Components ---
def render_legend():
    t = settings.MAP_SEVERITY
    cols = st.columns(3)
    cols[0].markdown(f"<span style='color:{t.color_low}'>●</span> Fewer than {t.moderate_min_cases:,} cases", unsafe_allow_html=True)
    cols[1].markdown(f"<span style='color:{t.color_moderate}'>●</span> {t.moderate_min_cases:,} to {t.high_min_cases - 1:,} cases", unsafe_allow_html=True)
    cols[2].markdown(f"<span style='color:{t.color_high}'>●</span> {t.high_min_cases:,}+ cases", unsafe_allow_html=True)


def render_district_info(district: str):
    st.subheader(f"{district} - Disease Summary")
    with st.spinner("Loading..."):
        try:
            info = get_district_info(district)
        except DistrictInsightsError as e:
            logger.error(f"District info failed for {district}: {e}")
            st.error(str(e))
            return

    diseases = summary_to_frame(info.get('disease_summary'))
    if diseases.empty:
        st.info(f"No disease summary is available for {district}.")
        return
    for row in diseases.itertuples(index=False):
        with st.container(border=True):
            st.markdown(f"**{html.escape(str(row.disease))}**: {int(row.cases):,} cases")
            st.caption(f"Mainly affected: {row.age_group or 'N/A'}, {row.gender or 'N/A'}")
            if row.possible_causes:
                st.caption(f"Possible causes: {row.possible_causes}")


# --- Main Page Execution ---
def main():
    require_page_access("Health Map")

    st.title("🗺️ Kerala District Health Map")
    st.markdown("Markers are coloured by the total reported cases in each district. Select a district to see its disease summary.")
    st.divider()

    markers = get_marker_frame()
    map_col, info_col = st.columns([0.62, 0.38], gap="large")
    with map_col:
        st.plotly_chart(plot_district_markers(markers, "District Case Load"), use_container_width=True)
        render_legend()
    with info_col:
        district = st.selectbox("District", [None] + settings.KERALA_DISTRICTS,
                                format_func=lambda d: "Select a district..." if d is None else d)
        if district:
            render_district_info(district)

    st.divider()
    st.caption(settings.APP_FOOTER_TEXT)


if __name__ == "__main__":
    main()
