# kmh_project_root/analytics/__init__.py
# SME PLATINUM STANDARD - PACKAGE PUBLIC API

"""
Initializes the analytics package, making the alert engine, the alert feed
and the district insights client available at the top level.
"""

# From alerting.py
from .alerting import (
    Alert,
    AlertPriority,
    AlertType,
    HealthAlertGenerator,
    alerts_to_frame,
    generate_health_alerts,
)

# From alert_feed.py
from .alert_feed import AlertFeed, AlertFeedState, FeedStatus, fetch_alert_snapshot, run_alert_cycle

# From alert_views.py
from .alert_views import filter_alerts_by_priority, summarize_alert_priorities

# From district_insights.py
from .district_insights import (
    DistrictInsightsClient,
    DistrictInsightsError,
    severity_color,
    summary_to_frame,
    total_cases,
)

__all__ = [
    # Alert engine
    "Alert",
    "AlertPriority",
    "AlertType",
    "HealthAlertGenerator",
    "alerts_to_frame",
    "generate_health_alerts",

    # Alert feed
    "AlertFeed",
    "AlertFeedState",
    "FeedStatus",
    "fetch_alert_snapshot",
    "run_alert_cycle",
    "filter_alerts_by_priority",
    "summarize_alert_priorities",

    # District insights
    "DistrictInsightsClient",
    "DistrictInsightsError",
    "severity_color",
    "summary_to_frame",
    "total_cases",
]
