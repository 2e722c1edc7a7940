# kmh_project_root/analytics/alert_views.py
# Display-side filtering and priority counts for the alerts feed.

from typing import Dict, List, Union

from .alerting import Alert, AlertPriority

ALL_PRIORITIES = "all"


def filter_alerts_by_priority(alerts: List[Alert], priority: Union[str, AlertPriority] = ALL_PRIORITIES) -> List[Alert]:
    """Returns the alerts matching `priority` ('all' keeps everything), preserving engine order."""
    if priority == ALL_PRIORITIES:
        return list(alerts)
    wanted = AlertPriority(priority)
    return [a for a in alerts if a.priority == wanted]


def summarize_alert_priorities(alerts: List[Alert]) -> Dict[str, int]:
    """Count of alerts per priority, urgent first, with zero entries kept for the stats cards."""
    counts = {p.value: 0 for p in AlertPriority}
    for alert in alerts:
        counts[alert.priority.value] += 1
    return counts
