# salon/stats.py
"""
Number crunching behind the finance page and the dashboard.

Everything here works on plain values so the routers only have to load rows.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from salon.data import PROJECTION_WEIGHTS


def category_breakdown(rows: Iterable[Tuple[str, float]]) -> List[dict]:
    """Sum amounts per category, biggest first, with their share of the total."""
    totals: Dict[str, float] = defaultdict(float)
    for category, amount in rows:
        totals[category] += amount

    grand_total = sum(totals.values())
    result = []
    for category, total in sorted(totals.items(), key=lambda item: (-item[1], item[0])):
        result.append({
            "category": category,
            "total": round(total, 2),
            "percentage": round(total / grand_total * 100, 2) if grand_total else 0.0,
        })
    return result


def monthly_projection(monthly_net: Dict[str, float]) -> float:
    """
    Next month's expected net profit.

    ``monthly_net`` maps ``YYYY-MM`` to that month's net. With three or more
    months the three most recent are weighted 0.5/0.3/0.2.
    """
    if not monthly_net:
        return 0.0

    recent = [monthly_net[month] for month in sorted(monthly_net, reverse=True)]
    if len(recent) == 1:
        return round(recent[0], 2)
    if len(recent) == 2:
        return round((recent[0] + recent[1]) / 2, 2)

    return round(sum(net * weight for net, weight in zip(recent, PROJECTION_WEIGHTS)), 2)


def percent_change(current: float, previous: float) -> Optional[float]:
    """Trend of a KPI; None when there is nothing to compare against."""
    if previous == 0:
        return None if current == 0 else 100.0
    return round((current - previous) / abs(previous) * 100, 2)
