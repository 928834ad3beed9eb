# salon/routers/dashboard_routes.py

import logging
from collections import Counter, defaultdict
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from salon.auth import get_current_user
from salon.data import RECENT_ACTIVITY_LIMIT, TIME_RANGES
from salon.db import get_session
from salon.models import Appointment, Customer, PointsHistory, Service, Transaction
from salon.schemas import DashboardData, TimeRange
from salon.stats import percent_change

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/dashboard",
    tags=["dashboard"],
)


def _period_figures(session: Session, owner_id: int, start: datetime, end: datetime) -> dict:
    transactions = session.exec(
        select(Transaction)
        .where(Transaction.owner_id == owner_id)
        .where(Transaction.type == "income")
        .where(Transaction.transaction_date >= start.date())
        .where(Transaction.transaction_date < end.date())
    ).all()

    appts = session.exec(
        select(Appointment)
        .where(Appointment.owner_id == owner_id)
        .where(Appointment.scheduled_time >= start)
        .where(Appointment.scheduled_time < end)
    ).all()

    # points follow the agenda date of the appointment that earned them
    earned = []
    appt_ids = [a.id for a in appts]
    if appt_ids:
        earned = session.exec(
            select(PointsHistory)
            .where(PointsHistory.owner_id == owner_id)
            .where(PointsHistory.type == "earned")
            .where(PointsHistory.appointment_id.in_(appt_ids))
        ).all()

    return {
        "revenue": round(sum(t.amount for t in transactions), 2),
        "clients": len({a.client_id for a in appts}),
        "appointments": len(appts),
        "loyalty_points": sum(p.points for p in earned),
        "appts": appts,
    }


@router.get("", response_model=DashboardData)
def get_dashboard_data(
    time_range: TimeRange = TimeRange.month,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    owner_id = current_user["id"]
    days = TIME_RANGES[time_range.value]

    # whole days: the period ends with today
    end = datetime.combine(datetime.now().date() + timedelta(days=1), datetime.min.time())
    start = end - timedelta(days=days)
    previous_start = start - timedelta(days=days)

    # 1) KPIs against the previous period
    current = _period_figures(session, owner_id, start, end)
    previous = _period_figures(session, owner_id, previous_start, start)

    def kpi(key: str, title: str, formatter: str) -> dict:
        return {
            "title": title,
            "value": current[key],
            "trend": percent_change(current[key], previous[key]),
            "formatter": formatter,
        }

    kpis = {
        "revenue": kpi("revenue", "Revenue", "currency"),
        "clients": kpi("clients", "Clients", "number"),
        "appointments": kpi("appointments", "Appointments", "number"),
        "loyalty_points": kpi("loyalty_points", "Loyalty points", "number"),
    }

    appts = current["appts"]

    # 2) Daily revenue of completed appointments
    by_day = defaultdict(float)
    for a in appts:
        if a.status == "completed":
            by_day[a.scheduled_time.date()] += a.final_price
    revenue_chart = []
    for offset in range(days):
        day = (start + timedelta(days=offset)).date()
        revenue_chart.append({"date": day, "revenue": round(by_day[day], 2)})

    # 3) Share of appointments per service
    service_names = {
        s.id: s.name
        for s in session.exec(select(Service).where(Service.owner_id == owner_id)).all()
    }
    counts = Counter(a.service_id for a in appts)
    services_chart = [
        {
            "name": service_names.get(service_id, "Unknown service"),
            "value": count,
            "percentage": round(count / len(appts) * 100, 2),
        }
        for service_id, count in counts.most_common()
    ]

    # 4) Latest activity
    client_names = {
        c.id: c.full_name
        for c in session.exec(select(Customer).where(Customer.owner_id == owner_id)).all()
    }
    latest = sorted(appts, key=lambda a: (a.scheduled_time, a.id), reverse=True)[:RECENT_ACTIVITY_LIMIT]
    recent_activities = [
        {
            "id": a.id,
            "client": client_names.get(a.client_id, "Unknown customer"),
            "service": service_names.get(a.service_id, "Unknown service"),
            "date": a.scheduled_time,
            "status": a.status,
        }
        for a in latest
    ]

    logger.debug("Dashboard built for owner %s over %s", owner_id, time_range.value)
    return {
        "kpis": kpis,
        "revenue_chart": revenue_chart,
        "services_chart": services_chart,
        "recent_activities": recent_activities,
        "last_update": datetime.utcnow(),
    }
