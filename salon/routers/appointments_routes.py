# salon/routers/appointments_routes.py

import logging
from datetime import datetime, timedelta, date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_
from sqlmodel import Session, select

from salon.auth import get_current_user
from salon.core import build_time_slots, check_business_hours, format_duration, format_phone, overlaps, parse_duration
from salon.data import BLOCKING_STATUSES, STATUS_TRANSITIONS
from salon.db import get_session
from salon.deps import get_owned, touch
from salon.loyalty import award_points, get_loyalty_config
from salon.models import Appointment, Customer, Notification, PointsHistory, Service
from salon.routers.business_hours_routes import get_or_create_hours
from salon.schemas import (
    ActionResult,
    AppointmentForm,
    AppointmentPublic,
    AppointmentStatus,
    AppointmentStatusUpdate,
    AvailabilityResponse,
    NotificationPublic,
)
from salon.whatsapp import WhatsAppClient, get_whatsapp_client, send_reminder

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/appointments",
    tags=["appointments"],
)

NOT_FOUND = "Appointment not found"


# ---------------------- helpers shared with the booking page ----------------------

def busy_intervals(session: Session, owner_id: int, day: date, exclude_id: Optional[int] = None):
    day_start = datetime.combine(day, datetime.min.time())
    day_end = day_start + timedelta(days=1)

    appts = session.exec(
        select(Appointment)
        .where(Appointment.owner_id == owner_id)
        .where(Appointment.scheduled_time >= day_start - timedelta(days=1))
        .where(Appointment.scheduled_time < day_end)
        .where(Appointment.status.in_(BLOCKING_STATUSES))
    ).all()

    intervals = []
    for a in appts:
        if exclude_id is not None and a.id == exclude_id:
            continue
        start = a.scheduled_time
        end = start + timedelta(minutes=a.duration_minutes)
        if end > day_start:
            intervals.append((start, end))
    return intervals


def ensure_slot_free(
    session: Session,
    owner_id: int,
    start: datetime,
    duration_minutes: int,
    exclude_id: Optional[int] = None,
) -> None:
    hours = get_or_create_hours(session, owner_id)

    # 1) Opening hours, day off and lunch break
    reason = check_business_hours(start, duration_minutes, hours)
    if reason is not None:
        raise HTTPException(status_code=422, detail=reason)

    # 2) Other appointments holding the slot
    end = start + timedelta(minutes=duration_minutes)
    for busy_start, busy_end in busy_intervals(session, owner_id, start.date(), exclude_id):
        if overlaps(start, end, busy_start, busy_end):
            raise HTTPException(status_code=409, detail="Time slot unavailable")


def appointments_out(session: Session, appts: List[Appointment]) -> List[dict]:
    client_ids = {a.client_id for a in appts}
    service_ids = {a.service_id for a in appts}
    clients = {}
    services = {}
    if client_ids:
        clients = {c.id: c for c in session.exec(select(Customer).where(Customer.id.in_(client_ids))).all()}
    if service_ids:
        services = {s.id: s for s in session.exec(select(Service).where(Service.id.in_(service_ids))).all()}

    rows = []
    for a in appts:
        data = a.model_dump()
        if a.actual_duration is not None:
            data["actual_duration"] = format_duration(a.actual_duration)
        client = clients.get(a.client_id)
        service = services.get(a.service_id)
        data["client"] = {"full_name": client.full_name, "phone": format_phone(client.phone)} if client else None
        data["service"] = {
            "name": service.name,
            "duration": format_duration(service.duration_minutes),
            "base_price": service.base_price,
        } if service else None
        rows.append(data)
    return rows


def _change_status(session: Session, appt: Appointment, new_status: str) -> None:
    if new_status == appt.status:
        return
    if new_status not in STATUS_TRANSITIONS.get(appt.status, set()):
        raise HTTPException(
            status_code=409,
            detail=f"Cannot change status from {appt.status} to {new_status}",
        )
    appt.status = new_status
    if new_status == "completed":
        config = get_loyalty_config(session, appt.owner_id)
        award_points(session, appt, config)


def _load_client_and_service(session: Session, form: AppointmentForm, current_user: dict):
    client = session.get(Customer, form.client_id)
    if client is None or client.owner_id != current_user["id"] or not client.active:
        raise HTTPException(status_code=404, detail="Customer not found")

    service = session.get(Service, form.service_id)
    if service is None or service.owner_id != current_user["id"]:
        raise HTTPException(status_code=404, detail="Service not found")
    return client, service


def _price(form: AppointmentForm, service: Service) -> float:
    if form.final_price is not None:
        return form.final_price
    return round(service.base_price * (1 - (form.discount or 0)), 2)


# ---------------------- routes ----------------------

@router.get("", response_model=List[AppointmentPublic])
def list_appointments(
    on_date: Optional[date] = Query(default=None, alias="date"),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    status: Optional[AppointmentStatus] = None,
    client_id: Optional[int] = None,
    service_id: Optional[int] = None,
    search: Optional[str] = None,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    if start_date and end_date and start_date > end_date:
        raise HTTPException(status_code=422, detail="start_date must be <= end_date")

    stmt = select(Appointment).where(Appointment.owner_id == current_user["id"])

    if on_date is not None:
        start_date = end_date = on_date
    if start_date is not None:
        stmt = stmt.where(Appointment.scheduled_time >= datetime.combine(start_date, datetime.min.time()))
    if end_date is not None:
        stmt = stmt.where(
            Appointment.scheduled_time < datetime.combine(end_date + timedelta(days=1), datetime.min.time())
        )
    if status is not None:
        stmt = stmt.where(Appointment.status == status.value)
    if client_id is not None:
        stmt = stmt.where(Appointment.client_id == client_id)
    if service_id is not None:
        stmt = stmt.where(Appointment.service_id == service_id)

    if search:
        term = f"%{search.strip()}%"
        client_ids = select(Customer.id).where(Customer.owner_id == current_user["id"]).where(Customer.full_name.ilike(term))
        service_ids = select(Service.id).where(Service.owner_id == current_user["id"]).where(Service.name.ilike(term))
        stmt = stmt.where(or_(Appointment.client_id.in_(client_ids), Appointment.service_id.in_(service_ids)))

    stmt = stmt.order_by(Appointment.scheduled_time, Appointment.id)
    return appointments_out(session, session.exec(stmt).all())


@router.get("/availability", response_model=AvailabilityResponse)
def availability(
    service_id: int,
    on_date: date = Query(alias="date"),
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    service = get_owned(session, Service, service_id, current_user, "Service not found")
    hours = get_or_create_hours(session, current_user["id"])

    slots = build_time_slots(
        on_date,
        service.duration_minutes,
        hours,
        busy_intervals(session, current_user["id"], on_date),
    )
    return {"date": on_date, "service_id": service.id, "slots": slots}


@router.get("/{appt_id}", response_model=AppointmentPublic)
def get_appointment(
    appt_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    appt = get_owned(session, Appointment, appt_id, current_user, NOT_FOUND)
    return appointments_out(session, [appt])[0]


@router.post("", response_model=AppointmentPublic, status_code=201)
def create_appointment(
    form: AppointmentForm,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    # 1) Validate client and service
    client, service = _load_client_and_service(session, form, current_user)
    if not service.is_active:
        raise HTTPException(status_code=422, detail="Service is not active")

    # 2) Check the slot
    ensure_slot_free(session, current_user["id"], form.scheduled_time, service.duration_minutes)

    # 3) Create and save
    appt = Appointment(
        owner_id=current_user["id"],
        client_id=client.id,
        service_id=service.id,
        scheduled_time=form.scheduled_time,
        duration_minutes=service.duration_minutes,
        actual_duration=parse_duration(form.actual_duration) if form.actual_duration else None,
        final_price=_price(form, service),
        discount=form.discount,
        status="scheduled",
        notes=form.notes,
    )
    session.add(appt)
    session.flush()  # fills appt.id for the points history

    _change_status(session, appt, form.status.value)

    session.commit()
    session.refresh(appt)

    logger.info("Appointment %s created for customer %s", appt.id, client.id)
    return appointments_out(session, [appt])[0]


@router.put("/{appt_id}", response_model=AppointmentPublic)
def update_appointment(
    appt_id: int,
    form: AppointmentForm,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    appt = get_owned(session, Appointment, appt_id, current_user, NOT_FOUND)
    client, service = _load_client_and_service(session, form, current_user)

    duration = service.duration_minutes if service.id != appt.service_id else appt.duration_minutes
    moved = form.scheduled_time != appt.scheduled_time or duration != appt.duration_minutes
    reopened = appt.status not in BLOCKING_STATUSES
    if (moved or reopened) and form.status.value in BLOCKING_STATUSES:
        ensure_slot_free(session, current_user["id"], form.scheduled_time, duration, exclude_id=appt.id)

    appt.client_id = client.id
    appt.service_id = service.id
    appt.scheduled_time = form.scheduled_time
    appt.duration_minutes = duration
    appt.actual_duration = parse_duration(form.actual_duration) if form.actual_duration else None
    appt.final_price = _price(form, service)
    appt.discount = form.discount
    appt.notes = form.notes
    _change_status(session, appt, form.status.value)
    touch(appt)

    session.add(appt)
    session.commit()
    session.refresh(appt)

    logger.info("Appointment %s updated", appt.id)
    return appointments_out(session, [appt])[0]


@router.patch("/{appt_id}/status", response_model=AppointmentPublic)
def update_appointment_status(
    appt_id: int,
    body: AppointmentStatusUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    appt = get_owned(session, Appointment, appt_id, current_user, NOT_FOUND)

    # reopening must not double-book the slot
    if body.status.value == "scheduled" and appt.status not in BLOCKING_STATUSES:
        ensure_slot_free(session, current_user["id"], appt.scheduled_time, appt.duration_minutes, exclude_id=appt.id)

    _change_status(session, appt, body.status.value)
    touch(appt)

    session.add(appt)
    session.commit()
    session.refresh(appt)

    logger.info("Appointment %s is now %s", appt.id, appt.status)
    return appointments_out(session, [appt])[0]


@router.delete("/{appt_id}", response_model=ActionResult)
def delete_appointment(
    appt_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    appt = get_owned(session, Appointment, appt_id, current_user, NOT_FOUND)

    # history and notification rows outlive the appointment
    for model in (PointsHistory, Notification):
        for row in session.exec(select(model).where(model.appointment_id == appt.id)).all():
            row.appointment_id = None
            session.add(row)

    session.delete(appt)
    session.commit()

    logger.info("Appointment %s deleted", appt_id)
    return {"id": appt_id, "message": "Appointment deleted"}


@router.post("/{appt_id}/reminder", response_model=NotificationPublic)
def send_appointment_reminder(
    appt_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
    whatsapp: WhatsAppClient = Depends(get_whatsapp_client),
):
    appt = get_owned(session, Appointment, appt_id, current_user, NOT_FOUND)
    if appt.status != "scheduled":
        raise HTTPException(status_code=409, detail="Only scheduled appointments get reminders")

    client = session.get(Customer, appt.client_id)
    service = session.get(Service, appt.service_id)

    notification = send_reminder(
        session,
        whatsapp,
        owner_id=current_user["id"],
        phone=client.phone,
        client_name=client.full_name,
        service_name=service.name,
        when=appt.scheduled_time,
        appointment_id=appt.id,
    )
    session.commit()
    session.refresh(notification)

    if notification.status != "sent":
        raise HTTPException(status_code=500, detail="Failed to send WhatsApp message")
    return notification
