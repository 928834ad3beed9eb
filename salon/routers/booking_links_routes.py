# salon/routers/booking_links_routes.py

import logging
from datetime import date, datetime, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from salon.auth import get_current_user
from salon.core import build_time_slots, parse_hhmm, unique_slug
from salon.db import get_session
from salon.deps import get_owned, touch
from salon.errors import integrity_http_error
from salon.models import Appointment, BookingLink, Customer, Service
from salon.routers.appointments_routes import busy_intervals, ensure_slot_free
from salon.routers.business_hours_routes import get_or_create_hours, hours_out
from salon.schemas import (
    ActionResult,
    AvailabilityResponse,
    BookingConfirmation,
    BookingLinkCreate,
    BookingLinkPublic,
    BookingLinkSortBy,
    BookingLinkUpdate,
    ClientBookingForm,
    PublicBookingPage,
    SortOrder,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/booking-links",
    tags=["booking links"],
)

public_router = APIRouter(
    prefix="/public/booking",
    tags=["public booking"],
)

NOT_FOUND = "Booking link not found"
SLUG_ATTEMPTS = 5


def _check_services(session: Session, service_ids: List[int], owner_id: int) -> List[int]:
    unique_ids = list(dict.fromkeys(service_ids))
    owned = session.exec(
        select(Service.id)
        .where(Service.owner_id == owner_id)
        .where(Service.id.in_(unique_ids))
    ).all()
    missing = set(unique_ids) - set(owned)
    if missing:
        raise HTTPException(status_code=422, detail=f"Unknown services: {sorted(missing)}")
    return unique_ids


def _new_slug(session: Session, name: str) -> str:
    for _ in range(SLUG_ATTEMPTS):
        slug = unique_slug(name)
        taken = session.exec(select(BookingLink.id).where(BookingLink.slug == slug)).first()
        if taken is None:
            return slug
    raise HTTPException(status_code=409, detail="Could not generate a unique link, try again")


# ---------------------- OWNER ROUTES ----------------------

@router.get("", response_model=List[BookingLinkPublic])
def list_booking_links(
    search: Optional[str] = None,
    only_active: bool = False,
    sort_by: BookingLinkSortBy = BookingLinkSortBy.created_at,
    sort_order: SortOrder = SortOrder.desc,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    stmt = select(BookingLink).where(BookingLink.owner_id == current_user["id"])

    if search:
        term = f"%{search.strip()}%"
        stmt = stmt.where(or_(BookingLink.name.ilike(term), BookingLink.description.ilike(term)))
    if only_active:
        stmt = stmt.where(BookingLink.active == True)  # noqa: E712

    column = BookingLink.name if sort_by == BookingLinkSortBy.name else BookingLink.created_at
    order = column.asc() if sort_order == SortOrder.asc else column.desc()
    return session.exec(stmt.order_by(order, BookingLink.id)).all()


@router.post("", response_model=BookingLinkPublic, status_code=201)
def create_booking_link(
    form: BookingLinkCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    # 1) Services must belong to the caller
    services = _check_services(session, form.services, current_user["id"])

    # 2) Create with a fresh slug
    name = form.name.strip()
    link = BookingLink(
        owner_id=current_user["id"],
        name=name,
        description=form.description or name,
        slug=_new_slug(session, name),
        active=form.active,
        services=services,
        days_in_advance=form.days_in_advance,
        redirect_url=str(form.redirect_url) if form.redirect_url else None,
    )
    session.add(link)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise integrity_http_error(exc)

    session.refresh(link)
    logger.info("Booking link %s created with slug %s", link.id, link.slug)
    return link


@router.get("/{link_id}", response_model=BookingLinkPublic)
def get_booking_link(
    link_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return get_owned(session, BookingLink, link_id, current_user, NOT_FOUND)


@router.put("/{link_id}", response_model=BookingLinkPublic)
def update_booking_link(
    link_id: int,
    form: BookingLinkUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    link = get_owned(session, BookingLink, link_id, current_user, NOT_FOUND)
    sent = form.model_fields_set

    if form.name is not None:
        link.name = form.name.strip()
    if "description" in sent:
        link.description = form.description or link.name
    if form.active is not None:
        link.active = form.active
    if form.services is not None:
        link.services = _check_services(session, form.services, current_user["id"])
    if form.days_in_advance is not None:
        link.days_in_advance = form.days_in_advance
    if "redirect_url" in sent:
        link.redirect_url = str(form.redirect_url) if form.redirect_url else None
    touch(link)

    session.add(link)
    session.commit()
    session.refresh(link)

    logger.info("Booking link %s updated", link.id)
    return link


@router.delete("/{link_id}", response_model=ActionResult)
def delete_booking_link(
    link_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    link = get_owned(session, BookingLink, link_id, current_user, NOT_FOUND)

    # appointments booked through the link stay, without the reference
    for appt in session.exec(select(Appointment).where(Appointment.booking_link_id == link.id)).all():
        appt.booking_link_id = None
        session.add(appt)

    session.delete(link)
    session.commit()

    logger.info("Booking link %s deleted", link_id)
    return {"id": link_id, "message": "Booking link deleted"}


# ---------------------- PUBLIC ROUTES ----------------------

def _active_link(session: Session, slug: str) -> BookingLink:
    link = session.exec(select(BookingLink).where(BookingLink.slug == slug)).first()
    if link is None or not link.active:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return link


def _link_service(session: Session, link: BookingLink, service_id: int) -> Service:
    if service_id not in (link.services or []):
        raise HTTPException(status_code=404, detail="Service not found")
    service = session.get(Service, service_id)
    if service is None or service.owner_id != link.owner_id or not service.is_active:
        raise HTTPException(status_code=404, detail="Service not found")
    return service


def _check_booking_window(link: BookingLink, day: date) -> None:
    today = date.today()
    if day < today or day > today + timedelta(days=link.days_in_advance):
        raise HTTPException(status_code=422, detail="Date is outside the booking window")


@public_router.get("/{slug}", response_model=PublicBookingPage)
def public_booking_page(slug: str, session: Session = Depends(get_session)):
    link = _active_link(session, slug)

    services = []
    if link.services:
        services = session.exec(
            select(Service)
            .where(Service.owner_id == link.owner_id)
            .where(Service.id.in_(link.services))
            .where(Service.is_active == True)  # noqa: E712
            .order_by(Service.name)
        ).all()

    hours = get_or_create_hours(session, link.owner_id)

    # built before the commit, which expires the loaded rows
    page = {
        "name": link.name,
        "description": link.description,
        "slug": link.slug,
        "days_in_advance": link.days_in_advance,
        "services": [s.model_dump() for s in services],
        "business_hours": hours_out(hours),
    }

    link.views += 1
    session.add(link)
    session.commit()

    return page


@public_router.get("/{slug}/slots", response_model=AvailabilityResponse)
def public_slots(
    slug: str,
    service_id: int,
    on_date: date = Query(alias="date"),
    session: Session = Depends(get_session),
):
    link = _active_link(session, slug)
    service = _link_service(session, link, service_id)
    _check_booking_window(link, on_date)

    hours = get_or_create_hours(session, link.owner_id)
    slots = build_time_slots(
        on_date,
        service.duration_minutes,
        hours,
        busy_intervals(session, link.owner_id, on_date),
        now=datetime.now(),
    )
    return {"date": on_date, "service_id": service.id, "slots": slots}


@public_router.post("/{slug}", response_model=BookingConfirmation, status_code=201)
def public_book(
    slug: str,
    form: ClientBookingForm,
    session: Session = Depends(get_session),
):
    # 1) Link, service and time
    link = _active_link(session, slug)
    service = _link_service(session, link, form.service_id)
    _check_booking_window(link, form.date)

    start = datetime.combine(form.date, parse_hhmm(form.time))
    if start < datetime.now():
        raise HTTPException(status_code=422, detail="Time slot is in the past")
    ensure_slot_free(session, link.owner_id, start, service.duration_minutes)

    # only the times the slots page offers
    hours = get_or_create_hours(session, link.owner_id)
    offered = {parse_hhmm(s["time"]) for s in build_time_slots(form.date, service.duration_minutes, hours, [])}
    if start.time() not in offered:
        raise HTTPException(status_code=422, detail="Time is not one of the offered slots")

    # 2) Find the customer by phone, or create one
    customer = session.exec(
        select(Customer)
        .where(Customer.owner_id == link.owner_id)
        .where(Customer.phone == form.phone)
    ).first()
    if customer is None:
        customer = Customer(
            owner_id=link.owner_id,
            full_name=form.full_name.strip(),
            phone=form.phone,
            email=str(form.email) if form.email else None,
        )
        session.add(customer)
        session.flush()
        logger.info("Customer %s created from booking link %s", customer.id, link.id)
    else:
        if not customer.active:
            customer.active = True
            customer.deleted_at = None
            logger.info("Customer %s restored from booking link %s", customer.id, link.id)
        if form.email and not customer.email:
            customer.email = str(form.email)
        touch(customer)
        session.add(customer)

    # 3) Book it
    appt = Appointment(
        owner_id=link.owner_id,
        client_id=customer.id,
        service_id=service.id,
        booking_link_id=link.id,
        scheduled_time=start,
        duration_minutes=service.duration_minutes,
        final_price=service.base_price,
        status="scheduled",
        notes=form.notes,
    )
    session.add(appt)

    link.appointments += 1
    session.add(link)

    session.commit()
    session.refresh(appt)

    logger.info("Appointment %s booked through link %s", appt.id, link.slug)
    return {
        "appointment_id": appt.id,
        "scheduled_time": appt.scheduled_time,
        "service_name": service.name,
        "customer_name": customer.full_name,
        "redirect_url": link.redirect_url,
        "message": "Appointment booked",
    }
