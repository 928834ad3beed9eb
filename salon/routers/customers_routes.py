# salon/routers/customers_routes.py

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import extract, or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from salon.auth import get_current_user
from salon.config import settings
from salon.core import digits_only, format_phone
from salon.db import get_session
from salon.deps import get_owned, touch
from salon.errors import integrity_http_error
from salon.loyalty import get_loyalty_config, level_for_points
from salon.models import Appointment, Customer, PointsHistory, Service
from salon.schemas import (
    ActionResult,
    CustomerDetail,
    CustomerForm,
    CustomerPublic,
    CustomerSortBy,
    DeleteResult,
    PointsHistoryPublic,
    PointsRedeem,
    SortOrder,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/customers",
    tags=["customers"],
)

NOT_FOUND = "Customer not found"


def customer_out(customer: Customer) -> dict:
    data = customer.model_dump()
    data["phone"] = format_phone(customer.phone)
    return data


def _apply_form(customer: Customer, form: CustomerForm) -> None:
    customer.full_name = form.full_name
    customer.phone = form.phone
    customer.email = str(form.email) if form.email else None
    customer.birth_date = form.birth_date
    customer.notes = form.notes


@router.get("", response_model=List[CustomerPublic])
def list_customers(
    search: Optional[str] = None,
    sort_by: CustomerSortBy = CustomerSortBy.name,
    sort_order: SortOrder = SortOrder.asc,
    birth_month: Optional[int] = Query(default=None, ge=1, le=12),
    has_email: Optional[bool] = None,
    has_notes: Optional[bool] = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    stmt = (
        select(Customer)
        .where(Customer.owner_id == current_user["id"])
        .where(Customer.active == True)  # noqa: E712
    )

    if search:
        term = f"%{search.strip()}%"
        conditions = [Customer.full_name.ilike(term), Customer.email.ilike(term)]
        numbers = digits_only(search)
        if numbers:
            conditions.append(Customer.phone.like(f"%{numbers}%"))
        stmt = stmt.where(or_(*conditions))

    if birth_month is not None:
        stmt = stmt.where(extract("month", Customer.birth_date) == birth_month)

    if has_email is True:
        stmt = stmt.where(Customer.email.is_not(None))
    elif has_email is False:
        stmt = stmt.where(Customer.email.is_(None))

    if has_notes is True:
        stmt = stmt.where(Customer.notes.is_not(None))
    elif has_notes is False:
        stmt = stmt.where(Customer.notes.is_(None))

    column = {
        CustomerSortBy.name: Customer.full_name,
        CustomerSortBy.recent: Customer.created_at,
        CustomerSortBy.points: Customer.points,
    }[sort_by]
    order = column.asc() if sort_order == SortOrder.asc else column.desc()
    stmt = stmt.order_by(order, Customer.id).offset(offset).limit(limit)

    return [customer_out(c) for c in session.exec(stmt).all()]


@router.post("", response_model=CustomerPublic, status_code=201)
def create_customer(
    form: CustomerForm,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    # 1) One customer per phone number
    existing = session.exec(
        select(Customer)
        .where(Customer.owner_id == current_user["id"])
        .where(Customer.phone == form.phone)
    ).first()
    if existing is not None:
        if existing.active:
            raise HTTPException(status_code=409, detail="A customer with this phone number already exists")
        raise HTTPException(
            status_code=409,
            detail="A deleted customer uses this phone number; restore it instead",
        )

    # 2) Create and save
    customer = Customer(owner_id=current_user["id"], full_name="", phone="")
    _apply_form(customer, form)

    session.add(customer)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise integrity_http_error(exc)

    session.refresh(customer)
    logger.info("Customer %s created", customer.id)
    return customer_out(customer)


@router.get("/{customer_id}", response_model=CustomerDetail)
def get_customer(
    customer_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    customer = get_owned(session, Customer, customer_id, current_user, NOT_FOUND)

    appts = session.exec(
        select(Appointment)
        .where(Appointment.client_id == customer.id)
        .order_by(Appointment.scheduled_time.desc())
    ).all()

    service_ids = {a.service_id for a in appts}
    services = {}
    if service_ids:
        services = {
            s.id: s.name
            for s in session.exec(select(Service).where(Service.id.in_(service_ids))).all()
        }

    history = [
        {
            "id": a.id,
            "scheduled_time": a.scheduled_time,
            "service": services.get(a.service_id, "Unknown service"),
            "final_price": a.final_price,
            "status": a.status,
        }
        for a in appts
    ]

    completed = [a for a in appts if a.status == "completed"]
    total_spent = round(sum(a.final_price for a in completed), 2)
    metrics = {
        "visits": len(completed),
        "total_spent": total_spent,
        "average_ticket": round(total_spent / len(completed), 2) if completed else 0.0,
        "last_visit": completed[0].scheduled_time if completed else None,
    }

    config = get_loyalty_config(session, current_user["id"])

    data = customer_out(customer)
    data.update(
        appointments=history,
        metrics=metrics,
        level=level_for_points(config, customer.points),
    )
    return data


@router.put("/{customer_id}", response_model=CustomerPublic)
def update_customer(
    customer_id: int,
    form: CustomerForm,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    customer = get_owned(session, Customer, customer_id, current_user, NOT_FOUND)

    if form.phone != customer.phone:
        clash = session.exec(
            select(Customer)
            .where(Customer.owner_id == current_user["id"])
            .where(Customer.phone == form.phone)
            .where(Customer.id != customer.id)
        ).first()
        if clash is not None:
            raise HTTPException(status_code=409, detail="A customer with this phone number already exists")

    _apply_form(customer, form)
    touch(customer)
    session.add(customer)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise integrity_http_error(exc)

    session.refresh(customer)
    logger.info("Customer %s updated", customer.id)
    return customer_out(customer)


@router.delete("/{customer_id}", response_model=DeleteResult)
def delete_customer(
    customer_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    customer = get_owned(session, Customer, customer_id, current_user, NOT_FOUND)
    if not customer.active:
        raise HTTPException(status_code=409, detail="Customer already deleted")

    # soft delete: the row stays so the action can be undone
    now = datetime.utcnow()
    customer.active = False
    customer.deleted_at = now
    touch(customer)
    session.add(customer)
    session.commit()

    logger.info("Customer %s soft-deleted", customer.id)
    return {
        "id": customer.id,
        "message": "Customer deleted",
        "undo_until": now + timedelta(seconds=settings.undo_window_seconds),
    }


@router.post("/{customer_id}/restore", response_model=ActionResult)
def restore_customer(
    customer_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    customer = get_owned(session, Customer, customer_id, current_user, NOT_FOUND)
    if customer.active:
        raise HTTPException(status_code=409, detail="Customer is not deleted")

    customer.active = True
    customer.deleted_at = None
    touch(customer)
    session.add(customer)
    session.commit()

    logger.info("Customer %s restored", customer.id)
    return {"id": customer.id, "message": "Customer restored"}


@router.get("/{customer_id}/points-history", response_model=List[PointsHistoryPublic])
def points_history(
    customer_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    customer = get_owned(session, Customer, customer_id, current_user, NOT_FOUND)
    return session.exec(
        select(PointsHistory)
        .where(PointsHistory.client_id == customer.id)
        .order_by(PointsHistory.created_at.desc(), PointsHistory.id.desc())
    ).all()


@router.post("/{customer_id}/points/redeem", response_model=CustomerPublic)
def redeem_points(
    customer_id: int,
    body: PointsRedeem,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    customer = get_owned(session, Customer, customer_id, current_user, NOT_FOUND)
    if not customer.active:
        raise HTTPException(status_code=409, detail="Customer is deleted")
    if body.points > customer.points:
        raise HTTPException(status_code=422, detail="Insufficient points")

    customer.points -= body.points
    touch(customer)
    session.add(customer)
    session.add(PointsHistory(
        owner_id=current_user["id"],
        client_id=customer.id,
        type="redeemed",
        points=body.points,
        description=body.description,
    ))
    session.commit()
    session.refresh(customer)

    logger.info("Customer %s redeemed %d points", customer.id, body.points)
    return customer_out(customer)
