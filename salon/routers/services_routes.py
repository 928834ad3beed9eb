# salon/routers/services_routes.py

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from salon.auth import get_current_user
from salon.core import format_duration, parse_duration
from salon.db import get_session
from salon.deps import get_owned, touch
from salon.models import Appointment, Service
from salon.schemas import (
    ActionResult,
    ServiceForm,
    ServicePublic,
    ServiceSortBy,
    ServiceStatusUpdate,
    SortOrder,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/services",
    tags=["services"],
)

NOT_FOUND = "Service not found"


def service_out(service: Service) -> dict:
    data = service.model_dump()
    data["duration"] = format_duration(service.duration_minutes)
    return data


def _apply_form(service: Service, form: ServiceForm) -> None:
    service.name = form.name
    service.description = form.description
    service.base_price = form.base_price
    service.duration_minutes = parse_duration(form.duration)
    service.is_active = form.is_active


@router.get("", response_model=List[ServicePublic])
def list_services(
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    sort_by: ServiceSortBy = ServiceSortBy.name,
    sort_order: SortOrder = SortOrder.asc,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    stmt = select(Service).where(Service.owner_id == current_user["id"])

    if search:
        stmt = stmt.where(Service.name.ilike(f"%{search.strip()}%"))
    if is_active is not None:
        stmt = stmt.where(Service.is_active == is_active)

    column = {
        ServiceSortBy.name: Service.name,
        ServiceSortBy.base_price: Service.base_price,
        ServiceSortBy.recent: Service.created_at,
    }[sort_by]
    order = column.asc() if sort_order == SortOrder.asc else column.desc()
    stmt = stmt.order_by(order, Service.id)

    return [service_out(s) for s in session.exec(stmt).all()]


@router.post("", response_model=ServicePublic, status_code=201)
def create_service(
    form: ServiceForm,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    service = Service(owner_id=current_user["id"], name=form.name)
    _apply_form(service, form)

    session.add(service)
    session.commit()
    session.refresh(service)

    logger.info("Service %s created", service.id)
    return service_out(service)


@router.get("/{service_id}", response_model=ServicePublic)
def get_service(
    service_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return service_out(get_owned(session, Service, service_id, current_user, NOT_FOUND))


@router.put("/{service_id}", response_model=ServicePublic)
def update_service(
    service_id: int,
    form: ServiceForm,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    service = get_owned(session, Service, service_id, current_user, NOT_FOUND)
    _apply_form(service, form)
    touch(service)

    session.add(service)
    session.commit()
    session.refresh(service)

    logger.info("Service %s updated", service.id)
    return service_out(service)


@router.patch("/{service_id}/status", response_model=ServicePublic)
def toggle_service_status(
    service_id: int,
    body: ServiceStatusUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    service = get_owned(session, Service, service_id, current_user, NOT_FOUND)
    service.is_active = body.is_active
    touch(service)

    session.add(service)
    session.commit()
    session.refresh(service)

    logger.info("Service %s %s", service.id, "activated" if service.is_active else "deactivated")
    return service_out(service)


@router.delete("/{service_id}", response_model=ActionResult)
def delete_service(
    service_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    service = get_owned(session, Service, service_id, current_user, NOT_FOUND)

    in_use = session.exec(
        select(Appointment.id).where(Appointment.service_id == service.id)
    ).first()
    if in_use is not None:
        raise HTTPException(
            status_code=409,
            detail="Service has appointments; deactivate it instead",
        )

    session.delete(service)
    session.commit()

    logger.info("Service %s deleted", service_id)
    return {"id": service_id, "message": "Service deleted"}
