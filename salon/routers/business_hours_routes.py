# salon/routers/business_hours_routes.py

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from salon.auth import get_current_user
from salon.data import DEFAULT_BUSINESS_HOURS
from salon.db import get_session
from salon.models import BusinessHours
from salon.schemas import BusinessHoursPublic, BusinessHoursUpdate

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/business-hours",
    tags=["business hours"],
)


def hours_out(hours: BusinessHours) -> dict:
    lunch = None
    if hours.lunch_start is not None and hours.lunch_end is not None:
        lunch = {"start": hours.lunch_start, "end": hours.lunch_end}
    return {
        "start_time": hours.start_time,
        "end_time": hours.end_time,
        "days_off": hours.days_off or [],
        "lunch_break": lunch,
        "slot_interval": hours.slot_interval,
    }


def get_or_create_hours(session: Session, owner_id: int) -> BusinessHours:
    hours = session.get(BusinessHours, owner_id)
    if hours is None:
        defaults = dict(DEFAULT_BUSINESS_HOURS, days_off=list(DEFAULT_BUSINESS_HOURS["days_off"]))
        hours = BusinessHours(owner_id=owner_id, **defaults)
        session.add(hours)
        session.commit()
        session.refresh(hours)
        logger.info("Default business hours created for owner %s", owner_id)
    return hours


@router.get("", response_model=BusinessHoursPublic)
def get_business_hours(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return hours_out(get_or_create_hours(session, current_user["id"]))


@router.put("", response_model=BusinessHoursPublic)
def update_business_hours(
    update: BusinessHoursUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    hours = get_or_create_hours(session, current_user["id"])
    sent = update.model_fields_set

    start_time = update.start_time if update.start_time is not None else hours.start_time
    end_time = update.end_time if update.end_time is not None else hours.end_time
    if start_time >= end_time:
        raise HTTPException(status_code=422, detail="Opening time must be before closing time")

    lunch_start, lunch_end = hours.lunch_start, hours.lunch_end
    if "lunch_break" in sent:
        # an explicit null removes the lunch break
        if update.lunch_break is None:
            lunch_start, lunch_end = None, None
        else:
            lunch_start, lunch_end = update.lunch_break.start, update.lunch_break.end

    if lunch_start is not None and (lunch_start < start_time or lunch_end > end_time):
        raise HTTPException(status_code=422, detail="Lunch break must be within business hours")

    hours.start_time = start_time
    hours.end_time = end_time
    hours.lunch_start = lunch_start
    hours.lunch_end = lunch_end
    if update.days_off is not None:
        hours.days_off = list(update.days_off)
    if update.slot_interval is not None:
        hours.slot_interval = update.slot_interval

    session.add(hours)
    session.commit()
    session.refresh(hours)

    logger.info("Business hours updated for owner %s", current_user["id"])
    return hours_out(hours)
