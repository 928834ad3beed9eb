# salon/routers/notifications_routes.py

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlmodel import Session, select

from salon.auth import get_current_user
from salon.db import get_session
from salon.models import Notification
from salon.schemas import NotificationPublic, WhatsAppRequest
from salon.whatsapp import WhatsAppClient, get_whatsapp_client, send_reminder

logger = logging.getLogger(__name__)

router = APIRouter(tags=["notifications"])


@router.post("/api/whatsapp")
def send_whatsapp(
    body: WhatsAppRequest,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
    whatsapp: WhatsAppClient = Depends(get_whatsapp_client),
):
    data = body.appointment_data
    notification = send_reminder(
        session,
        whatsapp,
        owner_id=current_user["id"],
        phone=body.phone,
        client_name=data.client_name,
        service_name=data.service_name,
        when=data.date_time,
    )
    session.commit()

    if notification.status != "sent":
        return JSONResponse(status_code=500, content={"error": "Failed to send WhatsApp message"})
    return {"success": True}


@router.get("/notifications", response_model=List[NotificationPublic])
def list_notifications(
    status: Optional[str] = None,
    limit: int = Query(default=50, ge=1, le=200),
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    stmt = select(Notification).where(Notification.owner_id == current_user["id"])
    if status:
        stmt = stmt.where(Notification.status == status)
    stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
    return session.exec(stmt).all()
