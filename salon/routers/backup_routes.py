# salon/routers/backup_routes.py

import logging
from datetime import date

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlmodel import Session, select

from salon.auth import get_current_user
from salon.db import get_session
from salon.models import Appointment, Customer, Service, Transaction

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/backup",
    tags=["backup"],
)

EXPORTED = {
    "customers": Customer,
    "services": Service,
    "appointments": Appointment,
    "transactions": Transaction,
}


@router.get("")
def export_backup(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    owner_id = current_user["id"]
    payload = {"exported_at": date.today().isoformat()}
    for key, model in EXPORTED.items():
        rows = session.exec(
            select(model).where(model.owner_id == owner_id).order_by(model.id)
        ).all()
        payload[key] = [row.model_dump() for row in rows]

    filename = f"backup_{date.today().isoformat()}.json"
    logger.info(
        "Backup exported for owner %s (%s)",
        owner_id,
        ", ".join(f"{len(payload[key])} {key}" for key in EXPORTED),
    )
    return JSONResponse(
        content=jsonable_encoder(payload),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
