# salon/deps.py

from datetime import datetime

from fastapi import HTTPException
from sqlmodel import Session


def get_owned(session: Session, model, obj_id: int, current_user: dict, detail: str):
    """Load ``model`` by id, answering 404 when it belongs to another owner."""
    obj = session.get(model, obj_id)
    if obj is None or obj.owner_id != current_user["id"]:
        raise HTTPException(status_code=404, detail=detail)
    return obj


def touch(obj) -> None:
    obj.updated_at = datetime.utcnow()
