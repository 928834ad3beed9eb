# salon/errors.py

import logging
from typing import Tuple

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)

# (substring of the raw error message, status code, user-facing detail)
KNOWN_ERRORS = [
    ("uq_client_owner_phone", 409, "A customer with this phone number already exists"),
    ("clients.owner_id, clients.phone", 409, "A customer with this phone number already exists"),
    ("booking_links.slug", 409, "A booking link with this address already exists"),
    ("users.email", 409, "Email already registered"),
    ("FOREIGN KEY constraint failed", 409, "This record is still referenced by other records"),
    ("violates foreign key constraint", 409, "This record is still referenced by other records"),
    ("Invalid login credentials", 401, "Invalid e-mail or password"),
    ("Email not confirmed", 403, "Please confirm your e-mail before signing in"),
]

UNKNOWN_ERROR = (500, "Unexpected database error")


def classify_error(message: str) -> Tuple[int, str]:
    """Map a raw error message to a status code and a message fit for the user."""
    for fragment, status_code, detail in KNOWN_ERRORS:
        if fragment in (message or ""):
            return status_code, detail
    return UNKNOWN_ERROR


def integrity_http_error(exc: IntegrityError) -> HTTPException:
    status_code, detail = classify_error(str(exc.orig) if exc.orig is not None else str(exc))
    return HTTPException(status_code=status_code, detail=detail)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        status_code, detail = classify_error(str(exc.orig) if exc.orig is not None else str(exc))
        logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
        return JSONResponse(status_code=status_code, content={"detail": detail})
