# salon/routers/loyalty_routes.py

import logging

from fastapi import APIRouter, Depends
from sqlmodel import Session

from salon.auth import get_current_user
from salon.db import get_session
from salon.loyalty import get_loyalty_config, recalculate_points
from salon.models import LoyaltyConfig
from salon.schemas import LoyaltyConfigSchema, RecalculateResult

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/loyalty",
    tags=["loyalty"],
)


def config_out(config: LoyaltyConfig) -> dict:
    return {
        "enabled": config.enabled,
        "points_per_currency": config.points_per_currency,
        "minimum_for_points": config.minimum_for_points,
        "service_rules": config.service_rules or [],
        "levels": config.levels or [],
    }


@router.get("/config", response_model=LoyaltyConfigSchema)
def get_config(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return config_out(get_loyalty_config(session, current_user["id"]))


@router.put("/config", response_model=LoyaltyConfigSchema)
def save_config(
    body: LoyaltyConfigSchema,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    config = get_loyalty_config(session, current_user["id"])

    # 1) Save the new rules
    config.enabled = body.enabled
    config.points_per_currency = body.points_per_currency
    config.minimum_for_points = body.minimum_for_points
    config.service_rules = [rule.model_dump() for rule in body.service_rules]
    config.levels = [
        level.model_dump()
        for level in sorted(body.levels, key=lambda level: level.min_points)
    ]
    session.add(config)
    session.flush()

    # 2) Balances follow the new rules
    recalculate_points(session, current_user["id"], config)

    session.commit()
    session.refresh(config)

    logger.info("Loyalty config saved for owner %s", current_user["id"])
    return config_out(config)


@router.post("/recalculate", response_model=RecalculateResult)
def recalculate(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    config = get_loyalty_config(session, current_user["id"])
    updated = recalculate_points(session, current_user["id"], config)
    session.commit()

    return {
        "customers_updated": updated,
        "message": f"Points recalculated for {updated} customers",
    }
