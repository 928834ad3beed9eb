# salon/loyalty.py
"""
Loyalty program rules: how many points a paid amount is worth, which level a
balance reaches, and rebuilding balances when the rules change.
"""

import logging
import math
from collections import defaultdict
from typing import Optional

from sqlmodel import Session, select

from salon.data import DEFAULT_LOYALTY_CONFIG
from salon.models import Appointment, Customer, LoyaltyConfig, PointsHistory

logger = logging.getLogger(__name__)


def get_loyalty_config(session: Session, owner_id: int) -> LoyaltyConfig:
    config = session.get(LoyaltyConfig, owner_id)
    if config is None:
        # not persisted: an owner without saved rules just has the program off
        config = LoyaltyConfig(owner_id=owner_id, **DEFAULT_LOYALTY_CONFIG)
    return config


def calculate_points(config: LoyaltyConfig, service_id: int, amount: float) -> int:
    if not config.enabled or amount < config.minimum_for_points:
        return 0

    multiplier = 1.0
    for rule in config.service_rules or []:
        if rule.get("service_id") == service_id:
            multiplier = rule.get("multiplier") or 1.0
            break

    base_points = math.floor(amount * config.points_per_currency)
    return math.floor(base_points * multiplier)


def level_for_points(config: LoyaltyConfig, points: int) -> Optional[dict]:
    if not config.enabled:
        return None
    reached = [level for level in config.levels or [] if points >= level.get("min_points", 0)]
    if not reached:
        return None
    return max(reached, key=lambda level: level.get("min_points", 0))


def award_points(session: Session, appointment: Appointment, config: LoyaltyConfig) -> int:
    """Credit the points of a completed appointment. The caller commits."""
    points = calculate_points(config, appointment.service_id, appointment.final_price)
    if points <= 0:
        return 0

    customer = session.get(Customer, appointment.client_id)
    if customer is None:
        return 0

    customer.points += points
    session.add(customer)
    session.add(PointsHistory(
        owner_id=appointment.owner_id,
        client_id=customer.id,
        appointment_id=appointment.id,
        type="earned",
        points=points,
        description=f"Appointment #{appointment.id}",
    ))
    return points


def recalculate_points(session: Session, owner_id: int, config: LoyaltyConfig) -> int:
    """
    Rebuild every customer's earned points from their completed appointments.

    Earned history is replaced, redeemed history is kept, and each balance
    becomes earned minus redeemed. Returns the number of customers touched.
    The caller commits.
    """
    if not config.enabled:
        logger.info("Loyalty disabled for owner %s, points left as they are", owner_id)
        return 0

    completed = session.exec(
        select(Appointment)
        .where(Appointment.owner_id == owner_id)
        .where(Appointment.status == "completed")
    ).all()

    by_client = defaultdict(list)
    for appt in completed:
        by_client[appt.client_id].append(appt)

    history = session.exec(
        select(PointsHistory).where(PointsHistory.owner_id == owner_id)
    ).all()

    redeemed = defaultdict(int)
    for entry in history:
        if entry.type == "earned":
            session.delete(entry)
        else:
            redeemed[entry.client_id] += entry.points

    customers = session.exec(
        select(Customer).where(Customer.owner_id == owner_id)
    ).all()

    updated = 0
    for customer in customers:
        earned = 0
        for appt in by_client.get(customer.id, []):
            points = calculate_points(config, appt.service_id, appt.final_price)
            if points <= 0:
                continue
            earned += points
            session.add(PointsHistory(
                owner_id=owner_id,
                client_id=customer.id,
                appointment_id=appt.id,
                type="earned",
                points=points,
                description=f"Points recalculated - appointment #{appt.id}",
            ))

        balance = max(earned - redeemed[customer.id], 0)
        if balance != customer.points:
            customer.points = balance
            session.add(customer)
            updated += 1

    logger.info("Recalculated loyalty points for owner %s (%d customers changed)", owner_id, updated)
    return updated
