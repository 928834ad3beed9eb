# salon/routers/finance_routes.py

import logging
import re
from collections import defaultdict
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session, select

from salon.auth import get_current_user
from salon.db import get_session
from salon.deps import get_owned
from salon.models import Transaction
from salon.schemas import ActionResult, FinanceStats, TransactionCreate, TransactionPublic, TransactionType
from salon.stats import category_breakdown, monthly_projection

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/finance",
    tags=["finance"],
)

NOT_FOUND = "Transaction not found"
MONTH_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")


def _month_bounds(month: str):
    match = MONTH_RE.match(month)
    if not match:
        raise HTTPException(status_code=422, detail="month must use the YYYY-MM format")
    year, number = int(match.group(1)), int(match.group(2))
    start = date(year, number, 1)
    end = date(year + 1, 1, 1) if number == 12 else date(year, number + 1, 1)
    return start, end


@router.get("/transactions", response_model=List[TransactionPublic])
def list_transactions(
    type: Optional[TransactionType] = None,
    category: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    if start_date and end_date and start_date > end_date:
        raise HTTPException(status_code=422, detail="start_date must be <= end_date")

    stmt = select(Transaction).where(Transaction.owner_id == current_user["id"])
    if type is not None:
        stmt = stmt.where(Transaction.type == type.value)
    if category:
        stmt = stmt.where(Transaction.category == category)
    if start_date is not None:
        stmt = stmt.where(Transaction.transaction_date >= start_date)
    if end_date is not None:
        stmt = stmt.where(Transaction.transaction_date <= end_date)

    stmt = stmt.order_by(Transaction.transaction_date.desc(), Transaction.id.desc())
    return session.exec(stmt).all()


@router.post("/transactions", response_model=TransactionPublic, status_code=201)
def create_transaction(
    form: TransactionCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    tx = Transaction(
        owner_id=current_user["id"],
        description=form.description.strip(),
        amount=round(form.amount, 2),
        type=form.type.value,
        category=form.category.strip(),
        transaction_date=form.transaction_date,
    )
    session.add(tx)
    session.commit()
    session.refresh(tx)

    logger.info("Transaction %s created (%s %.2f)", tx.id, tx.type, tx.amount)
    return tx


@router.delete("/transactions/{tx_id}", response_model=ActionResult)
def delete_transaction(
    tx_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    tx = get_owned(session, Transaction, tx_id, current_user, NOT_FOUND)
    session.delete(tx)
    session.commit()

    logger.info("Transaction %s deleted", tx_id)
    return {"id": tx_id, "message": "Transaction deleted"}


@router.get("/stats", response_model=FinanceStats)
def finance_stats(
    month: Optional[str] = Query(default=None, description="YYYY-MM, defaults to the current month"),
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    if month is None:
        month = date.today().strftime("%Y-%m")
    start, end = _month_bounds(month)

    transactions = session.exec(
        select(Transaction).where(Transaction.owner_id == current_user["id"])
    ).all()

    # 1) Month totals and categories
    in_month = [t for t in transactions if start <= t.transaction_date < end]
    income = [t for t in in_month if t.type == "income"]
    expenses = [t for t in in_month if t.type == "expense"]
    total_income = round(sum(t.amount for t in income), 2)
    total_expenses = round(sum(t.amount for t in expenses), 2)

    # 2) Projection from the whole history
    monthly_net = defaultdict(float)
    for t in transactions:
        key = t.transaction_date.strftime("%Y-%m")
        monthly_net[key] += t.amount if t.type == "income" else -t.amount

    return {
        "month": month,
        "total_income": total_income,
        "total_expenses": total_expenses,
        "net_profit": round(total_income - total_expenses, 2),
        "monthly_projection": monthly_projection(monthly_net),
        "income_by_category": category_breakdown((t.category, t.amount) for t in income),
        "expenses_by_category": category_breakdown((t.category, t.amount) for t in expenses),
    }
