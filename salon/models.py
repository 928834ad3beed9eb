# salon/models.py

from typing import Optional, List
from datetime import datetime, date as Date, time

from sqlalchemy import UniqueConstraint
from sqlalchemy.types import JSON
from sqlmodel import SQLModel, Field, Column


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    full_name: str
    password_hash: str
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Customer(SQLModel, table=True):
    __tablename__ = "clients"
    __table_args__ = (
        UniqueConstraint("owner_id", "phone", name="uq_client_owner_phone"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: int = Field(foreign_key="users.id", index=True)

    full_name: str
    phone: str  # digits only
    email: Optional[str] = None
    birth_date: Optional[Date] = None
    notes: Optional[str] = None

    points: int = 0  # current loyalty balance
    active: bool = True
    deleted_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class Service(SQLModel, table=True):
    __tablename__ = "services"

    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: int = Field(foreign_key="users.id", index=True)

    name: str
    description: Optional[str] = None
    base_price: float = 0.0
    duration_minutes: int = 60
    is_active: bool = True

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class BusinessHours(SQLModel, table=True):
    __tablename__ = "business_hours"

    owner_id: int = Field(foreign_key="users.id", primary_key=True)
    start_time: time
    end_time: time
    days_off: List[int] = Field(default_factory=list, sa_column=Column(JSON))  # 0=Sun ... 6=Sat
    lunch_start: Optional[time] = None
    lunch_end: Optional[time] = None
    slot_interval: int = 30


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"

    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: int = Field(foreign_key="users.id", index=True)
    client_id: int = Field(foreign_key="clients.id", index=True)
    service_id: int = Field(foreign_key="services.id", index=True)
    booking_link_id: Optional[int] = Field(default=None, foreign_key="booking_links.id")

    scheduled_time: datetime = Field(index=True)
    duration_minutes: int
    actual_duration: Optional[int] = None
    final_price: float
    discount: Optional[float] = None
    status: str = "scheduled"
    notes: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class Transaction(SQLModel, table=True):
    __tablename__ = "transactions"

    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: int = Field(foreign_key="users.id", index=True)

    description: str
    amount: float
    type: str  # "income" or "expense"
    category: str
    transaction_date: Date = Field(index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class BookingLink(SQLModel, table=True):
    __tablename__ = "booking_links"

    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: int = Field(foreign_key="users.id", index=True)

    name: str
    description: str
    slug: str = Field(index=True, unique=True)
    active: bool = True
    services: List[int] = Field(default_factory=list, sa_column=Column(JSON))
    days_in_advance: int = 30
    redirect_url: Optional[str] = None

    views: int = 0
    appointments: int = 0

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class PointsHistory(SQLModel, table=True):
    __tablename__ = "points_history"

    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: int = Field(foreign_key="users.id", index=True)
    client_id: int = Field(foreign_key="clients.id", index=True)
    appointment_id: Optional[int] = Field(default=None, foreign_key="appointments.id")

    type: str  # "earned" or "redeemed"
    points: int
    description: str
    created_at: datetime = Field(default_factory=datetime.utcnow)


class LoyaltyConfig(SQLModel, table=True):
    __tablename__ = "loyalty_config"

    owner_id: int = Field(foreign_key="users.id", primary_key=True)
    enabled: bool = False
    points_per_currency: float = 1.0
    minimum_for_points: float = 0.0
    service_rules: List[dict] = Field(default_factory=list, sa_column=Column(JSON))
    levels: List[dict] = Field(default_factory=list, sa_column=Column(JSON))


class Notification(SQLModel, table=True):
    __tablename__ = "notifications"

    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: int = Field(foreign_key="users.id", index=True)
    appointment_id: Optional[int] = Field(default=None, foreign_key="appointments.id")

    phone: str
    type: str = "reminder"   # reminder, confirmation or cancellation
    status: str = "pending"  # pending, sent or failed
    message: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
    sent_at: Optional[datetime] = None
