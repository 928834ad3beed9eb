# salon/schemas.py

import re
from datetime import datetime, date, time
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, HttpUrl, field_validator, model_validator

from salon.core import digits_only, parse_birth_date, parse_duration, parse_hhmm
from salon.data import DEFAULT_DAYS_IN_ADVANCE, DEFAULT_SERVICE_DURATION

PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$")


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _validate_phone(value: str) -> str:
    numbers = digits_only(value)
    if len(numbers) not in (10, 11):
        raise ValueError("Invalid phone number")
    return numbers


class SortOrder(str, Enum):
    asc = "asc"
    desc = "desc"


# ---------------------- AUTH ----------------------

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserCreate(BaseModel):
    name: str = Field(min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(min_length=8, max_length=50)
    confirm_password: str = Field(min_length=1)

    @field_validator("name")
    @classmethod
    def title_case_name(cls, value: str) -> str:
        return " ".join(word.capitalize() for word in value.strip().split())

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("password")
    @classmethod
    def strong_password(cls, value: str) -> str:
        if not PASSWORD_PATTERN.match(value):
            raise ValueError(
                "Password must contain an uppercase letter, a lowercase letter, "
                "a number and a special character"
            )
        return value

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class UserPublic(BaseModel):
    id: int
    email: str
    full_name: str


class ActionResult(BaseModel):
    id: int
    message: str


class DeleteResult(ActionResult):
    undo_until: datetime


# ---------------------- CUSTOMERS ----------------------

class CustomerSortBy(str, Enum):
    name = "name"
    recent = "recent"
    points = "points"


class CustomerForm(BaseModel):
    full_name: str
    phone: str
    email: Optional[EmailStr] = None
    birth_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("full_name")
    @classmethod
    def name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value

    @field_validator("phone")
    @classmethod
    def phone_digits(cls, value: str) -> str:
        return _validate_phone(value)

    @field_validator("email", "notes", mode="before")
    @classmethod
    def empty_is_none(cls, value):
        return _blank_to_none(value)

    @field_validator("birth_date", mode="before")
    @classmethod
    def parse_birth(cls, value):
        value = _blank_to_none(value)
        if isinstance(value, str) and "/" in value:
            return parse_birth_date(value)
        return value

    @field_validator("birth_date")
    @classmethod
    def birth_in_past(cls, value: Optional[date]) -> Optional[date]:
        if value is not None and value > date.today():
            raise ValueError("Invalid birth date")
        return value


class CustomerPublic(BaseModel):
    id: int
    full_name: str
    phone: str
    email: Optional[str] = None
    birth_date: Optional[date] = None
    notes: Optional[str] = None
    points: int
    active: bool
    created_at: datetime
    updated_at: datetime


class CustomerHistoryItem(BaseModel):
    id: int
    scheduled_time: datetime
    service: str
    final_price: float
    status: str


class CustomerMetrics(BaseModel):
    visits: int
    total_spent: float
    average_ticket: float
    last_visit: Optional[datetime] = None


class LoyaltyLevel(BaseModel):
    name: str = Field(min_length=1)
    min_points: int = Field(ge=0)
    discount: float = Field(default=0.0, ge=0, le=1)


class CustomerDetail(CustomerPublic):
    appointments: List[CustomerHistoryItem]
    metrics: CustomerMetrics
    level: Optional[LoyaltyLevel] = None


class PointsHistoryPublic(BaseModel):
    id: int
    client_id: int
    appointment_id: Optional[int] = None
    type: str
    points: int
    description: str
    created_at: datetime


class PointsRedeem(BaseModel):
    points: int = Field(gt=0)
    description: str = "Points redeemed"


# ---------------------- SERVICES ----------------------

class ServiceSortBy(str, Enum):
    name = "name"
    base_price = "base_price"
    recent = "recent"


class ServiceForm(BaseModel):
    name: str
    description: Optional[str] = None
    base_price: float = Field(ge=0)
    duration: str = DEFAULT_SERVICE_DURATION
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value

    @field_validator("description", mode="before")
    @classmethod
    def empty_is_none(cls, value):
        return _blank_to_none(value)

    @field_validator("duration")
    @classmethod
    def positive_duration(cls, value: str) -> str:
        if parse_duration(value) <= 0:
            raise ValueError("Duration must be greater than zero")
        return value


class ServiceStatusUpdate(BaseModel):
    is_active: bool


class ServicePublic(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    base_price: float
    duration: str
    duration_minutes: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


# ---------------------- BUSINESS HOURS ----------------------

class LunchBreak(BaseModel):
    start: time
    end: time

    @model_validator(mode="after")
    def start_before_end(self):
        if self.start >= self.end:
            raise ValueError("Lunch break must start before it ends")
        return self


class BusinessHoursPublic(BaseModel):
    start_time: time
    end_time: time
    days_off: List[int]
    lunch_break: Optional[LunchBreak] = None
    slot_interval: int


class BusinessHoursUpdate(BaseModel):
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    days_off: Optional[List[int]] = None   # 0=Sun, 1=Mon ... 6=Sat
    lunch_break: Optional[LunchBreak] = None
    slot_interval: Optional[int] = Field(default=None, gt=0, le=240)

    @field_validator("days_off")
    @classmethod
    def valid_days(cls, value: Optional[List[int]]) -> Optional[List[int]]:
        if value is None:
            return value
        for day in value:
            if not (0 <= day <= 6):
                raise ValueError("days_off must be integers between 0 and 6")
        if len(value) != len(set(value)):
            raise ValueError("days_off cannot contain duplicates")
        return sorted(value)


# ---------------------- APPOINTMENTS ----------------------

class AppointmentStatus(str, Enum):
    scheduled = "scheduled"
    completed = "completed"
    canceled = "canceled"
    no_show = "no_show"


class AppointmentForm(BaseModel):
    client_id: int
    service_id: int
    scheduled_time: datetime
    actual_duration: Optional[str] = None
    final_price: Optional[float] = Field(default=None, ge=0)
    discount: Optional[float] = Field(default=None, ge=0, le=1)  # 0-1 = %
    status: AppointmentStatus = AppointmentStatus.scheduled
    notes: Optional[str] = None

    @field_validator("actual_duration", "notes", mode="before")
    @classmethod
    def empty_is_none(cls, value):
        return _blank_to_none(value)

    @field_validator("actual_duration")
    @classmethod
    def valid_duration(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            parse_duration(value)
        return value

    @field_validator("scheduled_time")
    @classmethod
    def naive_local_time(cls, value: datetime) -> datetime:
        # the agenda works in the salon's local wall-clock time
        return value.replace(tzinfo=None)


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus


class AppointmentClient(BaseModel):
    full_name: str
    phone: str


class AppointmentService(BaseModel):
    name: str
    duration: str
    base_price: float


class AppointmentPublic(BaseModel):
    id: int
    client_id: int
    service_id: int
    scheduled_time: datetime
    duration_minutes: int
    actual_duration: Optional[str] = None
    final_price: float
    discount: Optional[float] = None
    status: AppointmentStatus
    notes: Optional[str] = None
    booking_link_id: Optional[int] = None
    created_at: datetime
    client: Optional[AppointmentClient] = None
    service: Optional[AppointmentService] = None


class TimeSlot(BaseModel):
    time: str
    available: bool


class AvailabilityResponse(BaseModel):
    date: date
    service_id: int
    slots: List[TimeSlot]


# ---------------------- FINANCE ----------------------

class TransactionType(str, Enum):
    income = "income"
    expense = "expense"


class TransactionCreate(BaseModel):
    description: str = Field(min_length=1)
    amount: float = Field(gt=0)
    type: TransactionType
    category: str = Field(min_length=1)
    transaction_date: date


class TransactionPublic(BaseModel):
    id: int
    description: str
    amount: float
    type: TransactionType
    category: str
    transaction_date: date
    created_at: datetime


class CategoryTotal(BaseModel):
    category: str
    total: float
    percentage: float


class FinanceStats(BaseModel):
    month: str
    total_income: float
    total_expenses: float
    net_profit: float
    monthly_projection: float
    income_by_category: List[CategoryTotal]
    expenses_by_category: List[CategoryTotal]


# ---------------------- LOYALTY ----------------------

class ServiceRule(BaseModel):
    service_id: int
    multiplier: float = Field(gt=0)


class LoyaltyConfigSchema(BaseModel):
    enabled: bool = False
    points_per_currency: float = Field(default=1.0, ge=0)
    minimum_for_points: float = Field(default=0.0, ge=0)
    service_rules: List[ServiceRule] = []
    levels: List[LoyaltyLevel] = []


class RecalculateResult(BaseModel):
    customers_updated: int
    message: str


# ---------------------- BOOKING LINKS ----------------------

class BookingLinkSortBy(str, Enum):
    name = "name"
    created_at = "created_at"


class BookingLinkCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    active: bool = True
    services: List[int] = Field(min_length=1)
    days_in_advance: int = Field(default=DEFAULT_DAYS_IN_ADVANCE, ge=1)
    redirect_url: Optional[HttpUrl] = None

    @field_validator("description", mode="before")
    @classmethod
    def empty_is_none(cls, value):
        return _blank_to_none(value)


class BookingLinkUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    active: Optional[bool] = None
    services: Optional[List[int]] = Field(default=None, min_length=1)
    days_in_advance: Optional[int] = Field(default=None, ge=1)
    redirect_url: Optional[HttpUrl] = None


class BookingLinkPublic(BaseModel):
    id: int
    name: str
    description: str
    slug: str
    active: bool
    services: List[int]
    days_in_advance: int
    redirect_url: Optional[str] = None
    views: int
    appointments: int
    created_at: datetime
    updated_at: datetime


class PublicService(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    base_price: float
    duration_minutes: int


class PublicBookingPage(BaseModel):
    name: str
    description: str
    slug: str
    days_in_advance: int
    services: List[PublicService]
    business_hours: BusinessHoursPublic


class ClientBookingForm(BaseModel):
    full_name: str = Field(min_length=1)
    phone: str
    email: Optional[EmailStr] = None
    service_id: int
    date: date
    time: str
    notes: Optional[str] = None

    @field_validator("full_name")
    @classmethod
    def name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value

    @field_validator("phone")
    @classmethod
    def phone_digits(cls, value: str) -> str:
        return _validate_phone(value)

    @field_validator("email", "notes", mode="before")
    @classmethod
    def empty_is_none(cls, value):
        return _blank_to_none(value)

    @field_validator("time")
    @classmethod
    def valid_time(cls, value: str) -> str:
        try:
            parse_hhmm(value)
        except ValueError:
            raise ValueError("Time must use the HH:MM format")
        return value


class BookingConfirmation(BaseModel):
    appointment_id: int
    scheduled_time: datetime
    service_name: str
    customer_name: str
    redirect_url: Optional[str] = None
    message: str


# ---------------------- DASHBOARD ----------------------

class TimeRange(str, Enum):
    week = "7d"
    month = "30d"
    quarter = "90d"
    year = "365d"


class DashboardKpi(BaseModel):
    title: str
    value: float
    trend: Optional[float] = None
    formatter: str = "default"


class DashboardKpis(BaseModel):
    revenue: DashboardKpi
    clients: DashboardKpi
    appointments: DashboardKpi
    loyalty_points: DashboardKpi


class RevenuePoint(BaseModel):
    date: date
    revenue: float


class ServiceShare(BaseModel):
    name: str
    value: int
    percentage: float


class RecentActivity(BaseModel):
    id: int
    client: str
    service: str
    date: datetime
    status: str


class DashboardData(BaseModel):
    kpis: DashboardKpis
    revenue_chart: List[RevenuePoint]
    services_chart: List[ServiceShare]
    recent_activities: List[RecentActivity]
    last_update: datetime


# ---------------------- NOTIFICATIONS ----------------------

class ReminderData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    client_name: str = Field(alias="clientName", min_length=1)
    service_name: str = Field(alias="serviceName", min_length=1)
    date_time: datetime = Field(alias="dateTime")


class WhatsAppRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone: str = Field(min_length=1)
    appointment_data: ReminderData = Field(alias="appointmentData")


class NotificationPublic(BaseModel):
    id: int
    appointment_id: Optional[int] = None
    phone: str
    type: str
    status: str
    message: str
    created_at: datetime
    sent_at: Optional[datetime] = None
