from pydantic import BaseModel, ConfigDict, Field, constr
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class BillingCycle(str, Enum):
    MONTHLY = "Monthly"
    YEARLY = "Yearly"


class SubscriptionSchema(BaseModel):
    service_name: constr(strip_whitespace=True, min_length=1)
    price: Decimal = Field(ge=0, max_digits=18, decimal_places=2)
    billing_cycle: BillingCycle = BillingCycle.MONTHLY
    next_payment_date: date
    category: str = "Entertainment"

    model_config = ConfigDict(from_attributes=True)


class SubscriptionResponse(SubscriptionSchema):
    id: int


class DashboardSummary(BaseModel):
    total_monthly: Decimal
    yearly_projected: Decimal
    active_count: int
    due_soon_count: int
    top_subscriptions: list[SubscriptionResponse]
    upcoming_payments: list[SubscriptionResponse]


class NotificationResponse(BaseModel):
    id: int
    type: str
    title: str
    message: str
    icon: str
    priority: str
    subscription_id: Optional[int] = None
    subscription_name: Optional[str] = None
    is_read: bool
    created_at: datetime
    read_at: Optional[datetime] = None
    time_ago: str


class NotificationList(BaseModel):
    notifications: list[NotificationResponse]
    unread_count: int
    timestamp: datetime


class TickResult(BaseModel):
    created: int
    removed: int


class NotificationType(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    SUCCESS = "success"
    INFO = "info"


class NotificationPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class NotificationSchema(BaseModel):
    type: NotificationType = NotificationType.INFO
    title: constr(strip_whitespace=True, min_length=1, max_length=200)
    message: constr(strip_whitespace=True, min_length=1, max_length=500)
    icon: constr(max_length=100) = "bi-bell-fill"
    priority: NotificationPriority = NotificationPriority.MEDIUM
    subscription_id: Optional[int] = None
    is_read: bool = False


class MonthlyTrend(BaseModel):
    month: str
    month_short: str
    amount: Decimal
    subscription_count: int


class ReportSummary(BaseModel):
    total_monthly_spend: Decimal
    total_yearly_spend: Decimal
    active_count: int
    average_monthly_cost: Decimal
    highest_monthly_cost: Decimal
    lowest_monthly_cost: Decimal
    category_spending: dict[str, Decimal]
    category_counts: dict[str, int]
    top_subscriptions: list[SubscriptionResponse]
    monthly_trends: list[MonthlyTrend]
