from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import case
from sqlalchemy.orm import Session, joinedload
from database import get_db, utcnow, Subscription, Notification
from schemas import (
    SubscriptionSchema,
    SubscriptionResponse,
    DashboardSummary,
    NotificationSchema,
    NotificationResponse,
    NotificationList,
    ReportSummary,
    TickResult,
)
from config import settings
from notification_store import NotificationStore
from reports import build_spending_report
from datetime import datetime, timedelta
from decimal import Decimal
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

RECENT_NOTIFICATION_DAYS = 7
MAX_LISTED_NOTIFICATIONS = 50


def get_notification_scheduler(request: Request):
    return request.app.state.notification_scheduler


def _today():
    return datetime.now(settings.timezone).date()


def _get_subscription_or_404(db, subscription_id):
    subscription = (
        db.query(Subscription).filter(Subscription.id == subscription_id).first()
    )
    if not subscription:
        raise HTTPException(status_code=404, detail="Subscription not found")
    return subscription


def _get_notification_or_404(db, notification_id):
    notification = (
        db.query(Notification).filter(Notification.id == notification_id).first()
    )
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification


def _apply_notification(db, db_notification, notification):
    if notification.subscription_id is not None:
        exists = (
            db.query(Subscription.id)
            .filter(Subscription.id == notification.subscription_id)
            .first()
        )
        if not exists:
            raise HTTPException(status_code=400, detail="Subscription not found")

    db_notification.type = notification.type.value
    db_notification.title = notification.title
    db_notification.message = notification.message
    db_notification.icon = notification.icon
    db_notification.priority = notification.priority.value
    db_notification.subscription_id = notification.subscription_id
    if notification.is_read and not db_notification.is_read:
        db_notification.read_at = utcnow()
    elif not notification.is_read:
        db_notification.read_at = None
    db_notification.is_read = notification.is_read


def _notification_response(n, now):
    return NotificationResponse(
        id=n.id,
        type=n.type,
        title=n.title,
        message=n.message,
        icon=n.icon,
        priority=n.priority,
        subscription_id=n.subscription_id,
        subscription_name=n.subscription.service_name if n.subscription else None,
        is_read=n.is_read,
        created_at=n.created_at,
        read_at=n.read_at,
        time_ago=n.time_ago(now),
    )


# endpoints for subscriptions
@router.post(
    "/subscriptions",
    response_model=SubscriptionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_subscription(
    subscription: SubscriptionSchema, db: Session = Depends(get_db)
):
    db_subscription = Subscription(
        service_name=subscription.service_name,
        price=subscription.price,
        billing_cycle=subscription.billing_cycle.value,
        next_payment_date=subscription.next_payment_date,
        category=subscription.category,
    )
    db.add(db_subscription)
    db.commit()
    db.refresh(db_subscription)
    return db_subscription


@router.get("/subscriptions", response_model=list[SubscriptionResponse])
async def get_subscriptions(db: Session = Depends(get_db)):
    return db.query(Subscription).order_by(Subscription.next_payment_date).all()


@router.get("/subscriptions/{subscription_id}", response_model=SubscriptionResponse)
async def get_subscription(subscription_id: int, db: Session = Depends(get_db)):
    return _get_subscription_or_404(db, subscription_id)


@router.put("/subscriptions/{subscription_id}", response_model=SubscriptionResponse)
async def update_subscription(
    subscription_id: int,
    subscription: SubscriptionSchema,
    db: Session = Depends(get_db),
):
    db_subscription = _get_subscription_or_404(db, subscription_id)
    db_subscription.service_name = subscription.service_name
    db_subscription.price = subscription.price
    db_subscription.billing_cycle = subscription.billing_cycle.value
    db_subscription.next_payment_date = subscription.next_payment_date
    db_subscription.category = subscription.category
    db.commit()
    db.refresh(db_subscription)
    return db_subscription


@router.delete("/subscriptions/{subscription_id}")
async def delete_subscription(subscription_id: int, db: Session = Depends(get_db)):
    db_subscription = _get_subscription_or_404(db, subscription_id)
    db.delete(db_subscription)
    db.commit()
    return {"message": "Subscription deleted successfully"}


@router.get("/dashboard/summary", response_model=DashboardSummary)
async def get_dashboard_summary(db: Session = Depends(get_db)):
    subscriptions = (
        db.query(Subscription).order_by(Subscription.next_payment_date).all()
    )
    today = _today()

    total_monthly = sum(
        (s.price for s in subscriptions if s.billing_cycle == "Monthly"), Decimal("0")
    )
    yearly_total = sum(
        (s.price for s in subscriptions if s.billing_cycle == "Yearly"), Decimal("0")
    )

    def due_within(subscription, days):
        return 0 <= (subscription.next_payment_date - today).days <= days

    return {
        "total_monthly": total_monthly,
        "yearly_projected": total_monthly * 12 + yearly_total,
        "active_count": len(subscriptions),
        "due_soon_count": sum(1 for s in subscriptions if due_within(s, 5)),
        "top_subscriptions": sorted(
            subscriptions, key=lambda s: s.price, reverse=True
        )[:5],
        "upcoming_payments": [s for s in subscriptions if due_within(s, 7)][:5],
    }


@router.get("/reports/summary", response_model=ReportSummary)
async def get_report_summary(db: Session = Depends(get_db)):
    subscriptions = db.query(Subscription).all()
    return build_spending_report(subscriptions, _today())


# endpoints for notifications
@router.get("/notifications", response_model=NotificationList)
async def get_notifications(db: Session = Depends(get_db)):
    if not NotificationStore(db).is_store_available():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not available",
        )

    now = utcnow()
    cutoff = now - timedelta(days=RECENT_NOTIFICATION_DAYS)
    priority_rank = case(
        {"high": 0, "medium": 1}, value=Notification.priority, else_=2
    )
    notifications = (
        db.query(Notification)
        .options(joinedload(Notification.subscription))
        .filter((Notification.is_read == False) | (Notification.created_at > cutoff))
        .order_by(priority_rank, Notification.created_at.desc())
        .limit(MAX_LISTED_NOTIFICATIONS)
        .all()
    )

    items = [_notification_response(n, now) for n in notifications]
    unread_count = sum(1 for n in items if not n.is_read)
    logger.info(f"Returning {len(items)} notifications ({unread_count} unread)")

    return NotificationList(notifications=items, unread_count=unread_count, timestamp=now)


@router.post("/notifications/read-all")
async def mark_all_notifications_read(db: Session = Depends(get_db)):
    unread = db.query(Notification).filter(Notification.is_read == False).all()
    now = utcnow()
    for notification in unread:
        notification.is_read = True
        notification.read_at = now
    db.commit()
    return {"count": len(unread)}


@router.post("/notifications/run", response_model=TickResult)
def run_notification_tick(notification_scheduler=Depends(get_notification_scheduler)):
    # waits for any scheduled tick in progress
    created, removed = notification_scheduler.run_now()
    return TickResult(created=created, removed=removed)


@router.post(
    "/notifications",
    response_model=NotificationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_notification(
    notification: NotificationSchema, db: Session = Depends(get_db)
):
    db_notification = Notification(is_read=False)
    _apply_notification(db, db_notification, notification)
    db.add(db_notification)
    db.commit()
    db.refresh(db_notification)
    return _notification_response(db_notification, utcnow())


@router.put("/notifications/{notification_id}", response_model=NotificationResponse)
async def update_notification(
    notification_id: int,
    notification: NotificationSchema,
    db: Session = Depends(get_db),
):
    db_notification = _get_notification_or_404(db, notification_id)
    _apply_notification(db, db_notification, notification)
    db.commit()
    db.refresh(db_notification)
    return _notification_response(db_notification, utcnow())


@router.post("/notifications/{notification_id}/read")
async def mark_notification_read(notification_id: int, db: Session = Depends(get_db)):
    notification = _get_notification_or_404(db, notification_id)
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = utcnow()
        db.commit()
    return {"id": notification.id, "read_at": notification.read_at}


@router.delete("/notifications/{notification_id}")
async def delete_notification(notification_id: int, db: Session = Depends(get_db)):
    notification = _get_notification_or_404(db, notification_id)
    db.delete(notification)
    db.commit()
    return {"id": notification_id}


@router.delete("/notifications")
async def clear_notifications(db: Session = Depends(get_db)):
    count = db.query(Notification).delete(synchronize_session=False)
    db.commit()
    return {"count": count}
