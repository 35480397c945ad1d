"""
Payment notification generation and retention.

Each tick opens one session, generates reminders for upcoming and overdue
payments, then deletes read notifications past the retention window.
"""
import logging
from collections import namedtuple
from datetime import datetime, timezone

from config import Settings, settings as default_settings
from database import Notification
from notification_store import NotificationStore

logger = logging.getLogger(__name__)

PaymentRule = namedtuple(
    "PaymentRule", ["matches", "type", "priority", "title", "icon", "message"]
)

# Evaluated in order, first match wins
PAYMENT_RULES = [
    PaymentRule(
        matches=lambda days: days < 0,
        type="error",
        priority="high",
        title="Payment Overdue",
        icon="bi-exclamation-circle-fill",
        message="{name} payment is overdue! Due date was {due:%b %d}",
    ),
    PaymentRule(
        matches=lambda days: days == 0,
        type="error",
        priority="high",
        title="Payment Due Today",
        icon="bi-calendar-x",
        message="{name} payment of {price} is due today",
    ),
    PaymentRule(
        matches=lambda days: days == 1,
        type="warning",
        priority="high",
        title="Payment Tomorrow",
        icon="bi-calendar-event",
        message="{name} payment of {price} due tomorrow",
    ),
    PaymentRule(
        matches=lambda days: days == 3,
        type="warning",
        priority="medium",
        title="Payment Coming Soon",
        icon="bi-bell",
        message="{name} payment of {price} due in 3 days",
    ),
    PaymentRule(
        matches=lambda days: days == 7,
        type="info",
        priority="low",
        title="Payment Next Week",
        icon="bi-clock-history",
        message="{name} payment of {price} due in 1 week",
    ),
]


def match_payment_rule(days_until):
    for rule in PAYMENT_RULES:
        if rule.matches(days_until):
            return rule
    return None


def format_price(price, currency_symbol=""):
    return f"{currency_symbol}{price:,.2f}"


def build_notification(subscription, rule, currency_symbol="", created_at=None):
    message = rule.message.format(
        name=subscription.service_name,
        price=format_price(subscription.price, currency_symbol),
        due=subscription.next_payment_date,
    )
    notification = Notification(
        type=rule.type,
        title=rule.title,
        message=message,
        icon=rule.icon,
        priority=rule.priority,
        subscription_id=subscription.id,
        is_read=False,
    )
    if created_at is not None:
        notification.created_at = created_at
    return notification


def _utc_clock():
    return datetime.now(timezone.utc)


class NotificationWorker:
    """
    Runs the generate-then-sweep sequence against a fresh session per tick.

    Args:
        session_factory: Callable returning a SQLAlchemy session usable as a
            context manager (e.g. ``SessionLocal``).
        settings: Application settings; windows and timezone are read from it.
        clock: Callable returning the current timezone-aware datetime.
    """

    def __init__(self, session_factory, settings: Settings = None, clock=None):
        self._session_factory = session_factory
        self._settings = settings or default_settings
        self._clock = clock or _utc_clock

    def now(self) -> datetime:
        """Current instant as naive UTC, matching stored timestamps."""
        return self._clock().astimezone(timezone.utc).replace(tzinfo=None)

    def today(self):
        """Civil date in the configured timezone for the same instant."""
        return self._clock().astimezone(self._settings.timezone).date()

    def generate_payment_notifications(self, store: NotificationStore):
        if not store.is_store_available():
            logger.warning("Database not available for notification generation")
            return []

        today = self.today()
        now = self.now()
        since = now - self._settings.dedup_window
        per_rule = self._settings.NOTIFICATION_DEDUP_PER_RULE

        notifications_to_add = []
        for subscription in store.list_subscriptions():
            days_until = (subscription.next_payment_date - today).days
            rule = match_payment_rule(days_until)
            if rule is None:
                continue

            recent = store.list_recent_notifications(subscription.id, since)
            if per_rule:
                recent = [n for n in recent if n.title == rule.title]
            if recent:
                continue

            notifications_to_add.append(
                build_notification(
                    subscription, rule, self._settings.CURRENCY_SYMBOL, created_at=now
                )
            )

        if not notifications_to_add:
            return []

        created = store.insert_notifications(notifications_to_add)
        logger.info(f"Generated {len(created)} new notifications")
        return created

    def cleanup_old_notifications(self, store: NotificationStore) -> int:
        if not store.is_store_available():
            logger.warning("Database not available for notification cleanup")
            return 0

        cutoff = self.now() - self._settings.retention_window
        stale = store.list_notifications(is_read=True, older_than=cutoff)
        if not stale:
            return 0

        removed = store.delete_notifications(stale)
        logger.info(f"Cleaned up {removed} old notifications")
        return removed

    def run_once(self):
        """One tick. Returns ``(created_count, removed_count)``."""
        with self._session_factory() as db:
            store = NotificationStore(db)
            created = self.generate_payment_notifications(store)
            removed = self.cleanup_old_notifications(store)
        return len(created), removed
