import logging

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from database import Notification, Subscription

logger = logging.getLogger(__name__)


class NotificationStore:
    """Persistence operations the notification worker needs, over one session."""

    def __init__(self, db: Session):
        self.db = db

    def is_store_available(self) -> bool:
        try:
            self.db.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.warning(f"Database connectivity check failed: {e}")
            self.db.rollback()
            return False
        return True

    def list_subscriptions(self):
        return self.db.query(Subscription).order_by(Subscription.id).all()

    def list_recent_notifications(self, subscription_id, since):
        return (
            self.db.query(Notification)
            .filter(
                Notification.subscription_id == subscription_id,
                Notification.created_at > since,
            )
            .all()
        )

    def list_notifications(self, is_read=None, older_than=None):
        query = self.db.query(Notification)
        if is_read is not None:
            query = query.filter(Notification.is_read == is_read)
        if older_than is not None:
            query = query.filter(Notification.created_at < older_than)
        return query.all()

    def insert_notifications(self, notifications):
        if not notifications:
            return []

        self.db.add_all(notifications)
        try:
            self.db.commit()
            return notifications
        except IntegrityError:
            self.db.rollback()

        # A subscription was deleted while the batch was being built
        referenced = {
            n.subscription_id for n in notifications if n.subscription_id is not None
        }
        existing = {
            row.id
            for row in self.db.query(Subscription.id).filter(
                Subscription.id.in_(referenced)
            )
        }
        kept = [
            n
            for n in notifications
            if n.subscription_id is None or n.subscription_id in existing
        ]
        logger.warning(
            f"Dropped {len(notifications) - len(kept)} notifications for deleted subscriptions"
        )
        for notification in kept:
            notification.id = None
        self.db.add_all(kept)
        self.db.commit()
        return kept

    def delete_notifications(self, notifications) -> int:
        ids = [n.id for n in notifications]
        if not ids:
            return 0
        deleted = (
            self.db.query(Notification)
            .filter(Notification.id.in_(ids))
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return deleted
