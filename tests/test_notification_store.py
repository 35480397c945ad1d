from datetime import timedelta

from database import Notification, Subscription
from notification_store import NotificationStore
from tests.factories import FIXED_NOW, add_notification, add_subscription, naive


def _notification_for(subscription_id, title="Payment Due Today"):
    return Notification(
        type="error",
        title=title,
        message="payment is due today",
        icon="bi-calendar-x",
        priority="high",
        subscription_id=subscription_id,
    )


def test_store_available(db):
    assert NotificationStore(db).is_store_available() is True


def test_list_recent_notifications_filters_by_subscription_and_time(db):
    first = add_subscription(db, service_name="Netflix")
    second = add_subscription(db, service_name="Spotify")
    since = naive(FIXED_NOW - timedelta(hours=23))
    fresh = add_notification(
        db, created_at=naive(FIXED_NOW - timedelta(hours=1)), subscription_id=first.id
    )
    add_notification(
        db, created_at=naive(FIXED_NOW - timedelta(hours=30)), subscription_id=first.id
    )
    add_notification(
        db, created_at=naive(FIXED_NOW - timedelta(hours=1)), subscription_id=second.id
    )

    recent = NotificationStore(db).list_recent_notifications(first.id, since)

    assert [n.id for n in recent] == [fresh.id]


def test_list_notifications_filters(db):
    cutoff = naive(FIXED_NOW - timedelta(days=30))
    old_read = add_notification(
        db, created_at=naive(FIXED_NOW - timedelta(days=40)), is_read=True
    )
    add_notification(db, created_at=naive(FIXED_NOW - timedelta(days=40)))
    add_notification(db, created_at=naive(FIXED_NOW - timedelta(days=2)), is_read=True)
    store = NotificationStore(db)

    assert [n.id for n in store.list_notifications(is_read=True, older_than=cutoff)] == [
        old_read.id
    ]
    assert len(store.list_notifications()) == 3
    assert len(store.list_notifications(is_read=False)) == 1


def test_insert_notifications(db):
    subscription = add_subscription(db)
    store = NotificationStore(db)

    inserted = store.insert_notifications([_notification_for(subscription.id)])

    assert len(inserted) == 1
    assert inserted[0].id is not None
    assert db.query(Notification).count() == 1


def test_insert_nothing(db):
    assert NotificationStore(db).insert_notifications([]) == []


def test_insert_skips_subscription_deleted_mid_tick(db, session_factory):
    kept = add_subscription(db, service_name="Netflix")
    removed = add_subscription(db, service_name="Spotify")
    removed_id = removed.id

    with session_factory() as other:
        other.query(Subscription).filter(Subscription.id == removed_id).delete()
        other.commit()

    inserted = NotificationStore(db).insert_notifications(
        [_notification_for(kept.id), _notification_for(removed_id)]
    )

    assert [n.subscription_id for n in inserted] == [kept.id]
    assert [n.subscription_id for n in db.query(Notification).all()] == [kept.id]


def test_delete_notifications_counts_rows_removed(db, session_factory):
    first = add_notification(db, created_at=naive(FIXED_NOW), is_read=True)
    second = add_notification(db, created_at=naive(FIXED_NOW), is_read=True)
    second_id = second.id

    # already removed by a user action before the sweep got to it
    with session_factory() as other:
        other.query(Notification).filter(Notification.id == second_id).delete()
        other.commit()

    removed = NotificationStore(db).delete_notifications([first, second])

    assert removed == 1
    assert db.query(Notification).count() == 0


def test_deleting_subscription_keeps_notifications(db):
    subscription = add_subscription(db)
    notification = add_notification(
        db, created_at=naive(FIXED_NOW), subscription_id=subscription.id
    )
    notification_id = notification.id

    db.delete(subscription)
    db.commit()

    remaining = db.query(Notification).filter(Notification.id == notification_id).one()
    assert remaining.subscription_id is None
