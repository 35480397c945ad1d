from sqlalchemy import (
    create_engine,
    event,
    Column,
    Integer,
    String,
    Numeric,
    Date,
    DateTime,
    ForeignKey,
    Boolean,
)
from sqlalchemy.orm import sessionmaker, declarative_base, relationship
from datetime import datetime, timezone

from config import settings

Base = declarative_base()


def utcnow():
    """Naive UTC timestamp, the form stored in every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def enable_sqlite_foreign_keys(engine):
    # SQLite ignores ON DELETE SET NULL unless the pragma is on per connection
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_db_engine(url):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True)
    enable_sqlite_foreign_keys(engine)
    return engine


engine = create_db_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Subscription(Base):
    __tablename__ = "subscriptions"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    service_name = Column(String, nullable=False)
    price = Column(Numeric(18, 2), nullable=False)
    billing_cycle = Column(String, nullable=False, default="Monthly")
    next_payment_date = Column(Date, nullable=False)
    category = Column(String, default="Entertainment")

    notifications = relationship(
        "Notification", back_populates="subscription", passive_deletes=True
    )


class Notification(Base):
    __tablename__ = "notifications"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    type = Column(String(100), nullable=False, default="info")
    title = Column(String(200), nullable=False)
    message = Column(String(500), nullable=False)
    icon = Column(String(100), default="bi-bell-fill")
    priority = Column(String(50), default="medium")
    subscription_id = Column(
        Integer,
        ForeignKey("subscriptions.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    is_read = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    read_at = Column(DateTime, nullable=True)

    subscription = relationship("Subscription", back_populates="notifications")

    def days_old(self, now=None):
        now = now or utcnow()
        return (now - self.created_at).days

    def time_ago(self, now=None):
        span = (now or utcnow()) - self.created_at
        seconds = span.total_seconds()
        if seconds < 60:
            return "Just now"
        if seconds < 3600:
            return f"{int(seconds // 60)}m ago"
        if seconds < 86400:
            return f"{int(seconds // 3600)}h ago"
        if span.days < 7:
            return f"{span.days}d ago"
        return self.created_at.strftime("%b %d, %Y")


def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
