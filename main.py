# main.py (notification scheduler runs alongside the API)
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI
from sqlalchemy.orm import Session
from router import router, get_notification_scheduler
from config import settings
from database import SessionLocal, get_db, init_db
from notification_service import NotificationWorker
from notification_store import NotificationStore
from scheduler import NotificationScheduler
import logging
import uvicorn

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

worker = NotificationWorker(SessionLocal, settings)
notification_scheduler = NotificationScheduler(
    worker,
    interval=settings.notification_interval,
    backoff=settings.notification_backoff,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if settings.NOTIFICATION_SCHEDULER_ENABLED:
        notification_scheduler.start()
    yield
    if settings.NOTIFICATION_SCHEDULER_ENABLED:
        notification_scheduler.stop()


app = FastAPI(title="Subscription Tracker API", lifespan=lifespan)
app.state.notification_scheduler = notification_scheduler

app.include_router(router, prefix="/api", tags=["subscriptions"])


@app.get("/")
def home():
    return {"message": "Welcome to Subscription Tracker API"}


@app.get("/health")
def health(
    db: Session = Depends(get_db),
    notification_scheduler=Depends(get_notification_scheduler),
):
    database_available = NotificationStore(db).is_store_available()
    return {
        "database": "available" if database_available else "unavailable",
        "scheduler": notification_scheduler.state.value,
    }


if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=8000)
