import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db import get_db

router = APIRouter(tags=["Utilities"], prefix="/util")
logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    status: str = 'ok'
    timestamp: datetime
    database: str


@router.get("/health", response_model=HealthResponse)
def health(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        database = "connected"
    except SQLAlchemyError as e:
        logger.error(f"Health check could not reach the database: {e}")
        database = "disconnected"

    return HealthResponse(
        status="ok" if database == "connected" else "degraded",
        timestamp=datetime.now(UTC),
        database=database,
    )
