"""Health check: database connectivity and email configuration."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api_users.core.config import get_settings
from api_users.core.database import check_db_connected, get_db
from api_users.schemas.health import HealthResponse
from api_users.services.notifications import is_email_configured

router = APIRouter()


@router.get("/", response_model=HealthResponse)
def get_health(db: Annotated[Session, Depends(get_db)]) -> HealthResponse:
    """
    Report "degraded" when the database is unreachable; accounts cannot register or log in then.
    Missing email configuration does not degrade status: requests succeed but no emails go out.
    """
    settings = get_settings()
    db_ok = check_db_connected(db)
    return HealthResponse(
        status="ok" if db_ok else "degraded",
        environment=settings.APP_ENV,
        database="connected" if db_ok else "disconnected",
        email="configured" if is_email_configured(settings) else "not_configured",
    )
