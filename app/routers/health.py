# app/routers/health.py
"""
System health check endpoint.
Returns status of backend + both databases + provider reachability.
"""

import requests
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from app.database import get_db, StatusSessionLocal
from app.config import settings
from app.services.provider_client import LOGIN_PATH
from datetime import datetime

router = APIRouter()


@router.get("/health", summary="System health check")
def health_check(db: Session = Depends(get_db)):
    """
    Returns:
    - Backend status
    - Event store connectivity (required — failure marks status degraded)
    - Status store connectivity (optional — failure only hides refurbishment data)
    - Provider login page reachability
    """
    result = {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "backend": "ok",
        "database": "unknown",
        "status_database": "unknown",
        "provider": "unknown",
    }

    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except Exception as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    status_db = StatusSessionLocal()
    try:
        status_db.execute(text("SELECT 1"))
        result["status_database"] = "ok"
    except Exception as e:
        result["status_database"] = f"error: {str(e)}"
    finally:
        status_db.close()

    try:
        resp = requests.get(
            f"{settings.PROVIDER_BASE_URL.rstrip('/')}{LOGIN_PATH}",
            verify=settings.PROVIDER_VERIFY_SSL,
            timeout=5,
        )
        result["provider"] = "ok" if resp.status_code == 200 else f"http_{resp.status_code}"
    except requests.exceptions.ConnectionError:
        result["provider"] = "unreachable"
        result["status"] = "degraded"
    except Exception as e:
        result["provider"] = f"error: {str(e)}"

    return result
