# fleet_rental/routers/health.py
"""
System health check endpoint.
Returns status of backend + journal DB + entity API reachability.
"""

import requests
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from fleet_rental.database import get_db
from fleet_rental.config import settings
from datetime import datetime

router = APIRouter()


@router.get("/health", summary="System health check")
def health_check(db: Session = Depends(get_db)):
    """
    Returns:
    - Backend status
    - Journal database connectivity
    - Entity API reachability (GET /health/)
    """
    result = {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "backend": "ok",
        "database": "unknown",
        "entity_api": "unknown",
    }

    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except Exception as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    headers = {"Authorization": f"Bearer {settings.ENTITY_API_TOKEN}"} if settings.ENTITY_API_TOKEN else {}
    try:
        resp = requests.get(f"{settings.ENTITY_API_BASE_URL.rstrip('/')}/health/", headers=headers, timeout=5)
        result["entity_api"] = "ok" if resp.status_code == 200 else f"http_{resp.status_code}"
        if resp.status_code != 200:
            result["status"] = "degraded"
    except requests.exceptions.ConnectionError:
        result["entity_api"] = "unreachable"
        result["status"] = "degraded"
    except requests.exceptions.RequestException as e:
        result["entity_api"] = f"error: {str(e)}"
        result["status"] = "degraded"

    return result
