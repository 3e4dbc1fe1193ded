"""
Health endpoints.

Lightweight liveness/readiness checks without exposing secrets.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import inspect

from kareersakhi.core.database import check_connection, get_engine, metadata

logger = logging.getLogger("kareersakhi")

router = APIRouter(tags=["health"])


@router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@router.get("/readyz")
def readyz():
    """Readiness check: DB connectivity + required tables."""
    computed_at = datetime.now(timezone.utc).isoformat()
    if not check_connection():
        return JSONResponse(
            status_code=503,
            content={"ok": False, "db": {"connected": False}, "computed_at": computed_at},
        )

    present = set(inspect(get_engine()).get_table_names())
    required = {table.name for table in metadata.sorted_tables}
    missing = sorted(required - present)
    ok = not missing
    if missing:
        logger.warning("readyz.missing_tables", extra={"missing": ",".join(missing)})
    return JSONResponse(
        status_code=200 if ok else 503,
        content={
            "ok": ok,
            "db": {"connected": True, "tables_present": sorted(present & required), "tables_missing": missing},
            "computed_at": computed_at,
        },
    )
