"""
Liveness and readiness probes.
"""
from fastapi import APIRouter

from bookshare.config import get_settings
from bookshare.database.connections import get_mongo_client

router = APIRouter(tags=["Health"])


@router.get("/health", summary="Liveness probe")
async def health_check():
    """Returns 200 whenever the process is serving requests."""
    return {"status": "healthy"}


@router.get("/health/ready", summary="Readiness probe")
async def readiness_check():
    """
    Check that MongoDB answers and can run the transactions the services use.

    Multi-document transactions need a replica set, so a standalone server
    is reported as degraded unless transactions are switched off.
    """
    settings = get_settings()
    checks = {"api": "healthy", "mongodb": "unknown", "transactions": "disabled"}

    try:
        client = await get_mongo_client()
        hello = await client.admin.command("hello")
        checks["mongodb"] = "healthy"
        if settings.mongo_transactions:
            checks["transactions"] = (
                "healthy" if hello.get("setName") else "unhealthy: server is not a replica set member"
            )
    except Exception as e:
        checks["mongodb"] = f"unhealthy: {e}"
        if settings.mongo_transactions:
            checks["transactions"] = "unknown"

    degraded = any(v.startswith("unhealthy") or v == "unknown" for v in checks.values())
    return {
        "status": "degraded" if degraded else "healthy",
        "database": settings.mongo_db_name,
        "checks": checks,
    }
