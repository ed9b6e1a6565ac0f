"""
Health check endpoint.

The database and the storage credentials are required to issue and confirm
uploads, so either one failing makes the service unhealthy (503). Redis only
carries the expiry sweep; when it is unreachable uploads keep working and the
service reports itself as degraded.
"""
import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from direct_upload.api.dependencies import get_storage
from direct_upload.config import settings
from direct_upload.database import get_db
from direct_upload.storage.s3_client import S3Client

logger = logging.getLogger(__name__)

router = APIRouter()


async def check_sweeper_broker() -> str:
    """Ping the Celery broker used by the expiry sweep."""
    client = aioredis.from_url(settings.redis_url, socket_connect_timeout=1)
    try:
        await client.ping()
        return "connected"
    except (RedisError, OSError) as e:
        logger.warning(f"Sweeper broker unreachable: {e}")
        return f"error: {e}"
    finally:
        await client.aclose()


@router.get("")
async def health_check(
    db: AsyncSession = Depends(get_db),
    storage: S3Client = Depends(get_storage),
):
    """
    Report database, storage and sweeper broker status.

    Returns 200 for ``healthy`` and ``degraded``, 503 for ``unhealthy``.
    """
    checks = {}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "connected"
    except SQLAlchemyError as e:
        logger.error(f"Health check database failure: {e}")
        checks["database"] = f"error: {e}"

    checks["storage"] = "configured" if storage.is_configured else "not configured"
    checks["sweeper_broker"] = await check_sweeper_broker()

    if checks["database"] != "connected" or checks["storage"] != "configured":
        status = "unhealthy"
    elif checks["sweeper_broker"] != "connected":
        status = "degraded"
    else:
        status = "healthy"

    return JSONResponse(
        status_code=503 if status == "unhealthy" else 200,
        content={"status": status, **checks},
    )
