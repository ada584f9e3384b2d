"""System health endpoints."""

import logging
from typing import Optional

import psutil
from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from database import get_pool

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/system",
    tags=["System"]
)

class SystemHealth(BaseModel):
    """Model for system health data."""
    status: str
    boot_time: float
    cpu_usage: float
    memory_usage: float
    disk_usage: float
    active_connections: Optional[int] = None
    database_status: str

async def _database_status():
    """Ping the database, returning (status, active connection count)."""
    try:
        pool = await get_pool()
        async with pool.acquire() as conn:
            await conn.fetchval('SELECT 1')
            active_connections = await conn.fetchval(
                '''
                SELECT COUNT(*)
                FROM pg_stat_activity
                WHERE state = 'active'
                '''
            )
            return "connected", active_connections
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        return "disconnected", None

@router.get("/health")
async def get_system_health() -> SystemHealth:
    """Get system health status.

    Returns:
        SystemHealth object containing host metrics and database status
    """
    try:
        cpu_percent = psutil.cpu_percent()
        memory = psutil.virtual_memory()
        disk = psutil.disk_usage('/')

        db_status, active_connections = await _database_status()

        healthy = db_status == "connected" and cpu_percent < 80
        return SystemHealth(
            status="healthy" if healthy else "degraded",
            boot_time=psutil.boot_time(),
            cpu_usage=cpu_percent,
            memory_usage=memory.percent,
            disk_usage=disk.percent,
            active_connections=active_connections,
            database_status=db_status
        )
    except Exception as e:
        logger.error(f"Error collecting system health: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to collect system health"
        )

__all__ = ['router']
