"""Health check utilities for FastAPI services.

Provides endpoints /health and /ready for Docker/Kubernetes monitoring.
The reservation service checks both the operational store and the
analytics sink, plus Redis when configured.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Mapping, Optional, Union

import redis
import redis.asyncio as aioredis
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError


RedisTarget = Union[redis.Redis, aioredis.Redis, str]


def check_database_health(engine: Optional[Engine]) -> bool:
    """Verifica se o banco de dados está disponível.

    Args:
        engine: SQLAlchemy engine para conexão com banco

    Returns:
        True se banco está disponível, False caso contrário
    """
    if engine is None:
        return False

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
        return True
    except SQLAlchemyError:
        return False


async def check_redis_health(redis_client: Optional[RedisTarget] = None) -> Optional[bool]:
    """Verifica se o Redis está disponível.

    Returns:
        True se Redis está disponível,
        False se Redis está configurado mas indisponível,
        None se Redis não está configurado
    """
    if redis_client is None or (isinstance(redis_client, str) and not redis_client.strip()):
        return None

    try:
        if isinstance(redis_client, str):
            temp_client = aioredis.from_url(redis_client)
            try:
                await asyncio.wait_for(temp_client.ping(), timeout=1.0)
                return True
            finally:
                await temp_client.aclose()

        if isinstance(redis_client, redis.Redis):
            redis_client.ping()
            return True

        await asyncio.wait_for(redis_client.ping(), timeout=1.0)
        return True
    except Exception:
        return False


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def create_health_router(
    service_name: str,
    database_engines: Optional[Mapping[str, Engine]] = None,
    redis_client: Optional[RedisTarget] = None,
) -> APIRouter:
    """Cria router FastAPI com endpoints /health e /ready.

    Args:
        service_name: Nome do serviço (ex: "reservation")
        database_engines: Engines nomeados (ex: {"database": ..., "analytics": ...})
        redis_client: Cliente Redis ou URL para verificação (opcional)
    """
    router = APIRouter(tags=["Health"])
    engines = dict(database_engines or {})

    @router.get("/health", status_code=status.HTTP_200_OK)
    def health():
        """Sempre retorna 200 OK se o serviço está rodando; não verifica dependências."""
        return {
            "status": "ok",
            "service": service_name,
            "timestamp": _timestamp(),
        }

    @router.get("/ready", status_code=status.HTTP_200_OK)
    async def ready():
        """Retorna 200 se todas as dependências respondem, 503 caso contrário."""
        checks: dict[str, Optional[bool]] = {}
        all_healthy = bool(engines)

        for name, engine in engines.items():
            healthy = await asyncio.to_thread(check_database_health, engine)
            checks[name] = healthy
            all_healthy = all_healthy and healthy

        redis_healthy = await check_redis_health(redis_client)
        checks["redis"] = redis_healthy
        if redis_healthy is False:  # False significa configurado mas indisponível
            all_healthy = False

        response_data = {
            "status": "ready" if all_healthy else "not_ready",
            "service": service_name,
            "timestamp": _timestamp(),
            "checks": checks,
        }

        return JSONResponse(
            content=response_data,
            status_code=status.HTTP_200_OK if all_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    return router
