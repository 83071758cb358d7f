"""Cache Redis para políticas de reserva e disponibilidade de horários.

Fornece funções para cachear dados com TTL configurável e invalidação.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional
from uuid import UUID

import redis

logger = logging.getLogger(__name__)


# Prefixos para chaves de cache
POLICY_CACHE_PREFIX = "policy:org:"
AVAILABILITY_CACHE_PREFIX = "availability:org:"


def create_redis_cache(redis_url: Optional[str]) -> Optional[redis.Redis]:
    """Cria cliente Redis para cache.

    Args:
        redis_url: URL de conexão Redis (ou None se não configurado)

    Returns:
        Cliente Redis ou None se não configurado
    """
    if not redis_url or not redis_url.strip():
        return None

    try:
        return redis.Redis.from_url(redis_url, decode_responses=True)
    except ValueError:
        logger.warning("REDIS_URL inválida para cache: %s", redis_url)
        return None


def _get_policy_cache_key(org_id: UUID) -> str:
    return f"{POLICY_CACHE_PREFIX}{org_id}"


def _get_availability_cache_key(
    org_id: UUID,
    date_str: str,
    staff_id: Optional[UUID],
    duration_minutes: int,
) -> str:
    staff_part = staff_id or "any"
    return f"{AVAILABILITY_CACHE_PREFIX}{org_id}:{date_str}:{staff_part}:{duration_minutes}"


def _get_json(cache: Optional[redis.Redis], key: str) -> Optional[Dict[str, Any]]:
    if cache is None:
        return None
    try:
        cached_data = cache.get(key)
    except redis.RedisError:
        logger.warning("Falha ao ler cache '%s'", key, exc_info=True)
        return None
    if cached_data is None:
        return None
    try:
        return json.loads(cached_data)
    except (TypeError, ValueError):
        return None


def _set_json(cache: Optional[redis.Redis], key: str, value: Dict[str, Any], ttl: int) -> bool:
    if cache is None:
        return False
    try:
        cache.set(key, json.dumps(value, default=str), ex=ttl)
        return True
    except redis.RedisError:
        logger.warning("Falha ao gravar cache '%s'", key, exc_info=True)
        return False


def get_cached_policy(cache: Optional[redis.Redis], org_id: UUID) -> Optional[Dict[str, Any]]:
    """Recupera a política de reservas de um org do cache."""
    return _get_json(cache, _get_policy_cache_key(org_id))


def set_cached_policy(
    cache: Optional[redis.Redis],
    org_id: UUID,
    policy: Dict[str, Any],
    ttl: int = 300,
) -> bool:
    """Armazena a política de reservas no cache.

    Args:
        cache: Cliente Redis (ou None se não disponível)
        org_id: ID do org (loja)
        policy: Dicionário com a política
        ttl: Time to live em segundos (padrão: 300 = 5 minutos)

    Returns:
        True se armazenado com sucesso, False caso contrário
    """
    return _set_json(cache, _get_policy_cache_key(org_id), policy, ttl)


def invalidate_policy_cache(cache: Optional[redis.Redis], org_id: UUID) -> bool:
    if cache is None:
        return False
    try:
        cache.delete(_get_policy_cache_key(org_id))
        return True
    except redis.RedisError:
        logger.warning("Falha ao invalidar política do org %s", org_id, exc_info=True)
        return False


def get_cached_availability(
    cache: Optional[redis.Redis],
    org_id: UUID,
    date_str: str,
    staff_id: Optional[UUID],
    duration_minutes: int,
) -> Optional[Dict[str, Any]]:
    """Recupera disponibilidade calculada do cache.

    Args:
        cache: Cliente Redis (ou None se não disponível)
        org_id: ID do org
        date_str: Data no formato YYYY-MM-DD
        staff_id: Staff específico ou None para o org inteiro
        duration_minutes: Duração do atendimento

    Returns:
        Dicionário com disponibilidade ou None se não encontrado
    """
    return _get_json(cache, _get_availability_cache_key(org_id, date_str, staff_id, duration_minutes))


def set_cached_availability(
    cache: Optional[redis.Redis],
    org_id: UUID,
    date_str: str,
    staff_id: Optional[UUID],
    duration_minutes: int,
    availability: Dict[str, Any],
    ttl: int = 60,
) -> bool:
    key = _get_availability_cache_key(org_id, date_str, staff_id, duration_minutes)
    return _set_json(cache, key, availability, ttl)


def invalidate_availability_cache(
    cache: Optional[redis.Redis],
    org_id: UUID,
    date_str: Optional[str] = None,
) -> bool:
    """Invalida cache de disponibilidade de um org.

    Args:
        cache: Cliente Redis (ou None se não disponível)
        org_id: ID do org
        date_str: Data específica (YYYY-MM-DD) ou None para invalidar todas

    Returns:
        True se invalidado com sucesso, False caso contrário
    """
    if cache is None:
        return False

    if date_str:
        pattern = f"{AVAILABILITY_CACHE_PREFIX}{org_id}:{date_str}:*"
    else:
        pattern = f"{AVAILABILITY_CACHE_PREFIX}{org_id}:*"
    try:
        keys = list(cache.scan_iter(match=pattern))
        if keys:
            cache.delete(*keys)
        return True
    except redis.RedisError:
        logger.warning("Falha ao invalidar disponibilidade do org %s", org_id, exc_info=True)
        return False


def get_cache_ttl(ttl_type: str, default: int = 300) -> int:
    """Obtém TTL de cache de variável de ambiente.

    Args:
        ttl_type: Tipo de TTL ('policy' ou 'availability')
        default: Valor padrão em segundos

    Returns:
        TTL em segundos
    """
    env_var = f"CACHE_TTL_{ttl_type.upper()}"
    ttl_str = os.getenv(env_var)

    if ttl_str:
        try:
            return int(ttl_str)
        except ValueError:
            logger.warning("%s inválido (%s), usando %s", env_var, ttl_str, default)

    return default
