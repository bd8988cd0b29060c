"""
Redis/Valkey client configuration.

- All configuration from centralized settings (config.py)
- Never use os.getenv directly
- Created on first use; only the shared login rate-limit store needs it
"""
from __future__ import annotations
from functools import lru_cache

import redis

from petpro.core.config import settings


@lru_cache(maxsize=1)
def get_redis() -> redis.Redis:
    ssl = settings.REDIS_SSL.lower() in ("1", "true", "yes")
    return redis.Redis(
        host=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        password=settings.REDIS_PASSWORD,
        ssl=ssl,
        ssl_cert_reqs=None,  # managed Valkey uses TLS without client cert
        decode_responses=True,
        socket_keepalive=True,
    )
