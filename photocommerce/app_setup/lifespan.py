"""
Lifespan FastAPI: initialisation/arrêt des ressources partagées.
- Construit les services du cœur (ledger, vérificateurs, réconciliation) dans app.state.
- Initialise FastAPILimiter (Redis) avec options de test (fakeredis).
- Variables d'environnement supportées:
  - DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS=1: désactive complètement (tests)
  - USE_FAKE_REDIS_FOR_TESTS=1: utilise fakeredis (tests)
  - LOCAL_RATE_LIMIT_FALLBACK=1: active un fallback local si l'init échoue
"""
import os
import logging
import redis.asyncio as aioredis
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi_limiter import FastAPILimiter
from .services import build_services

logger = logging.getLogger("uvicorn.error")

async def _init_rate_limiter(app: FastAPI) -> None:
    if os.getenv("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS") == "1":
        app.state.rate_limit_enabled = False
        logger.info("Rate limiting disabled by DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS")
        return
    try:
        if os.getenv("USE_FAKE_REDIS_FOR_TESTS") == "1":
            from fakeredis.aioredis import FakeRedis  # tests uniquement
            r = FakeRedis(decode_responses=True)
        else:
            redis_url = os.getenv("RATE_LIMIT_REDIS_URL", "redis://127.0.0.1:6379/0")
            r = aioredis.from_url(redis_url, encoding="utf-8", decode_responses=True)
        await FastAPILimiter.init(r)
        app.state.rate_limit_enabled = True
        logger.info("Rate limiting enabled")
    except Exception as e:
        app.state.rate_limit_enabled = os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1"
        logger.warning("Rate limiting %s due to init error: %s",
                       "falling back to local in-memory" if app.state.rate_limit_enabled else "disabled", e)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Les vérificateurs sont sans état: une instance par fournisseur pour toute la vie du process.
    En cas d'échec de Redis et sans fallback, le rate limiting est désactivé proprement.
    """
    build_services(app)
    await _init_rate_limiter(app)
    yield
