from typing import Dict, Any
from fastapi import Request, Response, HTTPException
import os
import time
import hashlib
import logging
from urllib.parse import urlparse

from storefront.utils.security import get_access_token

logger = logging.getLogger(__name__)

def client_key(request: Request) -> str:
    """
    Clé de limitation: jeton (Bearer ou cookie, hashé) sinon IP, toujours suffixée par le chemin.
    Le panier invité n'a pas de jeton: la limite s'applique alors par IP.
    """
    token = get_access_token(request)
    path = request.url.path
    if token:
        h = hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]
        return f"user:{h}:{path}"
    ip = request.client.host if request.client else "local"
    return f"ip:{ip}:{path}"

def _local_hit(request: Request, times: int, seconds: int) -> None:
    now = time.time()
    key = client_key(request)
    store = getattr(request.app.state, "_rl_store", {})
    hits = [t for t in store.get(key, []) if now - t < seconds]
    if len(hits) >= times:
        raise HTTPException(status_code=429, detail="Too Many Requests")
    hits.append(now)
    store[key] = hits
    request.app.state._rl_store = store

def optional_rate_limit(times: int, seconds: int):
    async def _dep(request: Request, response: Response):
        # Forcer le fallback mémoire en DEV si demandé
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            _local_hit(request, times, seconds)
            return

        if getattr(request.app.state, "rate_limit_enabled", None) is False:
            return

        try:
            from fastapi_limiter.depends import RateLimiter

            async def _identifier(req: Request) -> str:
                return client_key(req)
            return await RateLimiter(times=times, seconds=seconds, identifier=_identifier)(request, response)
        except HTTPException:
            raise
        except Exception:
            # Redis indisponible: pas de 429 en prod (LOCAL_RATE_LIMIT_FALLBACK=1 pour un fallback local)
            logger.warning("rate_limit: limiter unavailable for %s", request.url.path)
            return
    return _dep

def rate_limit_health_info(request: Request) -> Dict[str, Any]:
    enabled = getattr(request.app.state, "rate_limit_enabled", None)
    limiter_ready = False
    try:
        from fastapi_limiter import FastAPILimiter
        limiter_ready = getattr(FastAPILimiter, "redis", None) is not None
    except Exception:
        limiter_ready = False

    info: Dict[str, Any] = {
        "enabled": (bool(enabled) if enabled is not None else None),
        "ready": limiter_ready,
        "backend": "redis" if limiter_ready else None,
    }
    redis_url = os.getenv("RATE_LIMIT_REDIS_URL")
    if limiter_ready and redis_url:
        p = urlparse(redis_url)
        info["redis"] = {"scheme": p.scheme, "host": p.hostname, "port": p.port}
    return info
