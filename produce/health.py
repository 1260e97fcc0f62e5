# produce/health.py
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from .cache import KeyValueCache
from .database import Database
from .errors import CacheError, StoreError

logger = logging.getLogger(__name__)


def _check(name: str, ping: Callable[[], None]) -> Dict[str, Any]:
    try:
        ping()
    except (StoreError, CacheError) as e:
        logger.warning("%s health check failed: %s", name, e)
        return {"status": "error", "connected": False, "error": str(e)}
    return {"status": "ok", "connected": True}


class HealthService:
    def __init__(self, db: Database, cache: KeyValueCache, environment: str = "dev"):
        self.db = db
        self.cache = cache
        self.environment = environment

    def check(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        database = _check("database", self.db.ping)
        redis = _check("redis", self.cache.ping)
        healthy = database["status"] == "ok" and redis["status"] == "ok"
        return {
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": (now or datetime.now(timezone.utc)).isoformat(),
            "environment": self.environment,
            "services": {
                "database": database,
                "redis": redis,
                "application": "ok",
            },
        }
