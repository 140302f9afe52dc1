"""Redis connection settings and cron helpers for the arq worker."""

from urllib.parse import urlparse

from arq.connections import RedisSettings
from libs.common.config import get_settings


def get_redis_settings() -> RedisSettings:
    """Build arq ``RedisSettings`` from ``REDIS_URL`` (``rediss://`` enables TLS)."""
    parsed = urlparse(get_settings().REDIS_URL)
    database = parsed.path.lstrip("/")

    return RedisSettings(
        host=parsed.hostname or "localhost",
        port=parsed.port or 6379,
        database=int(database) if database else 0,
        username=parsed.username,
        password=parsed.password,
        ssl=parsed.scheme == "rediss",
        conn_retries=5,
    )


def every_n_minutes(interval: int) -> set[int]:
    """Minute marks for a cron job that fires every ``interval`` minutes."""
    if interval < 1 or interval > 60:
        raise ValueError("interval must be between 1 and 60 minutes")
    return set(range(0, 60, interval))
