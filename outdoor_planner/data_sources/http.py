"""Shared HTTP session for forecast providers: response cache plus retry with backoff."""
from __future__ import annotations

import requests
import requests_cache
from retry_requests import retry

from outdoor_planner.config import settings
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/http")


def create_session(
    *,
    cache_name: str = ".forecast_cache",
    expire_after: int | None = None,
    retries: int | None = None,
) -> requests.Session:
    """Build a cached, retrying session.

    Provider responses are cached for `expire_after` seconds so page reloads
    within that window do not hit the API quota.
    """
    expire = settings.http_cache_seconds if expire_after is None else expire_after
    attempts = settings.http_retries if retries is None else retries
    cache_session = requests_cache.CachedSession(cache_name, expire_after=expire)
    logger.info("Using requests_cache and retry_requests", extra={"expire_after": expire, "retries": attempts})
    return retry(cache_session, retries=attempts, backoff_factor=0.2)


session: requests.Session = create_session()
