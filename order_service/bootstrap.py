import logging
from pathlib import Path
from typing import Union

from .cache import OrderCache
from .errors import OrderServiceError, StartupDegradation
from .models import BootstrapReport
from .store import OrderStore
from .validation import extract_key

logger = logging.getLogger(__name__)


def _degraded(report: BootstrapReport, exc: Exception) -> BootstrapReport:
    error = StartupDegradation(str(exc))
    logger.error("bootstrap degraded: %s", error, extra={"error_code": error.code})
    report.degraded = True
    report.error = str(error)
    return report


def warm_cache(cache: OrderCache, store: OrderStore) -> int:
    warmed = 0
    for key, payload in store.list_all():
        cache.upsert(key, payload)
        warmed += 1
    return warmed


def seed_from_template(
    cache: OrderCache, store: OrderStore, template_path: Union[str, Path]
) -> str:
    """Persist and cache the template order; return its order_uid."""
    payload = Path(template_path).read_bytes()
    key = extract_key(payload)
    store.put(key, payload)
    cache.upsert(key, payload)
    return key


def bootstrap(
    cache: OrderCache, store: OrderStore, template_path: Union[str, Path]
) -> BootstrapReport:
    """Warm the cache from the store, or seed an empty store from a template.

    Never raises for store or template problems: the service starts with
    whatever the cache holds at that point.
    """
    report = BootstrapReport()
    try:
        report.store_count = store.count()
    except OrderServiceError as exc:
        return _degraded(report, exc)

    if report.store_count > 0:
        logger.info("database already contains %d orders", report.store_count)
        try:
            report.warmed = warm_cache(cache, store)
        except OrderServiceError as exc:
            report.warmed = len(cache)
            return _degraded(report, exc)
        logger.info("cache warmed with %d orders", report.warmed)
        return report

    logger.info("database empty, inserting initial order from %s", template_path)
    try:
        report.seeded_order_uid = seed_from_template(cache, store, template_path)
    except (OSError, OrderServiceError) as exc:
        return _degraded(report, exc)
    logger.info("initial order inserted successfully: %s", report.seeded_order_uid)
    return report
