import logging
import threading

from .cache import OrderCache
from .errors import PersistenceError
from .models import IngestResult, IngestStats, IngestStatus
from .store import OrderStore
from .validation import check_order

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """Validate, cache and persist order messages from the stream.

    The cache is written before the store. A record whose store write fails
    stays readable from the cache; nothing retries or reconciles it.
    """

    def __init__(self, cache: OrderCache, store: OrderStore):
        self.cache = cache
        self.store = store
        self.stats = IngestStats()
        self._stats_lock = threading.Lock()

    def handle(self, sequence: int, payload: bytes) -> IngestResult:
        logger.info("received message %d", sequence, extra={"sequence": sequence})

        outcome = check_order(payload)
        if not outcome.ok:
            logger.warning(
                "invalid order skipped: %s",
                outcome.error,
                extra={"sequence": sequence, "error_code": outcome.error.code},
            )
            return self._record(
                IngestResult(
                    sequence=sequence,
                    status=IngestStatus.REJECTED,
                    error=str(outcome.error),
                )
            )

        order = outcome.order
        key = order.order_uid
        self.cache.upsert(key, order.payload)

        try:
            self.store.put(key, order.payload)
        except PersistenceError as exc:
            logger.error(
                "save to db error: %s",
                exc,
                extra={"sequence": sequence, "order_uid": key, "error_code": exc.code},
            )
            return self._record(
                IngestResult(
                    sequence=sequence,
                    status=IngestStatus.PERSIST_FAILED,
                    order_uid=key,
                    error=str(exc),
                )
            )

        logger.info(
            "order %s saved successfully",
            key,
            extra={"sequence": sequence, "order_uid": key},
        )
        return self._record(
            IngestResult(sequence=sequence, status=IngestStatus.PERSISTED, order_uid=key)
        )

    def _record(self, result: IngestResult) -> IngestResult:
        with self._stats_lock:
            self.stats.received += 1
            if result.status is IngestStatus.REJECTED:
                self.stats.rejected += 1
            elif result.status is IngestStatus.PERSISTED:
                self.stats.persisted += 1
            else:
                self.stats.persist_failed += 1
            self.stats.last_sequence = result.sequence
            self.stats.last_result = result
        return result

    def snapshot_stats(self) -> IngestStats:
        with self._stats_lock:
            return self.stats.model_copy(deep=True)
