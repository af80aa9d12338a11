"""In-process stand-in for the order message stream.

Messages are numbered in publish order and handed to a single subscriber
by one long-lived consumer coroutine, one at a time. The subscriber is a
plain synchronous callable and runs in a worker thread so store I/O does
not stall the event loop.
"""

import asyncio
import itertools
import logging
from typing import Any, Callable, Optional, Tuple

logger = logging.getLogger(__name__)

Handler = Callable[[int, bytes], Any]


class Subscription:
    def __init__(self, stream: "MemoryStream", handler: Handler):
        self.stream = stream
        self.handler = handler
        self.active = True

    def close(self) -> None:
        self.active = False
        if self.stream.subscription is self:
            self.stream.subscription = None


class MemoryStream:
    """Single-subject message stream with sequential delivery."""

    def __init__(self, subject: str, cluster_id: str = "", client_id: str = ""):
        self.subject = subject
        self.cluster_id = cluster_id
        self.client_id = client_id
        self.subscription: Optional[Subscription] = None
        self._sequence = itertools.count(1)
        self._queue: "asyncio.Queue[Tuple[int, bytes, Optional[asyncio.Future]]]" = (
            asyncio.Queue()
        )

    def subscribe(self, handler: Handler) -> Subscription:
        if self.subscription is not None:
            raise RuntimeError(f"subject '{self.subject}' already has a subscriber")
        self.subscription = Subscription(self, handler)
        logger.info(
            "subscribed to %s (cluster=%s client=%s)",
            self.subject,
            self.cluster_id,
            self.client_id,
        )
        return self.subscription

    async def publish(self, payload: bytes, wait: bool = False) -> Tuple[int, Any]:
        """Enqueue a message; with wait=True also return the handler's result."""
        sequence = next(self._sequence)
        future = asyncio.get_running_loop().create_future() if wait else None
        await self._queue.put((sequence, bytes(payload), future))
        if future is None:
            return sequence, None
        return sequence, await future

    async def run(self) -> None:
        """Consume messages until cancelled."""
        while True:
            sequence, payload, future = await self._queue.get()
            try:
                result = await self._deliver(sequence, payload)
            except Exception as exc:
                logger.exception("handler failed for message %d", sequence)
                if future is not None and not future.done():
                    future.set_exception(exc)
            else:
                if future is not None and not future.done():
                    future.set_result(result)
            finally:
                self._queue.task_done()

    async def _deliver(self, sequence: int, payload: bytes) -> Any:
        subscription = self.subscription
        if subscription is None or not subscription.active:
            logger.warning("no subscriber on %s, message %d dropped", self.subject, sequence)
            return None
        return await asyncio.to_thread(subscription.handler, sequence, payload)
