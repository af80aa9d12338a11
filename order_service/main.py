import asyncio
import contextlib
import json
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import Response
from fastapi.staticfiles import StaticFiles

from .bootstrap import bootstrap
from .cache import OrderCache
from .config import Settings, settings
from .errors import InvalidOrderKey, OrderNotFoundError, PersistenceError
from .ingest import IngestionPipeline
from .models import IngestStats, OrderEntry
from .observability import setup_logging
from .service import OrderReadService
from .store import OrderStore, create_store
from .stream import MemoryStream

logger = logging.getLogger(__name__)


def create_app(config: Settings = settings, store: Optional[OrderStore] = None) -> FastAPI:
    """Build the application; pass a store to skip opening one from config."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(config.log_level, config.log_format)
        owns_store = store is None
        # A store that cannot be opened aborts startup.
        order_store = create_store(config.store_backend, config.dsn) if owns_store else store
        cache = OrderCache()
        app.state.bootstrap_report = bootstrap(cache, order_store, config.template_path)

        pipeline = IngestionPipeline(cache, order_store)
        stream = MemoryStream(
            config.nats_subject,
            cluster_id=config.nats_cluster,
            client_id=config.nats_client,
        )
        subscription = stream.subscribe(pipeline.handle)
        consumer = asyncio.create_task(stream.run())

        app.state.cache = cache
        app.state.store = order_store
        app.state.pipeline = pipeline
        app.state.stream = stream
        app.state.service = OrderReadService(cache, order_store)
        logger.info("order service started")
        try:
            yield
        finally:
            logger.info("shutting down")
            subscription.close()
            consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await consumer
            if owns_store:
                order_store.close()

    app = FastAPI(
        title="Order Service",
        version="0.1.0",
        description="Order ingestion with a write-through cache in front of the store.",
        lifespan=lifespan,
    )

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @app.get("/order/all", response_model=List[OrderEntry])
    def all_orders(request: Request) -> List[OrderEntry]:
        service: OrderReadService = request.app.state.service
        entries = []
        for key, payload in service.list_all():
            try:
                data = json.loads(payload)
            except ValueError as exc:
                logger.warning(
                    "cached order is not JSON, left out of listing: %s",
                    exc,
                    extra={"order_uid": key},
                )
                continue
            entries.append(OrderEntry(order_uid=key, data=data))
        return entries

    @app.get("/order/")
    def order_missing_id() -> None:
        raise HTTPException(status_code=400, detail="missing id")

    @app.get("/order/{order_id}")
    def get_order(order_id: str, request: Request) -> Response:
        service: OrderReadService = request.app.state.service
        try:
            payload = service.get_by_key(order_id)
        except InvalidOrderKey as exc:
            raise HTTPException(status_code=400, detail="missing id") from exc
        except OrderNotFoundError as exc:
            raise HTTPException(status_code=404, detail="not found") from exc
        except PersistenceError as exc:
            logger.error("order lookup failed: %s", exc, extra={"order_uid": order_id})
            raise HTTPException(status_code=500, detail="internal error") from exc
        return Response(content=payload, media_type="application/json")

    @app.get("/ingest/status", response_model=IngestStats)
    async def ingest_status(request: Request) -> IngestStats:
        return request.app.state.pipeline.snapshot_stats()

    async def _publish(request: Request, payload: bytes, async_mode: bool) -> dict:
        stream: MemoryStream = request.app.state.stream
        sequence, result = await stream.publish(payload, wait=not async_mode)
        if async_mode:
            return {"status": "queued", "subject": stream.subject, "sequence": sequence}
        return {"status": "completed", "subject": stream.subject, "result": result}

    @app.post("/stream/publish")
    async def publish(request: Request, async_mode: bool = False) -> dict:
        payload = await request.body()
        return await _publish(request, payload, async_mode)

    @app.post("/stream/publish/template")
    async def publish_template(request: Request, async_mode: bool = False) -> dict:
        try:
            payload = Path(config.template_path).read_bytes()
        except OSError as exc:
            logger.error("cannot read template %s: %s", config.template_path, exc)
            raise HTTPException(status_code=500, detail="template unavailable") from exc
        return await _publish(request, payload, async_mode)

    # Mounted after the API routes so /order/* takes precedence.
    if os.path.isdir(config.web_dir):
        app.mount("/", StaticFiles(directory=config.web_dir, html=True), name="web")

    return app


app = create_app()
