import contextlib
from contextlib import asynccontextmanager
import asyncio
import logging

from app.analytics.db import init_db, purge_old_records
from app.services.runtime import build_runtime

logger = logging.getLogger(__name__)

PURGE_INTERVAL_S = 3600


async def _purge_periodically(stop_event: asyncio.Event) -> None:
    while not stop_event.is_set():
        try:
            deleted = await asyncio.to_thread(purge_old_records)
            if any(deleted.values()):
                logger.info("analytics_retention_purge deleted=%s", deleted)
        except Exception as exc:  # noqa: BLE001
            logger.warning("analytics_retention_purge_failed: %s", exc)
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=PURGE_INTERVAL_S)
        except asyncio.TimeoutError:
            continue


@asynccontextmanager
async def lifespan(app):
    init_db()
    runtime = build_runtime()
    if not runtime.gateway.is_available():
        logger.warning("llm_not_configured analysis and ranking requests will fail with 503")
    runtime.start()
    app.state.runtime = runtime
    logger.info("scoring_runtime_started ranking_worker=%s", runtime.ranking_queue.is_running())

    stop_event = asyncio.Event()
    purge_task = asyncio.create_task(_purge_periodically(stop_event))
    try:
        yield
    finally:
        stop_event.set()
        if not purge_task.done():
            purge_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await purge_task
        await asyncio.to_thread(runtime.stop)
        app.state.runtime = None
        logger.info("scoring_runtime_stopped")
