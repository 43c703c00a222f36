"""Tick driver: one sequential pass over every worker group."""

import logging
import threading
from typing import Any, Dict, Optional, Sequence

from app.config import settings
from app.services.dispatcher import WorkerDispatcher
from app.stages import TICK_ORDER

logger = logging.getLogger(__name__)


class PipelineScheduler:
    """Invokes each worker group once per tick, isolating per-group failures."""

    def __init__(
        self,
        dispatcher: WorkerDispatcher,
        batch_size: Optional[int] = None,
        worker_groups: Sequence[str] = TICK_ORDER,
    ):
        self.dispatcher = dispatcher
        self.batch_size = batch_size or settings.PIPELINE_BATCH_SIZE
        self.worker_groups = list(worker_groups)

    def tick(self) -> Dict[str, Any]:
        """
        Run one pass over all worker groups in order.

        A failing group is recorded as {"error": message} and does not stop
        the groups after it.

        Returns:
            {"status": "tick_complete", "results": {group: result}}
        """
        results: Dict[str, Any] = {}

        for group in self.worker_groups:
            try:
                results[group] = self.dispatcher.dispatch(group, self.batch_size)
            except Exception as e:
                logger.error(f"Worker group {group} failed: {e}")
                results[group] = {"error": str(e)}

        logger.info(f"Tick complete: {list(results)}")
        return {"status": "tick_complete", "results": results}


def ticker_loop(scheduler: PipelineScheduler, stop_event: threading.Event, interval: Optional[int] = None):
    """Call tick() every ``interval`` seconds until stop_event is set.

    Args:
        scheduler: Scheduler to drive
        stop_event: threading.Event to signal the loop to stop
        interval: Seconds between ticks
    """
    interval = interval or settings.TICK_INTERVAL
    logger.info(f"Ticker started (interval {interval}s)")

    while not stop_event.is_set():
        try:
            scheduler.tick()
        except Exception as e:
            logger.error(f"Ticker error: {e}", exc_info=True)

        stop_event.wait(interval)

    logger.info("Ticker stop signal received")
