"""Pipeline scheduler routes: tick, backfill and stats."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.scheduler import PipelineScheduler
from app.schemas.pipeline import BackfillRequest, BackfillResponse, StatsResponse, TickResponse
from app.services.backfill import backfill
from app.services.dispatcher import WorkerDispatcher
from app.services.stats import pipeline_stats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pipeline-scheduler", tags=["pipeline-scheduler"])


def get_scheduler() -> PipelineScheduler:
    """Build a scheduler from application settings."""
    return PipelineScheduler(WorkerDispatcher.from_settings(settings))


@router.post("/tick", response_model=TickResponse)
def tick(scheduler: PipelineScheduler = Depends(get_scheduler)):
    """Invoke every worker group once."""
    return scheduler.tick()


@router.post("/backfill", response_model=BackfillResponse)
def run_backfill(
    data: Optional[BackfillRequest] = None,
    db: Session = Depends(get_db),
):
    """Enqueue normalize jobs for historical messages."""
    data = data or BackfillRequest()
    return backfill(db, data.organization_id, limit=data.limit, priority=data.priority)


@router.get("/stats", response_model=StatsResponse)
def stats(db: Session = Depends(get_db)):
    """Queue depth, failed jobs and per-stage counters."""
    return pipeline_stats(db)


@router.post("", response_model=TickResponse, include_in_schema=False)
@router.post("/{path:path}", response_model=TickResponse, include_in_schema=False)
def default_tick(scheduler: PipelineScheduler = Depends(get_scheduler)):
    """Any other POST runs a tick."""
    return scheduler.tick()
