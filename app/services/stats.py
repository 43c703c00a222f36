"""Point-in-time pipeline health snapshot."""

from typing import Any, Dict

from sqlalchemy.orm import Session

from app.services import job_store


def pipeline_stats(db: Session) -> Dict[str, Any]:
    """Per-stage counters, queue depth and failed job count, read fresh each call."""
    return {
        "pipeline_stats": job_store.stage_counters(db),
        "queue_depth": int(job_store.queue_depth(db)),
        "failed_jobs": int(job_store.failed_count(db)),
    }
