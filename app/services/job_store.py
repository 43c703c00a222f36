"""Job store primitives: enqueue, claim, complete, fail and counters."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.config import settings
from app.models.job import CLAIMABLE_STATUSES, JOB_STATUSES, UNPROCESSED_STATUSES, ProcessingJob
from app.stages import JOB_TYPES

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 500


def enqueue(
    db: Session,
    organization_id: str,
    job_type: str,
    entity_type: str,
    entity_id: str,
    priority: Optional[int] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> Tuple[ProcessingJob, bool]:
    """
    Enqueue a job unless an unprocessed one already exists for the entity.

    The session is flushed, not committed.

    Args:
        db: Database session
        organization_id: Tenant scope
        job_type: One of JOB_TYPES
        entity_type: Entity kind, e.g. 'message'
        entity_id: Entity identifier
        priority: Claim priority (lower is more urgent), defaults to DEFAULT_JOB_PRIORITY
        payload: Opaque job payload

    Returns:
        Tuple of (job, created) where created is False for an existing job

    Raises:
        ValueError: If job_type is unknown
    """
    if job_type not in JOB_TYPES:
        raise ValueError(f"Unknown job type: {job_type}")

    if priority is None:
        priority = settings.DEFAULT_JOB_PRIORITY

    existing = (
        db.query(ProcessingJob)
        .filter(
            ProcessingJob.entity_type == entity_type,
            ProcessingJob.entity_id == str(entity_id),
            ProcessingJob.job_type == job_type,
            ProcessingJob.status.in_(UNPROCESSED_STATUSES),
        )
        .first()
    )
    if existing:
        return existing, False

    job = ProcessingJob(
        organization_id=organization_id,
        job_type=job_type,
        entity_type=entity_type,
        entity_id=str(entity_id),
        priority=priority,
        status="pending",
        payload=payload or {},
        retries=0,
    )
    db.add(job)
    db.flush()
    return job, True


def claim(db: Session, job_types: Sequence[str], limit: int, worker_id: str) -> List[ProcessingJob]:
    """Claim up to ``limit`` claimable jobs of the given types for a worker."""
    jobs = (
        db.query(ProcessingJob)
        .filter(
            ProcessingJob.job_type.in_(list(job_types)),
            ProcessingJob.status.in_(CLAIMABLE_STATUSES),
        )
        .order_by(ProcessingJob.priority, ProcessingJob.created_at)
        .limit(limit)
        .with_for_update(skip_locked=True)
        .all()
    )

    now = datetime.utcnow()
    for job in jobs:
        job.status = "processing"
        job.worker_id = worker_id
        job.started_at = now

    db.commit()
    return jobs


def complete(db: Session, job: ProcessingJob) -> None:
    """Mark a job done."""
    job.status = "done"
    job.completed_at = datetime.utcnow()
    job.last_error = None
    db.commit()


def fail(db: Session, job: ProcessingJob, error: str, max_retries: int) -> None:
    """Record a failed attempt, moving the job to retry or failed."""
    job.retries = (job.retries or 0) + 1
    job.last_error = (error or "")[:MAX_ERROR_LENGTH]

    if job.retries >= max_retries:
        job.status = "failed"
        job.completed_at = datetime.utcnow()
        logger.error(f"Job {job.job_id} failed after {job.retries} attempts")
    else:
        job.status = "retry"
        logger.warning(f"Job {job.job_id} retry {job.retries}/{max_retries}")

    db.commit()


def queue_depth(db: Session) -> int:
    """Number of jobs waiting to be claimed (pending or retry)."""
    return db.query(func.count(ProcessingJob.job_id)).filter(
        ProcessingJob.status.in_(CLAIMABLE_STATUSES),
    ).scalar() or 0


def failed_count(db: Session) -> int:
    """Number of jobs that exhausted their retries."""
    return db.query(func.count(ProcessingJob.job_id)).filter(
        ProcessingJob.status == "failed",
    ).scalar() or 0


def stage_counters(db: Session) -> List[Dict[str, Any]]:
    """Per job type counts of every status."""
    rows = (
        db.query(ProcessingJob.job_type, ProcessingJob.status, func.count(ProcessingJob.job_id))
        .group_by(ProcessingJob.job_type, ProcessingJob.status)
        .all()
    )

    counters: Dict[str, Dict[str, Any]] = {}
    for job_type, status, count in rows:
        entry = counters.setdefault(
            job_type,
            {"job_type": job_type, **{s: 0 for s in JOB_STATUSES}, "total": 0},
        )
        if status in JOB_STATUSES:
            entry[status] = count
        entry["total"] += count

    return [counters[job_type] for job_type in sorted(counters)]
