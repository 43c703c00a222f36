"""Pipeline worker: claims a batch of jobs for a worker group and processes them."""

import logging
import uuid
from typing import Any, Dict, Optional, Type

from sqlalchemy.orm import Session

from app.config import settings
from app.models.job import ProcessingJob
from app.processors.annotate import AnnotateProcessor, BatchAnnotateProcessor
from app.processors.base import BaseProcessor
from app.processors.embed import BatchEmbedProcessor, EmbedProcessor
from app.processors.normalize import NormalizeProcessor
from app.services import job_store
from app.services.ai_client import AIClient
from app.stages import DEFAULT_WORKER_GROUP, JOB_CHAIN, WORKER_GROUPS, job_types_for_group

logger = logging.getLogger(__name__)


def new_worker_id() -> str:
    return f"worker-{uuid.uuid4().hex[:8]}"


class PipelineWorker:
    """Processes claimed jobs and chains follow-up jobs."""

    def __init__(self, ai_client: Optional[AIClient] = None, max_retries: Optional[int] = None):
        """Initialize worker."""
        self.ai_client = ai_client or AIClient()
        self.max_retries = max_retries or settings.MAX_JOB_RETRIES

        # Processor registry
        self.processors: Dict[str, Type[BaseProcessor]] = {
            "normalize_message": NormalizeProcessor,
            "embed_message": EmbedProcessor,
            "annotate_message": AnnotateProcessor,
            "batch_embed": BatchEmbedProcessor,
            "batch_annotate": BatchAnnotateProcessor,
        }

    def run_batch(
        self,
        db: Session,
        worker_group: str = DEFAULT_WORKER_GROUP,
        batch_size: Optional[int] = None,
        worker_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Claim and process one batch of jobs for a worker group.

        Args:
            db: Database session
            worker_group: Worker group name; unknown names use the default group
            batch_size: Maximum number of jobs to claim
            worker_id: Claimant identifier, generated when omitted

        Returns:
            Batch result dict
        """
        if worker_group not in WORKER_GROUPS:
            logger.warning(f"Unknown worker group {worker_group!r}, using {DEFAULT_WORKER_GROUP}")
            worker_group = DEFAULT_WORKER_GROUP

        batch_size = batch_size or settings.PIPELINE_BATCH_SIZE
        worker_id = worker_id or new_worker_id()

        jobs = job_store.claim(db, job_types_for_group(worker_group), batch_size, worker_id)

        if not jobs:
            return {
                "status": "idle",
                "worker_group": worker_group,
                "message": "No pending jobs",
            }

        logger.info(f"{worker_id} claimed {len(jobs)} {worker_group} jobs")

        results = {"completed": 0, "failed": 0, "chained": 0}

        for job in jobs:
            if self.process_job(job, db):
                results["completed"] += 1
                if JOB_CHAIN.get(job.job_type):
                    results["chained"] += 1
            else:
                results["failed"] += 1

        logger.info(f"{worker_id} done: {results}")

        return {
            "status": "ok",
            "worker_id": worker_id,
            "worker_group": worker_group,
            "jobs_claimed": len(jobs),
            **results,
        }

    def process_job(self, job: ProcessingJob, db: Session) -> bool:
        """
        Process a single claimed job and chain its follow-up, returning True on success.

        The follow-up job and the done status are committed together; a failure
        in either rolls both back and records the attempt on the job.
        """
        logger.info(f"Processing job {job.job_id} ({job.job_type} {job.entity_id})")

        try:
            processor_class = self.processors.get(job.job_type)
            if processor_class:
                processor_class(self.ai_client, db).execute(job)
            else:
                logger.info(f"Unknown job type: {job.job_type}")

            self.enqueue_next_job(job, db)
            job_store.complete(db, job)
            logger.info(f"Job {job.job_id} completed successfully")
            return True

        except Exception as e:
            logger.error(f"Job {job.job_id} failed: {e}", exc_info=True)
            db.rollback()
            job_store.fail(db, job, str(e), self.max_retries)
            return False

    def enqueue_next_job(self, job: ProcessingJob, db: Session) -> None:
        """Enqueue the next job in the chain, if any. The caller commits."""
        next_job_type = JOB_CHAIN.get(job.job_type)
        if not next_job_type:
            return

        job_store.enqueue(
            db,
            organization_id=job.organization_id,
            job_type=next_job_type,
            entity_type=job.entity_type,
            entity_id=job.entity_id,
            priority=job.priority,
            payload=job.payload or {},
        )
