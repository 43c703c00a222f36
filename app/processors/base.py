"""Base processor for pipeline jobs."""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.models.job import ProcessingJob
from app.services.ai_client import AIClient

logger = logging.getLogger(__name__)


class BaseProcessor:
    """Base class for all job processors."""

    def __init__(self, ai_client: AIClient, db_session: Session):
        """Initialize base processor."""
        self.ai = ai_client
        self.db = db_session

    def execute(self, job: ProcessingJob) -> Optional[Dict[str, Any]]:
        """
        Execute the processor for a claimed job.

        Args:
            job: The claimed job

        Returns:
            Processor output dict, or None when there was nothing to do

        Raises:
            Exception: Any processing failure; the worker records it on the job
        """
        # Refresh database session to see recently committed data
        self.db.expire_all()

        result = self._run(job)
        self.db.commit()

        logger.info(f"Processor {self.__class__.__name__} finished job {job.job_id}")
        return result

    def _run(self, job: ProcessingJob) -> Optional[Dict[str, Any]]:
        """
        Run the processor logic (to be implemented by subclasses).

        Args:
            job: The claimed job

        Returns:
            Output dict
        """
        raise NotImplementedError
