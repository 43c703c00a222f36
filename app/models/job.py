"""Processing job model for the AI pipeline queue."""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Index, Integer, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB

from app.database import Base

JOB_STATUSES = ("pending", "processing", "retry", "failed", "done")

# Statuses a worker may claim
CLAIMABLE_STATUSES = ("pending", "retry")

# Statuses that still represent outstanding work for an entity
UNPROCESSED_STATUSES = ("pending", "processing", "retry")


class ProcessingJob(Base):
    """ProcessingJob is one unit of deferred AI work on a single entity."""

    __tablename__ = "processing_jobs"

    job_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Text, nullable=False)
    job_type = Column(Text, nullable=False)  # 'normalize_message', 'embed_message', ...
    entity_type = Column(Text, nullable=False)  # 'message'
    entity_id = Column(Text, nullable=False)
    priority = Column(Integer, nullable=False, default=0)  # Lower is more urgent
    status = Column(Text, nullable=False, default="pending")
    payload = Column(JSON().with_variant(JSONB, "postgresql"))
    retries = Column(Integer, nullable=False, default=0)
    last_error = Column(Text)
    worker_id = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    started_at = Column(DateTime)
    completed_at = Column(DateTime)

    __table_args__ = (
        Index("idx_processing_jobs_claim", "status", "priority", "created_at"),
        Index("idx_processing_jobs_entity", "entity_type", "entity_id", "job_type"),
    )

    def __repr__(self) -> str:
        return f"<ProcessingJob {self.job_id} {self.job_type} {self.entity_id} {self.status}>"
