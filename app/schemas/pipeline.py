"""Pipeline request and response schemas."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class BackfillRequest(BaseModel):
    """Schema for a backfill request."""

    organization_id: Optional[str] = None
    limit: Optional[int] = Field(default=None, gt=0)
    priority: Optional[int] = None


class BackfillResponse(BaseModel):
    """Response after a backfill."""

    status: str
    total_messages: int
    already_processed: int
    enqueued: int


class TickResponse(BaseModel):
    """Response after a scheduler tick."""

    status: str
    results: Dict[str, Any]  # worker group -> worker result or {"error": ...}


class StageCounters(BaseModel):
    """Per job type status counters."""

    job_type: str
    pending: int = 0
    processing: int = 0
    retry: int = 0
    failed: int = 0
    done: int = 0
    total: int = 0


class StatsResponse(BaseModel):
    """Pipeline health snapshot."""

    pipeline_stats: List[StageCounters]
    queue_depth: int = Field(ge=0)
    failed_jobs: int = Field(ge=0)


class WorkerRequest(BaseModel):
    """Schema for a worker group invocation."""

    worker_group: Optional[str] = None
    batch_size: Optional[int] = Field(default=None, gt=0)
    worker_id: Optional[str] = None
