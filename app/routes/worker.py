"""Pipeline worker route."""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.pipeline import WorkerRequest
from app.worker import PipelineWorker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pipeline-worker", tags=["pipeline-worker"])


def get_worker() -> PipelineWorker:
    return PipelineWorker()


async def parse_worker_request(request: Request) -> WorkerRequest:
    """Read the request body, treating a missing or malformed body as {}."""
    try:
        body = await request.json()
    except ValueError:
        body = {}
    try:
        return WorkerRequest.model_validate(body if isinstance(body, dict) else {})
    except ValidationError as e:
        raise RequestValidationError(e.errors()) from e


@router.post("")
def run_worker(
    data: WorkerRequest = Depends(parse_worker_request),
    worker: PipelineWorker = Depends(get_worker),
    db: Session = Depends(get_db),
):
    """Claim and process one batch of jobs for a worker group."""
    return worker.run_batch(
        db,
        worker_group=data.worker_group or "normalize",
        batch_size=data.batch_size,
        worker_id=data.worker_id,
    )
