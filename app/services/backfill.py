"""Backfill of normalize jobs for historical messages."""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.errors import MissingParameter
from app.models.message import ChatMessage, NormalizedMessage
from app.services import job_store

logger = logging.getLogger(__name__)

BACKFILL_JOB_TYPE = "normalize_message"
BACKFILL_ENTITY_TYPE = "message"

# Keeps the IN (...) lists below the bind parameter limits of SQLite/Postgres
ID_CHUNK_SIZE = 500


def backfill(
    db: Session,
    organization_id: Optional[str],
    limit: Optional[int] = None,
    priority: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Enqueue normalize jobs for an organization's messages that lack a normalized record.

    Args:
        db: Database session
        organization_id: Organization to backfill
        limit: Maximum number of candidate messages, newest first
        priority: Job priority (high value = low urgency)

    Returns:
        Dict with status, total_messages, already_processed and enqueued

    Raises:
        MissingParameter: If organization_id is missing
    """
    if not organization_id:
        raise MissingParameter("organization_id required")

    limit = limit or settings.BACKFILL_LIMIT
    priority = settings.BACKFILL_PRIORITY if priority is None else priority

    # Step 1: candidate messages
    rows = (
        db.query(ChatMessage.message_id)
        .filter(
            ChatMessage.organization_id == organization_id,
            ChatMessage.direction == "incoming",
            ChatMessage.content.isnot(None),
        )
        .order_by(ChatMessage.created_at.desc())
        .limit(limit)
        .all()
    )
    candidate_ids = [row.message_id for row in rows]

    # Step 2: drop messages that already have a normalized record
    processed = set()
    for start in range(0, len(candidate_ids), ID_CHUNK_SIZE):
        chunk = candidate_ids[start:start + ID_CHUNK_SIZE]
        processed.update(
            row.message_id
            for row in db.query(NormalizedMessage.message_id).filter(
                NormalizedMessage.message_id.in_(chunk),
            )
        )
    to_process = [message_id for message_id in candidate_ids if message_id not in processed]

    # Step 3: enqueue
    created = 0
    for message_id in to_process:
        _, is_new = job_store.enqueue(
            db,
            organization_id=organization_id,
            job_type=BACKFILL_JOB_TYPE,
            entity_type=BACKFILL_ENTITY_TYPE,
            entity_id=message_id,
            priority=priority,
            payload={"source": "backfill"},
        )
        if is_new:
            created += 1

    db.commit()

    logger.info(
        f"Backfill {organization_id}: {len(candidate_ids)} messages, "
        f"{len(processed)} already processed, {len(to_process)} enqueued ({created} new jobs)"
    )

    return {
        "status": "backfill_enqueued",
        "total_messages": len(candidate_ids),
        "already_processed": len(processed),
        "enqueued": len(to_process),
    }
