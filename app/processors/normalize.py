"""Normalize processor (pure code, no AI)."""

import logging
from typing import Any, Dict, Optional

from app.models.job import ProcessingJob
from app.models.message import ChatMessage, NormalizedMessage
from app.processors.base import BaseProcessor
from app.services.normalization import detect_language, estimate_tokens, normalize_text, text_hash

logger = logging.getLogger(__name__)


class NormalizeProcessor(BaseProcessor):
    """Writes the normalized form of a chat message."""

    def _run(self, job: ProcessingJob) -> Optional[Dict[str, Any]]:
        message = self.db.query(ChatMessage).filter(
            ChatMessage.message_id == job.entity_id,
        ).first()

        if not message or not message.content:
            logger.info(f"Message {job.entity_id} missing or empty, nothing to normalize")
            return None

        normalized = normalize_text(message.content)

        record = self.db.query(NormalizedMessage).filter(
            NormalizedMessage.message_id == message.message_id,
        ).first()
        if not record:
            record = NormalizedMessage(message_id=message.message_id)
            self.db.add(record)

        record.normalized_text = normalized
        record.text_hash = text_hash(normalized)
        record.language = detect_language(normalized)
        record.tokens_count = estimate_tokens(normalized)

        return {"message_id": message.message_id, "text_hash": record.text_hash}
