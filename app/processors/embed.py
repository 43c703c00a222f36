"""Embedding processors."""

import logging
from typing import Any, Dict, Optional

from app.models.annotation import IntentCache, MessageEmbedding
from app.models.job import ProcessingJob
from app.models.message import NormalizedMessage
from app.processors.base import BaseProcessor

logger = logging.getLogger(__name__)


class EmbedProcessor(BaseProcessor):
    """Registers an embedding of a normalized message."""

    def _run(self, job: ProcessingJob) -> Optional[Dict[str, Any]]:
        return self.embed_entity(job.entity_id)

    def embed_entity(self, entity_id: str) -> Optional[Dict[str, Any]]:
        model_name = self.ai.embedding_model

        existing = self.db.query(MessageEmbedding).filter(
            MessageEmbedding.entity_type == "message",
            MessageEmbedding.entity_id == entity_id,
            MessageEmbedding.model_name == model_name,
        ).first()
        if existing:
            return None

        norm = self.db.query(NormalizedMessage).filter(
            NormalizedMessage.message_id == entity_id,
        ).first()
        if not norm or not norm.normalized_text:
            return None

        # Known text: annotation comes straight from the intent cache
        cached = self.db.query(IntentCache).filter(IntentCache.text_hash == norm.text_hash).first()
        if cached:
            logger.info(f"Intent cache hit for {entity_id}, skipping embedding")
            return None

        embedding = self.ai.embed(norm.normalized_text)

        self.db.add(
            MessageEmbedding(
                entity_type="message",
                entity_id=entity_id,
                model_name=model_name,
                embedding=embedding,
            )
        )
        self.db.flush()

        return {"entity_id": entity_id, "model_name": model_name}


class BatchEmbedProcessor(EmbedProcessor):
    """Embeds every entity listed in the job payload."""

    def _run(self, job: ProcessingJob) -> Optional[Dict[str, Any]]:
        entity_ids = (job.payload or {}).get("entity_ids") or []
        embedded = 0

        for entity_id in entity_ids:
            if self.embed_entity(str(entity_id)):
                embedded += 1

        return {"requested": len(entity_ids), "embedded": embedded}
