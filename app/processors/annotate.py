"""Intent annotation processors."""

import json
import logging
from typing import Any, Dict, List, Optional

from app.models.annotation import AIAnnotation, IntentCache
from app.models.job import ProcessingJob
from app.models.message import NormalizedMessage
from app.processors.base import BaseProcessor

logger = logging.getLogger(__name__)

SINGLE_PROMPT = 'Classify the intent and conversation stage. Return JSON: {"intent":"...","stage":"..."}'

BATCH_PROMPT = (
    "Classify intents for {count} messages. "
    'Return JSON array: [{{"id":"...","intent":"...","stage":"..."}}]'
)

# Upper bound of messages sent in one batch classification call
MAX_BATCH_TEXTS = 20

CACHE_CONFIDENCE = 0.95
MODEL_CONFIDENCE = 0.8


class AnnotateProcessor(BaseProcessor):
    """Annotates a normalized message with intent and stage."""

    def _run(self, job: ProcessingJob) -> Optional[Dict[str, Any]]:
        norm = self._load_normalized(job.entity_id)
        if not norm:
            return None

        cached = self.db.query(IntentCache).filter(IntentCache.text_hash == norm.text_hash).first()

        if cached:
            intent = cached.intent
            stage = cached.stage or "unknown"
            model_used = "cache"
            cached.hits = (cached.hits or 0) + 1
        else:
            content, model_used = self.ai.chat_completion(
                [
                    {"role": "system", "content": SINGLE_PROMPT},
                    {"role": "user", "content": norm.normalized_text},
                ]
            )
            intent, stage = _parse_classification(content)
            self._cache_intent(norm, intent, stage, model_used)

        confidence = CACHE_CONFIDENCE if model_used == "cache" else MODEL_CONFIDENCE
        self._write_annotation(job.organization_id, job.entity_id, intent, stage, model_used, confidence)

        return {"intent": intent, "stage": stage, "model_used": model_used}

    def _load_normalized(self, entity_id: str) -> Optional[NormalizedMessage]:
        norm = self.db.query(NormalizedMessage).filter(
            NormalizedMessage.message_id == entity_id,
        ).first()
        if not norm or not norm.normalized_text:
            return None
        return norm

    def _cache_intent(self, norm: NormalizedMessage, intent: str, stage: str, model_used: str) -> None:
        """Insert or refresh the intent cache entry for a normalized text."""
        entry = self.db.get(IntentCache, norm.text_hash)
        if not entry:
            entry = IntentCache(text_hash=norm.text_hash, hits=0)
            self.db.add(entry)

        entry.normalized_text = norm.normalized_text
        entry.intent = intent
        entry.stage = stage
        entry.model_used = model_used
        entry.confidence = MODEL_CONFIDENCE
        self.db.flush()

    def _write_annotation(
        self,
        organization_id: str,
        entity_id: str,
        intent: str,
        stage: str,
        model_used: str,
        confidence: float,
    ) -> None:
        """Upsert the version 1 intent annotation for a message."""
        annotation = self.db.query(AIAnnotation).filter(
            AIAnnotation.entity_type == "message",
            AIAnnotation.entity_id == entity_id,
            AIAnnotation.annotation_type == "intent",
            AIAnnotation.version == 1,
        ).first()
        if not annotation:
            annotation = AIAnnotation(
                entity_type="message",
                entity_id=entity_id,
                annotation_type="intent",
                version=1,
            )
            self.db.add(annotation)

        annotation.organization_id = organization_id
        annotation.value_json = {"intent": intent, "stage": stage}
        annotation.model_used = model_used
        annotation.confidence = confidence
        self.db.flush()


class BatchAnnotateProcessor(AnnotateProcessor):
    """Annotates the payload's messages with a single classification call."""

    def _run(self, job: ProcessingJob) -> Optional[Dict[str, Any]]:
        entity_ids = (job.payload or {}).get("entity_ids") or []

        texts: List[NormalizedMessage] = []
        for entity_id in entity_ids[:MAX_BATCH_TEXTS]:
            norm = self._load_normalized(str(entity_id))
            if norm:
                texts.append(norm)

        if not texts:
            return None

        content, model_used = self.ai.chat_completion(
            [
                {"role": "system", "content": BATCH_PROMPT.format(count=len(texts))},
                {
                    "role": "user",
                    "content": "\n".join(f"[{i}] {t.normalized_text}" for i, t in enumerate(texts)),
                },
            ],
            max_tokens=1000,
            json_mode=False,
        )

        try:
            items = json.loads(content)
        except (TypeError, ValueError) as e:
            logger.error(f"Batch annotate parse error: {e}")
            return {"annotated": 0}

        if not isinstance(items, list):
            logger.error("Batch annotate response is not a JSON array")
            return {"annotated": 0}

        annotated = 0
        for item, norm in zip(items, texts):
            if not isinstance(item, dict):
                continue
            intent = item.get("intent") or "unknown"
            stage = item.get("stage") or "unknown"
            self._cache_intent(norm, intent, stage, model_used)
            self._write_annotation(
                job.organization_id, norm.message_id, intent, stage, model_used, MODEL_CONFIDENCE
            )
            annotated += 1

        return {"annotated": annotated}


def _parse_classification(content: str):
    """Extract (intent, stage) from a model reply, defaulting to 'unknown'."""
    try:
        parsed = json.loads(content)
    except (TypeError, ValueError):
        return "unknown", "unknown"

    if not isinstance(parsed, dict):
        return "unknown", "unknown"

    return parsed.get("intent") or "unknown", parsed.get("stage") or "unknown"
