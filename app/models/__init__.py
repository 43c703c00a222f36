"""SQLAlchemy ORM models."""

from app.models.message import ChatMessage, NormalizedMessage
from app.models.annotation import AIAnnotation, IntentCache, MessageEmbedding
from app.models.job import ProcessingJob

__all__ = [
    "ChatMessage",
    "NormalizedMessage",
    "MessageEmbedding",
    "IntentCache",
    "AIAnnotation",
    "ProcessingJob",
]
