"""Embedding, intent cache and annotation models."""

from datetime import datetime

from pgvector.sqlalchemy import Vector
from sqlalchemy import JSON, Column, DateTime, Float, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB

from app.config import settings
from app.database import Base


class MessageEmbedding(Base):
    """Embedding vector registered for an entity and model."""

    __tablename__ = "embeddings_registry"

    embedding_pk = Column(Integer, primary_key=True, autoincrement=True)
    entity_type = Column(Text, nullable=False)
    entity_id = Column(Text, nullable=False)
    model_name = Column(Text, nullable=False)
    embedding = Column(Vector(settings.EMBED_DIM))
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("entity_type", "entity_id", "model_name"),
    )


class IntentCache(Base):
    """Intent classification cached by normalized text hash."""

    __tablename__ = "intent_cache"

    text_hash = Column(String(32), primary_key=True)
    normalized_text = Column(Text, nullable=False)
    intent = Column(Text, nullable=False)
    stage = Column(Text)
    model_used = Column(Text)
    confidence = Column(Float)
    hits = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class AIAnnotation(Base):
    """Versioned AI annotation of an entity (e.g. message intent)."""

    __tablename__ = "ai_annotations"

    annotation_pk = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Text, nullable=False)
    entity_type = Column(Text, nullable=False)
    entity_id = Column(Text, nullable=False)
    annotation_type = Column(Text, nullable=False)  # 'intent'
    version = Column(Integer, nullable=False, default=1)
    value_json = Column(JSON().with_variant(JSONB, "postgresql"))
    model_used = Column(Text)
    confidence = Column(Float)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("entity_type", "entity_id", "annotation_type", "version"),
    )
