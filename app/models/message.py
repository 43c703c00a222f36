"""Chat message and normalized message models."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text

from app.database import Base


class ChatMessage(Base):
    """A CRM chat message received from or sent to a client."""

    __tablename__ = "chat_messages"

    message_id = Column(Text, primary_key=True)
    organization_id = Column(Text, nullable=False)
    direction = Column(Text, nullable=False)  # 'incoming', 'outgoing'
    content = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_chat_messages_org_created", "organization_id", "created_at"),
    )


class NormalizedMessage(Base):
    """Normalized form of a chat message, produced by the normalize stage."""

    __tablename__ = "messages_normalized"

    message_id = Column(
        Text,
        ForeignKey("chat_messages.message_id", ondelete="CASCADE"),
        primary_key=True,
    )
    normalized_text = Column(Text, nullable=False)
    text_hash = Column(String(32), nullable=False)  # md5 hex
    language = Column(String(8))
    tokens_count = Column(Integer)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_messages_normalized_hash", "text_hash"),
    )
