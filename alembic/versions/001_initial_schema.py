"""Initial pipeline schema with pgvector

Revision ID: 001
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from pgvector.sqlalchemy import Vector
from sqlalchemy.dialects.postgresql import JSONB, UUID

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Enable pgvector extension
    op.execute("CREATE EXTENSION IF NOT EXISTS vector")

    # Check if tables already exist and skip if so
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing_tables = inspector.get_table_names()

    if "processing_jobs" in existing_tables:
        # Tables already exist, skip migration
        return

    # Create chat_messages table
    op.create_table(
        "chat_messages",
        sa.Column("message_id", sa.Text, primary_key=True),
        sa.Column("organization_id", sa.Text, nullable=False),
        sa.Column("direction", sa.Text, nullable=False),
        sa.Column("content", sa.Text),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("idx_chat_messages_org_created", "chat_messages", ["organization_id", "created_at"])

    # Create messages_normalized table
    op.create_table(
        "messages_normalized",
        sa.Column(
            "message_id",
            sa.Text,
            sa.ForeignKey("chat_messages.message_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("normalized_text", sa.Text, nullable=False),
        sa.Column("text_hash", sa.String(32), nullable=False),
        sa.Column("language", sa.String(8)),
        sa.Column("tokens_count", sa.Integer),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("idx_messages_normalized_hash", "messages_normalized", ["text_hash"])

    # Create embeddings_registry table
    op.create_table(
        "embeddings_registry",
        sa.Column("embedding_pk", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("entity_type", sa.Text, nullable=False),
        sa.Column("entity_id", sa.Text, nullable=False),
        sa.Column("model_name", sa.Text, nullable=False),
        sa.Column("embedding", Vector(1536)),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.UniqueConstraint("entity_type", "entity_id", "model_name"),
    )

    # Create intent_cache table
    op.create_table(
        "intent_cache",
        sa.Column("text_hash", sa.String(32), primary_key=True),
        sa.Column("normalized_text", sa.Text, nullable=False),
        sa.Column("intent", sa.Text, nullable=False),
        sa.Column("stage", sa.Text),
        sa.Column("model_used", sa.Text),
        sa.Column("confidence", sa.Float),
        sa.Column("hits", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )

    # Create ai_annotations table
    op.create_table(
        "ai_annotations",
        sa.Column("annotation_pk", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("organization_id", sa.Text, nullable=False),
        sa.Column("entity_type", sa.Text, nullable=False),
        sa.Column("entity_id", sa.Text, nullable=False),
        sa.Column("annotation_type", sa.Text, nullable=False),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("value_json", JSONB),
        sa.Column("model_used", sa.Text),
        sa.Column("confidence", sa.Float),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.UniqueConstraint("entity_type", "entity_id", "annotation_type", "version"),
    )

    # Create processing_jobs table
    op.create_table(
        "processing_jobs",
        sa.Column("job_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("organization_id", sa.Text, nullable=False),
        sa.Column("job_type", sa.Text, nullable=False),
        sa.Column("entity_type", sa.Text, nullable=False),
        sa.Column("entity_id", sa.Text, nullable=False),
        sa.Column("priority", sa.Integer, nullable=False, server_default="0"),
        sa.Column("status", sa.Text, nullable=False, server_default="pending"),
        sa.Column("payload", JSONB),
        sa.Column("retries", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text),
        sa.Column("worker_id", sa.Text),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("started_at", sa.DateTime),
        sa.Column("completed_at", sa.DateTime),
    )
    op.create_index("idx_processing_jobs_claim", "processing_jobs", ["status", "priority", "created_at"])
    op.create_index(
        "idx_processing_jobs_entity", "processing_jobs", ["entity_type", "entity_id", "job_type"]
    )


def downgrade() -> None:
    op.drop_table("processing_jobs")
    op.drop_table("ai_annotations")
    op.drop_table("intent_cache")
    op.drop_table("embeddings_registry")
    op.drop_table("messages_normalized")
    op.drop_table("chat_messages")
    op.execute("DROP EXTENSION IF EXISTS vector")
