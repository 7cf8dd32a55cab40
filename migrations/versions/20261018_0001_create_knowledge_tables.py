"""Create retention state, mistake log and pronunciation tables."""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261018_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "retention_states",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("learner_id", sa.String(length=64), nullable=False),
        sa.Column("item_type", sa.String(length=16), nullable=False),
        sa.Column("item_id", sa.String(length=255), nullable=False),
        sa.Column("knowledge_level", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("ease_factor", sa.Float(), server_default=sa.text("2.5"), nullable=False),
        sa.Column("interval_days", sa.Float(), server_default=sa.text("0"), nullable=False),
        sa.Column("repetition_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("next_review_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("times_seen", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("times_correct", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("times_incorrect", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("last_seen", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_correct", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_incorrect", sa.DateTime(timezone=True), nullable=True),
        sa.Column("pronunciation_score", sa.Float(), server_default=sa.text("0"), nullable=False),
        sa.Column("pronunciation_attempts", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("recent_mistakes", sa.JSON(), nullable=False),
        sa.Column("recent_contexts", sa.JSON(), nullable=False),
        sa.Column("mistake_notes", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            server_onupdate=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint(
            "learner_id",
            "item_type",
            "item_id",
            name="uq_retention_states_learner_item",
        ),
    )
    op.create_index(
        "ix_retention_states_learner_id_next_review_at",
        "retention_states",
        ("learner_id", "next_review_at"),
    )

    op.create_table(
        "mistake_log",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("learner_id", sa.String(length=64), nullable=False),
        sa.Column("session_id", sa.String(length=64), nullable=True),
        sa.Column("mistake_type", sa.String(length=32), nullable=False),
        sa.Column("item", sa.Text(), nullable=False),
        sa.Column("expected", sa.Text(), nullable=False),
        sa.Column("actual", sa.Text(), nullable=False),
        sa.Column("context", sa.Text(), server_default=sa.text("''"), nullable=False),
        sa.Column("explanation", sa.Text(), server_default=sa.text("''"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        "ix_mistake_log_learner_id_created_at",
        "mistake_log",
        ("learner_id", "created_at"),
    )

    op.create_table(
        "pronunciation_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("learner_id", sa.String(length=64), nullable=False),
        sa.Column("word", sa.String(length=255), nullable=False),
        sa.Column("score", sa.Float(), nullable=False),
        sa.Column("problem_sounds", sa.JSON(), nullable=False),
        sa.Column("recorded_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        "ix_pronunciation_records_learner_id_recorded_at",
        "pronunciation_records",
        ("learner_id", "recorded_at"),
    )


def downgrade() -> None:
    op.drop_index("ix_pronunciation_records_learner_id_recorded_at", table_name="pronunciation_records")
    op.drop_table("pronunciation_records")
    op.drop_index("ix_mistake_log_learner_id_created_at", table_name="mistake_log")
    op.drop_table("mistake_log")
    op.drop_index("ix_retention_states_learner_id_next_review_at", table_name="retention_states")
    op.drop_table("retention_states")
