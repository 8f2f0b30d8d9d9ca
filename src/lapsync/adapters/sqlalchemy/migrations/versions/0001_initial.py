"""Racing entities and import job queue

Revision ID: 0001
Revises:
Create Date: 2025-10-12
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(*, nullable: bool = True) -> list[sa.Column[object]]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=nullable),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=nullable),
    ]


def upgrade() -> None:
    op.create_table(
        "event",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("source_event_id", sa.String(), nullable=False),
        sa.Column("source_url", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_event"),
        sa.UniqueConstraint("source_event_id", name="uq_event_source_event_id"),
    )
    op.create_index("ix_event_source_url", "event", ["source_url"])

    op.create_table(
        "race_class",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("event_id", sa.Uuid(), nullable=False),
        sa.Column("class_code", sa.String(), nullable=False),
        sa.Column("source_url", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_race_class"),
        sa.ForeignKeyConstraint(
            ["event_id"],
            ["event.id"],
            name="fk_race_class_race_class_event_id_event",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("event_id", "class_code", name="uq_race_class_event_id_class_code"),
    )

    op.create_table(
        "session",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("event_id", sa.Uuid(), nullable=False),
        sa.Column("race_class_id", sa.Uuid(), nullable=False),
        sa.Column("source_session_id", sa.String(), nullable=False),
        sa.Column("source_url", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("scheduled_start", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_session"),
        sa.ForeignKeyConstraint(
            ["event_id"],
            ["event.id"],
            name="fk_session_session_event_id_event",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["race_class_id"],
            ["race_class.id"],
            name="fk_session_session_race_class_id_race_class",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("source_session_id", name="uq_session_source_session_id"),
    )
    op.create_index("ix_session_event_id", "session", ["event_id"])

    op.create_table(
        "entrant",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("event_id", sa.Uuid(), nullable=False),
        sa.Column("race_class_id", sa.Uuid(), nullable=False),
        sa.Column("session_id", sa.Uuid(), nullable=False),
        sa.Column("display_name", sa.String(), nullable=False),
        sa.Column("source_entrant_id", sa.String(), nullable=True),
        sa.Column("car_number", sa.String(), nullable=True),
        sa.Column("source_transponder_id", sa.String(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_entrant"),
        sa.ForeignKeyConstraint(
            ["event_id"],
            ["event.id"],
            name="fk_entrant_entrant_event_id_event",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["race_class_id"],
            ["race_class.id"],
            name="fk_entrant_entrant_race_class_id_race_class",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["session_id"],
            ["session.id"],
            name="fk_entrant_entrant_session_id_session",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint(
            "event_id",
            "race_class_id",
            "session_id",
            "source_entrant_id",
            name="uq_entrant_source",
        ),
    )
    op.create_index("ix_entrant_session_id", "entrant", ["session_id"])

    op.create_table(
        "lap",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("entrant_id", sa.Uuid(), nullable=False),
        sa.Column("session_id", sa.Uuid(), nullable=False),
        sa.Column("lap_number", sa.Integer(), nullable=False),
        sa.Column("lap_time_ms", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_lap"),
        sa.ForeignKeyConstraint(
            ["entrant_id"],
            ["entrant.id"],
            name="fk_lap_lap_entrant_id_entrant",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["session_id"],
            ["session.id"],
            name="fk_lap_lap_session_id_session",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_lap_entrant_id_session_id", "lap", ["entrant_id", "session_id"])
    op.create_index("ix_lap_session_id", "lap", ["session_id"])

    op.create_table(
        "import_job",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("plan_hash", sa.String(length=64), nullable=False),
        sa.Column("mode", sa.String(length=16), nullable=False),
        sa.Column("state", sa.String(length=16), nullable=False),
        sa.Column("progress_pct", sa.Integer(), nullable=False),
        sa.Column("message", sa.String(), nullable=True),
        *_timestamps(nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_import_job"),
    )
    op.create_index("ix_import_job_state_created_at", "import_job", ["state", "created_at"])

    op.create_table(
        "import_job_item",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("job_id", sa.Uuid(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("target_type", sa.String(length=16), nullable=False),
        sa.Column("target_ref", sa.String(), nullable=False),
        sa.Column("state", sa.String(length=16), nullable=False),
        sa.Column("counts", sa.JSON(), nullable=True),
        sa.Column("message", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_import_job_item"),
        sa.ForeignKeyConstraint(
            ["job_id"],
            ["import_job.id"],
            name="fk_import_job_item_import_job_item_job_id_import_job",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_import_job_item_job_id", "import_job_item", ["job_id"])


def downgrade() -> None:
    op.drop_index("ix_import_job_item_job_id", table_name="import_job_item")
    op.drop_table("import_job_item")
    op.drop_index("ix_import_job_state_created_at", table_name="import_job")
    op.drop_table("import_job")
    op.drop_index("ix_lap_session_id", table_name="lap")
    op.drop_index("ix_lap_entrant_id_session_id", table_name="lap")
    op.drop_table("lap")
    op.drop_index("ix_entrant_session_id", table_name="entrant")
    op.drop_table("entrant")
    op.drop_index("ix_session_event_id", table_name="session")
    op.drop_table("session")
    op.drop_table("race_class")
    op.drop_index("ix_event_source_url", table_name="event")
    op.drop_table("event")
