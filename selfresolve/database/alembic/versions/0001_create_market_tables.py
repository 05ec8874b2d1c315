"""Create participant, question, estimate and award tables

Revision ID: 0001_create_market_tables
Revises:
Create Date: 2026-10-19 09:00:00
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy import inspect


revision = "0001_create_market_tables"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    existing = set(inspect(bind).get_table_names())

    if "participant" not in existing:
        op.create_table(
            "participant",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("username", sa.String(length=64), nullable=False),
            sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("total_reward", sa.Float(), nullable=False, server_default="0"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id", name="pk_participant"),
            sa.UniqueConstraint("username", name="uq_participant_username"),
        )

    if "question" not in existing:
        op.create_table(
            "question",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("text", sa.Text(), nullable=False),
            sa.Column("reward_r", sa.Float(), nullable=False),
            sa.Column("bonus_k", sa.Integer(), nullable=False),
            sa.Column("alpha", sa.Float(), nullable=False),
            sa.Column("status", sa.String(length=8), nullable=False, server_default="open"),
            sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("allocation_hash", sa.String(length=64), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id", name="pk_question"),
            sa.CheckConstraint("reward_r > 0", name="ck_question_reward_positive"),
            sa.CheckConstraint("bonus_k >= 1", name="ck_question_k_positive"),
            sa.CheckConstraint("alpha > 0 AND alpha <= 1", name="ck_question_alpha_range"),
            sa.CheckConstraint("status IN ('open', 'resolved')", name="ck_question_question_status"),
        )
        op.create_index("ix_question_status", "question", ["status"])

    if "estimate" not in existing:
        op.create_table(
            "estimate",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("question_id", sa.Integer(), nullable=False),
            sa.Column("participant_id", sa.Integer(), nullable=False),
            sa.Column("position", sa.Integer(), nullable=False),
            sa.Column("value_pct", sa.Integer(), nullable=False),
            sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id", name="pk_estimate"),
            sa.ForeignKeyConstraint(
                ["question_id"], ["question.id"],
                name="fk_estimate_question_id_question", ondelete="CASCADE",
            ),
            sa.ForeignKeyConstraint(
                ["participant_id"], ["participant.id"],
                name="fk_estimate_participant_id_participant",
            ),
            sa.UniqueConstraint("question_id", "participant_id", name="uq_estimate_question_participant"),
            sa.UniqueConstraint("question_id", "position", name="uq_estimate_question_position"),
            sa.CheckConstraint("value_pct >= 1 AND value_pct <= 99", name="ck_estimate_value_pct_range"),
        )

    if "award" not in existing:
        op.create_table(
            "award",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("question_id", sa.Integer(), nullable=False),
            sa.Column("participant_id", sa.Integer(), nullable=False),
            sa.Column("estimate_id", sa.Integer(), nullable=False),
            sa.Column("tier", sa.String(length=6), nullable=False),
            sa.Column("amount", sa.Float(), nullable=False),
            sa.PrimaryKeyConstraint("id", name="pk_award"),
            sa.ForeignKeyConstraint(
                ["question_id"], ["question.id"],
                name="fk_award_question_id_question", ondelete="CASCADE",
            ),
            sa.ForeignKeyConstraint(
                ["participant_id"], ["participant.id"],
                name="fk_award_participant_id_participant",
            ),
            sa.ForeignKeyConstraint(
                ["estimate_id"], ["estimate.id"],
                name="fk_award_estimate_id_estimate",
            ),
            sa.UniqueConstraint("question_id", "participant_id", name="uq_award_question_participant"),
            sa.CheckConstraint("tier IN ('bonus', 'scored')", name="ck_award_reward_tier"),
        )


def downgrade() -> None:
    bind = op.get_bind()
    existing = set(inspect(bind).get_table_names())
    for table in ("award", "estimate", "question", "participant"):
        if table in existing:
            op.drop_table(table)
