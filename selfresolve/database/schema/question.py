"""Questions, their estimate sequences and the awards written at resolution."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from selfresolve.shared.enums import QuestionStatus, RewardTier

from .base import Base, question_status_enum, reward_tier_enum


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Question(Base):
    __tablename__ = "question"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    reward_r: Mapped[float] = mapped_column(Float, nullable=False, comment="Bonus R for the last k estimates")
    bonus_k: Mapped[int] = mapped_column(Integer, nullable=False, comment="Bonus tier size k")
    alpha: Mapped[float] = mapped_column(Float, nullable=False, comment="Per-estimate stop probability")
    status: Mapped[QuestionStatus] = mapped_column(
        question_status_enum,
        nullable=False,
        default=QuestionStatus.OPEN,
    )
    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Bumped on every accepted estimate; compare-and-swap guard",
    )
    allocation_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    estimates: Mapped[List["EstimateRow"]] = relationship(
        back_populates="question",
        order_by="EstimateRow.position",
    )

    __table_args__ = (
        CheckConstraint("reward_r > 0", name="reward_positive"),
        CheckConstraint("bonus_k >= 1", name="k_positive"),
        CheckConstraint("alpha > 0 AND alpha <= 1", name="alpha_range"),
        Index("ix_question_status", "status"),
    )


class EstimateRow(Base):
    __tablename__ = "estimate"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    question_id: Mapped[int] = mapped_column(ForeignKey("question.id", ondelete="CASCADE"), nullable=False)
    participant_id: Mapped[int] = mapped_column(ForeignKey("participant.id"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, comment="0-based submission order")
    value_pct: Mapped[int] = mapped_column(Integer, nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    question: Mapped["Question"] = relationship(back_populates="estimates")

    __table_args__ = (
        UniqueConstraint("question_id", "participant_id", name="uq_estimate_question_participant"),
        UniqueConstraint("question_id", "position", name="uq_estimate_question_position"),
        CheckConstraint("value_pct >= 1 AND value_pct <= 99", name="value_pct_range"),
    )


class AwardRow(Base):
    __tablename__ = "award"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    question_id: Mapped[int] = mapped_column(ForeignKey("question.id", ondelete="CASCADE"), nullable=False)
    participant_id: Mapped[int] = mapped_column(ForeignKey("participant.id"), nullable=False)
    estimate_id: Mapped[int] = mapped_column(ForeignKey("estimate.id"), nullable=False)
    tier: Mapped[RewardTier] = mapped_column(reward_tier_enum, nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)

    __table_args__ = (
        UniqueConstraint("question_id", "participant_id", name="uq_award_question_participant"),
    )


__all__ = ["Question", "EstimateRow", "AwardRow"]
