"""Shared SQLAlchemy base definitions and enums."""

from __future__ import annotations

from sqlalchemy import Enum as SAEnum, MetaData
from sqlalchemy.orm import DeclarativeBase

from selfresolve.shared.enums import QuestionStatus, RewardTier


# Shared metadata constant so Alembic sees every table
naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}
metadata = MetaData(naming_convention=naming_convention)


class Base(DeclarativeBase):
    metadata = metadata


question_status_enum = SAEnum(
    QuestionStatus,
    name="question_status",
    values_callable=lambda e: [m.value for m in e],
    native_enum=False,
    validate_strings=True,
)

reward_tier_enum = SAEnum(
    RewardTier,
    name="reward_tier",
    values_callable=lambda e: [m.value for m in e],
    native_enum=False,
    validate_strings=True,
)
