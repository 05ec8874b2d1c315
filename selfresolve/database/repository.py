"""Persistence helpers used inside service-owned transactions.

Every function takes an open AsyncSession; callers decide transaction
boundaries. Nothing here commits.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from selfresolve.market.types import (
    Award,
    Estimate,
    InvariantViolation,
    QuestionParams,
    QuestionState,
)
from selfresolve.shared.enums import QuestionStatus

from .schema import AwardRow, EstimateRow, Participant, Question


async def insert_participant(session: AsyncSession, *, username: str, is_admin: bool = False) -> int:
    row = Participant(username=username, is_admin=is_admin, total_reward=0.0)
    session.add(row)
    await session.flush()
    return row.id


async def get_participant(session: AsyncSession, participant_id: int) -> Optional[Participant]:
    return await session.get(Participant, participant_id)


async def participant_exists(session: AsyncSession, participant_id: int) -> bool:
    stmt = select(Participant.id).where(Participant.id == participant_id)
    return (await session.execute(stmt)).scalar_one_or_none() is not None


async def insert_question(session: AsyncSession, *, text: str, params: QuestionParams) -> int:
    row = Question(
        text=text,
        reward_r=params.reward,
        bonus_k=params.k,
        alpha=params.alpha,
        status=QuestionStatus.OPEN,
        version=0,
    )
    session.add(row)
    await session.flush()
    return row.id


async def get_question(session: AsyncSession, question_id: int) -> Optional[Question]:
    return await session.get(Question, question_id)


async def list_question_rows(session: AsyncSession, *, open_only: bool = True) -> List[Question]:
    stmt = select(Question).order_by(Question.id)
    if open_only:
        stmt = stmt.where(Question.status == QuestionStatus.OPEN)
    return list((await session.execute(stmt)).scalars().all())


async def get_estimate_rows(session: AsyncSession, question_id: int) -> List[EstimateRow]:
    stmt = (
        select(EstimateRow)
        .where(EstimateRow.question_id == question_id)
        .order_by(EstimateRow.position)
    )
    return list((await session.execute(stmt)).scalars().all())


def params_of(row: Question) -> QuestionParams:
    return QuestionParams(reward=float(row.reward_r), k=int(row.bonus_k), alpha=float(row.alpha))


async def load_question_state(
    session: AsyncSession,
    question_id: int,
) -> Optional[Tuple[QuestionState, int]]:
    """Load a question and its estimates. Returns (state, version) or None."""
    row = await get_question(session, question_id)
    if row is None:
        return None
    estimates = [
        Estimate(
            participant_id=e.participant_id,
            value_pct=e.value_pct,
            position=e.position,
            submitted_at=e.submitted_at,
        )
        for e in await get_estimate_rows(session, question_id)
    ]
    for idx, est in enumerate(estimates):
        if est.position != idx:
            raise InvariantViolation(f"question {question_id} has a gap at position {idx}")
    state = QuestionState(
        question_id=row.id,
        params=params_of(row),
        estimates=estimates,
        status=QuestionStatus(row.status),
    )
    return state, int(row.version)


async def compare_and_swap_question(
    session: AsyncSession,
    question_id: int,
    *,
    expected_version: int,
    resolve: bool,
    allocation_hash: str | None = None,
    resolved_at: datetime | None = None,
) -> bool:
    """Bump the version of an OPEN question iff it still carries expected_version.

    Returns False when another writer got there first.
    """
    values: Dict[str, object] = {"version": expected_version + 1}
    if resolve:
        values.update(
            status=QuestionStatus.RESOLVED,
            allocation_hash=allocation_hash,
            resolved_at=resolved_at,
        )
    stmt = (
        update(Question)
        .where(Question.id == question_id)
        .where(Question.version == expected_version)
        .where(Question.status == QuestionStatus.OPEN)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    return (result.rowcount or 0) == 1


async def insert_estimate(session: AsyncSession, question_id: int, estimate: Estimate) -> int:
    row = EstimateRow(
        question_id=question_id,
        participant_id=estimate.participant_id,
        position=estimate.position,
        value_pct=estimate.value_pct,
        submitted_at=estimate.submitted_at or datetime.now(timezone.utc),
    )
    session.add(row)
    await session.flush()
    return row.id


async def insert_awards(
    session: AsyncSession,
    question_id: int,
    awards: Sequence[Award],
    estimate_ids: Mapping[int, int],
) -> None:
    """Persist awards. estimate_ids maps position -> estimate row id."""
    for award in awards:
        try:
            estimate_id = estimate_ids[award.position]
        except KeyError:
            raise InvariantViolation(
                f"award for position {award.position} has no stored estimate on question {question_id}"
            )
        session.add(
            AwardRow(
                question_id=question_id,
                participant_id=award.participant_id,
                estimate_id=estimate_id,
                tier=award.tier,
                amount=award.amount,
            )
        )
    await session.flush()


async def apply_reward_deltas(session: AsyncSession, deltas: Mapping[int, float]) -> None:
    """Increment participant totals. Every id must match exactly one row."""
    for participant_id, delta in sorted(deltas.items()):
        stmt = (
            update(Participant)
            .where(Participant.id == participant_id)
            .values(total_reward=Participant.total_reward + float(delta))
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        if (result.rowcount or 0) != 1:
            raise InvariantViolation(f"reward delta for unknown participant {participant_id}")


async def get_award_rows(session: AsyncSession, question_id: int) -> List[Tuple[AwardRow, EstimateRow]]:
    stmt = (
        select(AwardRow, EstimateRow)
        .join(EstimateRow, AwardRow.estimate_id == EstimateRow.id)
        .where(AwardRow.question_id == question_id)
        .order_by(EstimateRow.position)
    )
    return [(a, e) for a, e in (await session.execute(stmt)).all()]


async def top_participants(session: AsyncSession, limit: int = 10) -> List[Participant]:
    stmt = (
        select(Participant)
        .order_by(Participant.total_reward.desc(), Participant.id)
        .limit(limit)
    )
    return list((await session.execute(stmt)).scalars().all())


async def count_estimates(session: AsyncSession, question_id: int) -> int:
    stmt = select(func.count()).select_from(EstimateRow).where(EstimateRow.question_id == question_id)
    return int((await session.execute(stmt)).scalar_one())


__all__ = [
    "insert_participant",
    "get_participant",
    "participant_exists",
    "insert_question",
    "get_question",
    "list_question_rows",
    "get_estimate_rows",
    "params_of",
    "load_question_state",
    "compare_and_swap_question",
    "insert_estimate",
    "insert_awards",
    "apply_reward_deltas",
    "get_award_rows",
    "top_participants",
    "count_estimates",
]
