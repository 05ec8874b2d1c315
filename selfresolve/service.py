"""Market service: the operations exposed to the transport layer.

Each call opens its own session; nothing is shared between calls except the
DBM and a per-question lock registry owned by this instance.

Submissions on one question are serialized twice over:
1. an asyncio.Lock per question id (in-process)
2. a compare-and-swap on question.version inside the write transaction
   (across processes). A lost race rolls the transaction back and the whole
   submission is retried, invisible to the caller.

The estimate insert, the question update, the award rows and every
participant total increment commit together or not at all.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, OperationalError

from selfresolve.config import Settings
from selfresolve.database import repository as repo
from selfresolve.database.dbm import DBM
from selfresolve.market.allocation import RewardAllocator, effective_k
from selfresolve.market.audit.hashing import compute_allocation_hash, compute_awards_hash
from selfresolve.market.audit.logging import ResolutionAuditLogger, get_audit_logger
from selfresolve.market.lifecycle import QuestionLifecycle
from selfresolve.market.scoring import score_curve
from selfresolve.market.stopping import StoppingRule
from selfresolve.market.types import (
    Award,
    ConcurrencyError,
    InvariantViolation,
    NotFoundError,
    ValidationError,
)
from selfresolve.market.validation import (
    validate_estimate_pct,
    validate_params,
    validate_question_text,
    validate_username,
)
from selfresolve.protocol.models.v1 import (
    EstimateView,
    LeaderboardEntry,
    ParticipantResult,
    QuestionParameters,
    QuestionView,
    ResultsView,
    ScoreCurvePoint,
    SubmitResult,
)
from selfresolve.shared.enums import QuestionStatus

logger = logging.getLogger(__name__)


class _StaleQuestion(Exception):
    """Internal signal: another writer changed the question first."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MarketService:
    def __init__(
        self,
        dbm: DBM,
        settings: Optional[Settings] = None,
        *,
        lifecycle: Optional[QuestionLifecycle] = None,
        audit: Optional[ResolutionAuditLogger] = None,
    ):
        self.dbm = dbm
        self.settings = settings or dbm.settings
        market = self.settings.market
        self.lifecycle = lifecycle or QuestionLifecycle(
            stopping_rule=StoppingRule.seeded(market.seed),
            allocator=RewardAllocator(prior_belief=market.prior_belief, eps=market.epsilon),
            capacity=market.max_estimates,
        )
        self.audit = audit or get_audit_logger()
        self._locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, question_id: int) -> asyncio.Lock:
        lock = self._locks.get(question_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[question_id] = lock
        return lock

    # ─────────────────────────────────────────────────────────────────────
    # Participants
    # ─────────────────────────────────────────────────────────────────────

    async def register_participant(self, username: str, is_admin: bool = False) -> int:
        """Create an identity record. Authentication happens outside the engine."""
        name = validate_username(username)
        try:
            async with self.dbm.session() as session:
                async with session.begin():
                    participant_id = await repo.insert_participant(session, username=name, is_admin=is_admin)
        except IntegrityError:
            raise ValidationError(f"username {name!r} is already registered")
        logger.info({"event": "participant_registered", "participant_id": participant_id})
        return participant_id

    async def get_participant_total(self, participant_id: int) -> float:
        async with self.dbm.session() as session:
            row = await repo.get_participant(session, participant_id)
            if row is None:
                raise NotFoundError(f"participant {participant_id} not found")
            return float(row.total_reward)

    async def get_leaderboard(self, limit: int = 10) -> List[LeaderboardEntry]:
        if limit < 1:
            raise ValidationError("limit must be >= 1")
        async with self.dbm.session() as session:
            rows = await repo.top_participants(session, limit)
        return [
            LeaderboardEntry(participant_id=r.id, username=r.username, total=float(r.total_reward))
            for r in rows
        ]

    # ─────────────────────────────────────────────────────────────────────
    # Questions
    # ─────────────────────────────────────────────────────────────────────

    async def create_question(self, text: str, R: object, k: object, alpha: object) -> int:
        """Create an OPEN question. Caller has already checked admin rights."""
        cleaned = validate_question_text(text, self.settings.market.max_question_text)
        params = validate_params(R, k, alpha)
        async with self.dbm.session() as session:
            async with session.begin():
                question_id = await repo.insert_question(session, text=cleaned, params=params)
        self.audit.log_question_created(question_id, params.reward, params.k, params.alpha)
        return question_id

    async def get_question(self, question_id: int) -> QuestionView:
        async with self.dbm.session() as session:
            row = await repo.get_question(session, question_id)
            if row is None:
                raise NotFoundError(f"question {question_id} not found")
            estimates = await repo.get_estimate_rows(session, question_id)
        return self._question_view(row, estimates)

    async def list_questions(self, open_only: bool = True) -> List[QuestionView]:
        async with self.dbm.session() as session:
            rows = await repo.list_question_rows(session, open_only=open_only)
            views = []
            for row in rows:
                estimates = await repo.get_estimate_rows(session, row.id)
                views.append(self._question_view(row, estimates))
        return views

    @staticmethod
    def _question_view(row, estimates) -> QuestionView:
        status = QuestionStatus(row.status)
        return QuestionView(
            id=row.id,
            text=row.text,
            parameters=QuestionParameters(R=row.reward_r, k=row.bonus_k, alpha=row.alpha),
            estimates=[
                EstimateView(
                    participant_id=e.participant_id,
                    value=e.value_pct,
                    position=e.position,
                    submitted_at=e.submitted_at,
                )
                for e in estimates
            ],
            status=status,
            resolved=status is QuestionStatus.RESOLVED,
        )

    # ─────────────────────────────────────────────────────────────────────
    # Submission
    # ─────────────────────────────────────────────────────────────────────

    async def submit_estimate(self, question_id: int, participant_id: int, value: object) -> SubmitResult:
        """Record one estimate, resolving the question if the stopping rule fires.

        Raises:
            ValidationError: value out of range, question resolved, or
                participant already submitted (no state change)
            NotFoundError: unknown question or participant
            InvariantViolation: core bug or failed concurrency control
            ConcurrencyError: optimistic retries exhausted
        """
        pct = validate_estimate_pct(value)
        retry = self.settings.retry

        async with self._lock_for(question_id):
            attempt = 0
            while True:
                attempt += 1
                try:
                    return await self._submit_once(question_id, participant_id, pct, attempt)
                except _StaleQuestion as e:
                    if attempt >= retry.max_attempts:
                        raise ConcurrencyError(
                            f"question {question_id}: gave up after {attempt} conflicting attempts"
                        ) from e
                    self.audit.log_conflict(question_id, attempt, str(e))
                    backoff_ms = min(retry.initial_backoff_ms * (2 ** (attempt - 1)), retry.max_backoff_ms)
                    await asyncio.sleep(backoff_ms / 1000.0)
                except InvariantViolation as e:
                    self.audit.log_invariant_violation(question_id, e)
                    raise

    async def _submit_once(self, question_id: int, participant_id: int, pct: int, attempt: int) -> SubmitResult:
        now = _utcnow()
        try:
            async with self.dbm.session() as session:
                async with session.begin():
                    loaded = await repo.load_question_state(session, question_id)
                    if loaded is None:
                        raise NotFoundError(f"question {question_id} not found")
                    state, version = loaded
                    if not await repo.participant_exists(session, participant_id):
                        raise NotFoundError(f"participant {participant_id} not found")

                    outcome = self.lifecycle.submit(state, participant_id, pct, now)

                    allocation_hash = None
                    if outcome.resolved:
                        allocation_hash = compute_allocation_hash(question_id, outcome.allocation)

                    # First write of the transaction: claims the question or detects a lost race.
                    swapped = await repo.compare_and_swap_question(
                        session,
                        question_id,
                        expected_version=version,
                        resolve=outcome.resolved,
                        allocation_hash=allocation_hash,
                        resolved_at=now if outcome.resolved else None,
                    )
                    if not swapped:
                        raise _StaleQuestion(f"version {version} is stale")

                    estimate_id = await repo.insert_estimate(session, question_id, outcome.estimate)

                    if outcome.resolved:
                        estimate_ids = {e.position: e.id for e in await repo.get_estimate_rows(session, question_id)}
                        estimate_ids[outcome.estimate.position] = estimate_id
                        await repo.insert_awards(session, question_id, outcome.allocation.awards, estimate_ids)
                        await repo.apply_reward_deltas(session, outcome.allocation.deltas())
        except IntegrityError as e:
            raise _StaleQuestion(f"constraint conflict: {e.orig}") from e
        except OperationalError as e:
            if "locked" in str(e.orig).lower() or "busy" in str(e.orig).lower():
                raise _StaleQuestion(f"database busy: {e.orig}") from e
            raise

        self.audit.log_submission(question_id, participant_id, outcome.estimate.position, outcome.resolved, attempt)
        if outcome.resolved:
            self.audit.log_resolution(question_id, outcome.allocation, allocation_hash)

        return SubmitResult(
            question_id=question_id,
            position=outcome.estimate.position,
            resolved=outcome.resolved,
        )

    # ─────────────────────────────────────────────────────────────────────
    # Results
    # ─────────────────────────────────────────────────────────────────────

    async def get_results(self, question_id: int) -> ResultsView:
        """Per-participant awards of a resolved question, in submission order."""
        async with self.dbm.session() as session:
            row = await repo.get_question(session, question_id)
            if row is None:
                raise NotFoundError(f"question {question_id} not found")
            if QuestionStatus(row.status) is not QuestionStatus.RESOLVED:
                raise ValidationError(f"question {question_id} is not resolved")
            pairs = await repo.get_award_rows(session, question_id)
            n_estimates = await repo.count_estimates(session, question_id)

        try:
            if not pairs or len(pairs) != n_estimates:
                raise InvariantViolation(
                    f"resolved question {question_id} has {len(pairs)} awards for {n_estimates} estimates"
                )
            awards = [
                Award(
                    participant_id=a.participant_id,
                    position=e.position,
                    value_pct=e.value_pct,
                    tier=a.tier,
                    amount=float(a.amount),
                )
                for a, e in pairs
            ]
            if row.allocation_hash and compute_awards_hash(question_id, awards) != row.allocation_hash:
                raise InvariantViolation(f"stored awards for question {question_id} do not match their hash")
        except InvariantViolation as e:
            self.audit.log_invariant_violation(question_id, e)
            raise

        return ResultsView(
            question_id=question_id,
            final_estimate=awards[-1].value_pct,
            effective_k=effective_k(row.bonus_k, len(awards)),
            allocation_hash=row.allocation_hash,
            per_participant=[
                ParticipantResult(
                    participant_id=a.participant_id,
                    estimate=a.value_pct,
                    reward=a.amount,
                    tier=a.tier,
                )
                for a in awards
            ],
        )

    def score_curve(self, reference_pct: object) -> List[ScoreCurvePoint]:
        """Score of every estimate 1..99 against one reference, for explaining rewards."""
        ref = validate_estimate_pct(reference_pct)
        market = self.settings.market
        curve = score_curve(ref, market.prior_belief, market.epsilon)
        return [ScoreCurvePoint(estimate=i + 1, score=float(s)) for i, s in enumerate(curve)]


__all__ = ["MarketService"]
