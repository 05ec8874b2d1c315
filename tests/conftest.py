from __future__ import annotations

import random
from typing import Iterable

import pytest
import pytest_asyncio

from selfresolve.config import Settings
from selfresolve.database import DBM, initialize
from selfresolve.market.allocation import RewardAllocator
from selfresolve.market.lifecycle import QuestionLifecycle
from selfresolve.market.stopping import StoppingRule
from selfresolve.service import MarketService


class ScriptedRandom(random.Random):
    """random() returns the scripted values in order, then repeats the last one."""

    def __init__(self, values: Iterable[float]):
        super().__init__(0)
        self.values = list(values)
        self.calls = 0

    def random(self) -> float:
        idx = min(self.calls, len(self.values) - 1)
        self.calls += 1
        return self.values[idx]


def never_stop_rule() -> StoppingRule:
    return StoppingRule(ScriptedRandom([0.999999]))


def stop_on_call(n: int) -> StoppingRule:
    """Fires on the n-th consultation (1-based) for any alpha > 0."""
    return StoppingRule(ScriptedRandom([0.999999] * (n - 1) + [0.0]))


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        test_mode=True,
        data_dir=str(tmp_path),
        market={"max_estimates": 100, "seed": 7},
        retry={"max_attempts": 10, "initial_backoff_ms": 1, "max_backoff_ms": 20},
    )


@pytest_asyncio.fixture
async def dbm(settings):
    url = initialize(settings)
    manager = DBM(settings, url)
    yield manager
    await manager.dispose()


def make_service(dbm: DBM, rule: StoppingRule, capacity: int = 100) -> MarketService:
    lifecycle = QuestionLifecycle(stopping_rule=rule, allocator=RewardAllocator(), capacity=capacity)
    return MarketService(dbm, lifecycle=lifecycle)
