"""Shared pytest fixtures for FinMon learning engine tests.

Provides reusable fixtures for:
- memory_store / file_store: empty rule stores (in-memory and on disk).
- teacher / predictor: services wired to the in-memory store with a
  deterministic clock and id factory.
- sample_rules: a small RuleSet with one conflicting keyword.
- tmp_project_dir: a temporary directory initialized with config.toml.
"""

from __future__ import annotations

import itertools
from pathlib import Path

import pytest

from finmon.config import initialize
from finmon.learning import PredictionService, TeachingService
from finmon.models import Rule
from finmon.store import JsonFileRuleStore, MemoryRuleStore


# ---------------------------------------------------------------------------
# Deterministic clock and ids
# ---------------------------------------------------------------------------


def make_clock(start: int = 1_767_225_600_000, step: int = 1000):
    """Return a clock that advances by *step* milliseconds per call."""
    counter = itertools.count(start, step)
    return lambda: next(counter)


def make_ids(prefix: str = "rule"):
    """Return an id factory producing ``rule-1``, ``rule-2``, ..."""
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter)}"


# ---------------------------------------------------------------------------
# Stores and services
# ---------------------------------------------------------------------------


@pytest.fixture
def memory_store() -> MemoryRuleStore:
    """An empty in-memory rule store."""
    return MemoryRuleStore()


@pytest.fixture
def file_store(tmp_path: Path) -> JsonFileRuleStore:
    """An empty JSON-file rule store under a temporary directory."""
    return JsonFileRuleStore(tmp_path / "data" / "finmon_learning_rules.json")


@pytest.fixture
def teacher(memory_store: MemoryRuleStore) -> TeachingService:
    """TeachingService with a deterministic clock and ids."""
    return TeachingService(memory_store, clock=make_clock(), id_factory=make_ids())


@pytest.fixture
def predictor(memory_store: MemoryRuleStore) -> PredictionService:
    """PredictionService reading from the same store as ``teacher``."""
    return PredictionService(memory_store)


@pytest.fixture
def sample_rules() -> list[Rule]:
    """Three rules in insertion order; ``coffee`` is taught twice."""
    return [
        Rule(id="r1", keyword="starbucks", category="Food", note="", created_at=1000),
        Rule(id="r2", keyword="coffee", category="Food", note="morning", created_at=2000),
        Rule(
            id="r3",
            keyword="coffee",
            category="Entertainment",
            note="board game cafe",
            created_at=3000,
        ),
    ]


# ---------------------------------------------------------------------------
# tmp_project_dir -- initialized project for CLI and config tests
# ---------------------------------------------------------------------------


@pytest.fixture
def tmp_project_dir(tmp_path: Path) -> Path:
    """A temporary directory with a default config.toml and data directory."""
    project = tmp_path / "finmon-project"
    initialize(project)
    return project
