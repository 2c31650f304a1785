"""Tests for the learning engine.

Covers:
- teach: validation no-ops, keyword normalization, idempotent teach,
  conflicting categories, write failures.
- match_rule / predict: case insensitivity, substring matching, minimum
  length guard, first-match-wins ordering, clear and restart behavior.
"""

from __future__ import annotations

import pytest

from finmon.learning import (
    PredictionService,
    TeachingService,
    match_rule,
    normalize_keyword,
)
from finmon.models import Rule
from finmon.store import JsonFileRuleStore, MemoryRuleStore

from conftest import make_clock, make_ids


# ---------------------------------------------------------------------------
# teach
# ---------------------------------------------------------------------------


class TestTeach:
    """Tests for TeachingService."""

    def test_new_rule_created(self, teacher: TeachingService, memory_store: MemoryRuleStore):
        rule = teacher.teach("AMZN Mktp", "Shopping", "online orders")

        assert rule == Rule(
            id="rule-1",
            keyword="amzn mktp",
            category="Shopping",
            note="online orders",
            created_at=1_767_225_600_000,
        )
        assert memory_store.load() == [rule]

    def test_keyword_is_trimmed_and_lower_cased(self, teacher: TeachingService):
        rule = teacher.teach("  SQ *COFFEE ROAST  ", "Food", "")
        assert rule.keyword == "sq *coffee roast"
        assert rule.category == "Food"

    def test_category_stored_as_supplied(self, teacher: TeachingService):
        rule = teacher.teach("uber trip", "Transport ", "")
        assert rule.category == "Transport "
        assert teacher.teach_outcome("uber trip", "Transport").status == "created"

    @pytest.mark.parametrize(
        "description, category",
        [("", "Food"), ("   ", "Food"), ("starbucks", ""), ("starbucks", "  ")],
    )
    def test_blank_input_is_ignored(
        self, teacher: TeachingService, memory_store: MemoryRuleStore, description, category
    ):
        assert teacher.teach(description, category, "") is None
        assert teacher.teach_outcome(description, category).status == "ignored"
        assert memory_store.load() == []

    def test_idempotent_teach(self, teacher: TeachingService, memory_store: MemoryRuleStore):
        first = teacher.teach("Starbucks", "Food", "")
        second = teacher.teach("STARBUCKS", "Food", "different note")

        assert second == first
        assert len(memory_store.load()) == 1

    def test_repeat_teach_reports_existing(self, teacher: TeachingService):
        teacher.teach("uber trip", "Transport", "")
        outcome = teacher.teach_outcome("uber trip", "Transport", "")
        assert outcome.status == "existing"
        assert outcome.ok
        assert not outcome.changed

    def test_repeat_teach_does_not_write(self, memory_store: MemoryRuleStore):
        service = TeachingService(memory_store, clock=make_clock(), id_factory=make_ids())
        service.teach("uber trip", "Transport", "")
        memory_store.fail_writes = True

        outcome = service.teach_outcome("uber trip", "Transport", "")
        assert outcome.status == "existing"

    def test_conflicting_category_is_appended(
        self, teacher: TeachingService, memory_store: MemoryRuleStore
    ):
        teacher.teach("coffee", "Food", "")
        teacher.teach("coffee", "Entertainment", "")

        rules = memory_store.load()
        assert [(r.keyword, r.category) for r in rules] == [
            ("coffee", "Food"),
            ("coffee", "Entertainment"),
        ]

    def test_insertion_order_preserved(
        self, teacher: TeachingService, memory_store: MemoryRuleStore
    ):
        for name in ("uber trip", "cvs pharmacy", "apl* itunes"):
            teacher.teach(name, "Misc", "")
        rules = memory_store.load()
        assert [r.keyword for r in rules] == ["uber trip", "cvs pharmacy", "apl* itunes"]
        assert rules[0].created_at < rules[1].created_at < rules[2].created_at

    def test_write_failure_returns_none(self):
        store = MemoryRuleStore(fail_writes=True)
        service = TeachingService(store)

        assert service.teach("starbucks", "Food", "") is None
        outcome = service.teach_outcome("starbucks", "Food", "")
        assert outcome.status == "failed"
        assert outcome.rule.keyword == "starbucks"
        assert outcome.error
        assert store.load() == []

    def test_default_ids_are_unique(self, memory_store: MemoryRuleStore):
        service = TeachingService(memory_store)
        a = service.teach("uber", "Transport")
        b = service.teach("lyft", "Transport")
        assert a.id and b.id and a.id != b.id
        assert a.created_at > 0


# ---------------------------------------------------------------------------
# match_rule
# ---------------------------------------------------------------------------


class TestMatchRule:
    """Tests for the raw first-match scan."""

    def test_first_match_wins(self, sample_rules):
        rule = match_rule("Coffee at Starbucks", sample_rules)
        assert rule.id == "r1"

    def test_conflict_resolved_by_insertion_order(self, sample_rules):
        rule = match_rule("COFFEE BEAN", sample_rules)
        assert rule.id == "r2"
        assert rule.category == "Food"

    def test_no_match(self, sample_rules):
        assert match_rule("uber trip", sample_rules) is None

    def test_empty_rules(self):
        assert match_rule("anything", []) is None

    def test_normalize_keyword(self):
        assert normalize_keyword("  AMZN Mktp ") == "amzn mktp"


# ---------------------------------------------------------------------------
# predict
# ---------------------------------------------------------------------------


class TestPredict:
    """Tests for PredictionService."""

    def test_case_insensitive(self, teacher: TeachingService, predictor: PredictionService):
        teacher.teach("AMZN Mktp", "Shopping", "")
        assert predictor.predict("amzn mktp us") == "Shopping"

    def test_substring_match(self, teacher: TeachingService, predictor: PredictionService):
        teacher.teach("starbucks", "Food", "")
        assert predictor.predict("SQ *STARBUCKS #4421") == "Food"

    def test_no_match_on_empty_rule_set(self, predictor: PredictionService):
        assert predictor.predict("random unmatched text") is None

    def test_no_match_returns_none(self, teacher: TeachingService, predictor: PredictionService):
        teacher.teach("starbucks", "Food", "")
        assert predictor.predict("random unmatched text") is None

    def test_minimum_length_guard(self, memory_store: MemoryRuleStore):
        memory_store.save([Rule(id="a", keyword="ab", category="Food")])
        predictor = PredictionService(memory_store)

        assert predictor.predict("ab") is None
        assert predictor.predict("abc") == "Food"

    def test_minimum_length_uses_trimmed_input(self, memory_store: MemoryRuleStore):
        memory_store.save([Rule(id="a", keyword="ab", category="Food")])
        predictor = PredictionService(memory_store)
        assert predictor.predict("  ab  ") is None

    def test_custom_minimum_length(self, memory_store: MemoryRuleStore):
        memory_store.save([Rule(id="a", keyword="uber", category="Transport")])
        predictor = PredictionService(memory_store, min_length=6)
        assert predictor.predict("uber") is None
        assert predictor.predict("uber trip") == "Transport"

    def test_first_match_wins(self, teacher: TeachingService, predictor: PredictionService):
        teacher.teach("coffee", "Food", "")
        teacher.teach("coffee shop", "Entertainment", "")
        assert predictor.predict("coffee shop downtown") == "Food"

    def test_match_returns_rule(self, teacher: TeachingService, predictor: PredictionService):
        taught = teacher.teach("uber", "Transport", "")
        assert predictor.match("UBER TRIP 123") == taught

    def test_empty_and_none_descriptions(self, predictor: PredictionService):
        assert predictor.predict("") is None
        assert predictor.predict(None) is None  # type: ignore[arg-type]

    def test_clear_wipes_predictions(self, teacher: TeachingService, memory_store):
        predictor = PredictionService(memory_store)
        for name, category in [("starbucks", "Food"), ("uber", "Transport"), ("cvs", "Health")]:
            teacher.teach(name, category, "")
        assert predictor.predict("uber trip") == "Transport"

        memory_store.clear()

        assert memory_store.load() == []
        assert predictor.predict("uber trip") is None
        assert predictor.predict("SQ *STARBUCKS") is None


# ---------------------------------------------------------------------------
# Persistence through the file store
# ---------------------------------------------------------------------------


class TestPersistence:
    """Teach and predict against the JSON file store across restarts."""

    def test_round_trip_after_restart(self, file_store: JsonFileRuleStore):
        taught = TeachingService(file_store).teach("AMZN Mktp", "Shopping", "online orders")

        restarted = JsonFileRuleStore(file_store.path)
        assert restarted.load() == [taught]
        assert PredictionService(restarted).predict("amzn mktp us") == "Shopping"

    def test_corrupt_record_starts_fresh(self, file_store: JsonFileRuleStore):
        file_store.path.parent.mkdir(parents=True)
        file_store.path.write_text("not json", encoding="utf-8")

        rule = TeachingService(file_store).teach("uber", "Transport")
        assert rule is not None
        assert file_store.load() == [rule]

    def test_overflowing_timestamp_still_predicts(self, file_store: JsonFileRuleStore):
        file_store.path.parent.mkdir(parents=True)
        file_store.path.write_text(
            '[{"id": "x", "keyword": "uber", "category": "Transport", "timestamp": 1e400}]',
            encoding="utf-8",
        )
        assert PredictionService(file_store).predict("uber trip") == "Transport"

    def test_deeply_nested_record_predicts_nothing(self, file_store: JsonFileRuleStore):
        file_store.path.parent.mkdir(parents=True)
        file_store.path.write_text("[" * 100_000 + "]" * 100_000, encoding="utf-8")

        assert PredictionService(file_store).predict("uber trip") is None
        rule = TeachingService(file_store).teach("uber", "Transport")
        assert file_store.load() == [rule]

    def test_clear_then_load_is_empty(self, file_store: JsonFileRuleStore):
        teacher = TeachingService(file_store)
        teacher.teach("uber", "Transport")
        teacher.teach("cvs", "Health")

        file_store.clear()

        assert JsonFileRuleStore(file_store.path).load() == []
        assert PredictionService(file_store).predict("uber trip") is None
