"""Learning engine: teach rules from corrections, predict from taught rules.

This module implements the two halves of the learn-and-recall loop:

1. **Teach** -- A user correction ``(description, category, note)`` becomes
   a :class:`~finmon.models.Rule`.  The whole lower-cased description is the
   keyword; no token extraction is attempted.  Teaching the same
   ``(keyword, category)`` pair twice is a no-op.

2. **Predict** -- A new description is lower-cased and scanned against the
   RuleSet in insertion order.  The first rule whose keyword is a substring
   of the description wins, even if a later rule has a longer keyword.
   Descriptions shorter than the minimum length never match.

Both services read and write exclusively through an injected ``RuleStore``.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable

from finmon.models import Rule, TeachOutcome
from finmon.store import RuleStore

logger = logging.getLogger(__name__)

MIN_DESCRIPTION_LENGTH = 3


def normalize_keyword(description: str) -> str:
    """Return the keyword form of *description*: trimmed and lower-cased."""
    return description.strip().lower()


def _now_ms() -> int:
    return int(time.time() * 1000)


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Teaching
# ---------------------------------------------------------------------------


class TeachingService:
    """Turn user corrections into persisted rules.

    Args:
        store: The rule store that owns the RuleSet.
        clock: Returns the current time in epoch milliseconds.  Defaults to
            the wall clock.
        id_factory: Returns a fresh rule identifier.  Defaults to uuid4.
    """

    def __init__(
        self,
        store: RuleStore,
        clock: Callable[[], int] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self.store = store
        self.clock = clock or _now_ms
        self.id_factory = id_factory or _new_id

    def teach(self, description: str, category: str, note: str = "") -> Rule | None:
        """Teach a rule and return it, or ``None`` if nothing was learned.

        ``None`` covers both an ignored call (blank description or category)
        and a rule that could not be persisted.  Use :meth:`teach_outcome`
        to tell them apart.
        """
        outcome = self.teach_outcome(description, category, note)
        return outcome.rule if outcome.ok else None

    def teach_outcome(self, description: str, category: str, note: str = "") -> TeachOutcome:
        """Teach a rule and report exactly what happened.

        Args:
            description: Transaction description the user corrected.
            category: The correct category.
            note: Optional rationale supplied by the user.

        Returns:
            A :class:`TeachOutcome` with status ``created``, ``existing``,
            ``ignored`` or ``failed``.
        """
        keyword = normalize_keyword(description or "")
        category = category or ""
        if not keyword or not category.strip():
            logger.debug("Ignoring teach with empty description or category")
            return TeachOutcome(status="ignored")

        with self.store.lock:
            rules = self.store.load()
            for rule in rules:
                if rule.keyword == keyword and rule.category == category:
                    logger.debug("Rule %r -> %r already known", keyword, category)
                    return TeachOutcome(status="existing", rule=rule)

            new_rule = Rule(
                id=self.id_factory(),
                keyword=keyword,
                category=category,
                note=note or "",
                created_at=self.clock(),
            )
            if not self.store.save([*rules, new_rule]):
                return TeachOutcome(
                    status="failed",
                    rule=new_rule,
                    error="learning rules could not be saved",
                )

        logger.info("Learned rule %r -> %r", keyword, category)
        return TeachOutcome(status="created", rule=new_rule)


# ---------------------------------------------------------------------------
# Prediction
# ---------------------------------------------------------------------------


def match_rule(description: str, rules: list[Rule]) -> Rule | None:
    """Return the first rule whose keyword occurs in *description*.

    Matching is case-insensitive.  Rules are scanned in list order, so the
    earliest-taught rule wins when several keywords match.
    """
    text = description.lower()
    for rule in rules:
        if rule.keyword in text:
            return rule
    return None


class PredictionService:
    """Predict a category from previously taught rules.

    Args:
        store: The rule store that owns the RuleSet.
        min_length: Shortest trimmed description considered for matching.
    """

    def __init__(self, store: RuleStore, min_length: int = MIN_DESCRIPTION_LENGTH) -> None:
        self.store = store
        self.min_length = min_length

    def match(self, description: str) -> Rule | None:
        """Return the rule that decides the category for *description*."""
        if len((description or "").strip()) < self.min_length:
            return None
        return match_rule(description, self.store.load())

    def predict(self, description: str) -> str | None:
        """Return the learned category for *description*, or ``None``."""
        rule = self.match(description)
        if rule is None:
            return None
        logger.debug("Predicted %r for %r via rule %s", rule.category, description, rule.id)
        return rule.category
