"""Caller-side integration hooks for the expense and training screens.

These classes hold the small amount of state that the UI layer keeps around
the learning engine:

- :class:`ExpenseEntry` pre-fills the category while a description is typed.
- :class:`CorrectionHandler` teaches a rule when a correction is submitted.
- :class:`TrainingDojo` walks a queue of ambiguous transactions and teaches
  every hypothesis the user confirms.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from finmon.learning import PredictionService, TeachingService
from finmon.models import TeachOutcome

logger = logging.getLogger(__name__)

CATEGORIES = [
    "Food",
    "Housing",
    "Transport",
    "Entertainment",
    "Health",
    "Shopping",
    "Utilities",
    "Savings",
    "Investments",
    "Debt",
]

DOJO_NOTE = "Confirmed by User in Dojo"


# ---------------------------------------------------------------------------
# Expense entry
# ---------------------------------------------------------------------------


class ExpenseEntry:
    """Description and category fields of the add-expense form.

    Args:
        predictor: Service used to look up a learned category.
    """

    def __init__(self, predictor: PredictionService) -> None:
        self.predictor = predictor
        self.description = ""
        self.category = ""

    def on_description_change(self, text: str) -> str:
        """Store the new description and pre-fill the category on a match.

        The category is only overwritten when a learned rule matches; a
        category the user already picked survives non-matching keystrokes.

        Returns:
            The category field after the update.
        """
        self.description = text
        if len(text) > 2:
            predicted = self.predictor.predict(text)
            if predicted:
                self.category = predicted
        return self.category

    def on_category_change(self, category: str) -> None:
        self.category = category

    def reset(self) -> None:
        self.description = ""
        self.category = ""


# ---------------------------------------------------------------------------
# Correction
# ---------------------------------------------------------------------------


class CorrectionHandler:
    """Submit handler of the correction dialog."""

    def __init__(self, teacher: TeachingService) -> None:
        self.teacher = teacher

    def submit(
        self, transaction_name: str, new_category: str, reason: str = ""
    ) -> TeachOutcome | None:
        """Teach *new_category* for *transaction_name*.

        Returns ``None`` without teaching when no category was chosen.
        """
        if not new_category:
            return None
        return self.teacher.teach_outcome(transaction_name, new_category, reason)


# ---------------------------------------------------------------------------
# Training dojo
# ---------------------------------------------------------------------------


@dataclass
class DojoItem:
    name: str
    probable: str


SAMPLE_QUEUE = [
    DojoItem("AMZN MKTP US", "Shopping"),
    DojoItem("SQ *COFFEE ROAST", "Food"),
    DojoItem("UBER TRIP", "Transport"),
    DojoItem("APL* ITUNES", "Entertainment"),
    DojoItem("CVS PHARMACY", "Health"),
]


@dataclass
class TrainingDojo:
    """Confirm-or-skip training over a queue of ambiguous transactions.

    Attributes:
        teacher: Service used to persist confirmed hypotheses.
        queue: Remaining items, current item first.
        level: Starts at 1 and goes up with every answer.
        combo: Consecutive confirmations; reset by a skip.
        taught: Number of rules taught during this session.
    """

    teacher: TeachingService
    queue: list[DojoItem] = field(default_factory=lambda: list(SAMPLE_QUEUE))
    level: int = 1
    combo: int = 0
    taught: int = 0

    @property
    def current(self) -> DojoItem | None:
        return self.queue[0] if self.queue else None

    @property
    def finished(self) -> bool:
        return not self.queue

    def answer(self, is_correct: bool) -> TeachOutcome | None:
        """Answer the current item and advance the queue.

        Returns:
            The teach outcome for a confirmed item, ``None`` for a skip or
            an empty queue.
        """
        item = self.current
        if item is None:
            return None

        outcome = None
        if is_correct:
            outcome = self.teacher.teach_outcome(item.name, item.probable, DOJO_NOTE)
            if outcome.ok:
                self.taught += 1
            self.combo += 1
        else:
            self.combo = 0

        self.queue = self.queue[1:]
        self.level += 1
        return outcome
