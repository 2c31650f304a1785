"""Prompt context: the learned rules sent along with agent chat requests.

The agent endpoint receives the rules as an ordered list of
``{"keyword": ..., "category": ...}`` objects under ``learnedRules`` and
appends them to its prompt so the assistant can acknowledge corrections.
"""

from __future__ import annotations

import json

from finmon.store import RuleStore


class PromptContextBuilder:
    """Project the RuleSet into the compact form used in agent requests.

    Args:
        store: The rule store that owns the RuleSet.
        max_rules: Keep only the N most recently taught rules.  ``0`` or a
            negative value sends the full RuleSet.
    """

    def __init__(self, store: RuleStore, max_rules: int = 0) -> None:
        self.store = store
        self.max_rules = max_rules

    def build_context(self) -> list[dict]:
        """Return ``{keyword, category}`` pairs in insertion order."""
        rules = self.store.load()
        if self.max_rules > 0:
            rules = rules[-self.max_rules :]
        return [{"keyword": r.keyword, "category": r.category} for r in rules]


def format_for_prompt(context: list[dict]) -> str:
    """Render *context* as the ``[LEARNED RULES]`` prompt suffix.

    Returns an empty string when there are no rules, so callers can append
    the result unconditionally.
    """
    if not context:
        return ""
    return f"\n\n[LEARNED RULES]: {json.dumps(context, ensure_ascii=False)}"
