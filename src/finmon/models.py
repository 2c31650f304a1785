"""Core data models for the FinMon learning engine.

This module defines the dataclasses shared by the store, the services, the
hooks, and the CLI.  It has zero internal imports -- everything depends on
it, but it depends on nothing within the package.
"""

from __future__ import annotations

from dataclasses import dataclass

# Name of the persisted learning-rules record.  Kept distinct from the
# overall user-state record.
RULES_RECORD_NAME = "finmon_learning_rules"


@dataclass(frozen=True)
class Rule:
    """A learned description-to-category mapping.

    Rules are matched via case-insensitive substring matching against a
    transaction description.  When several rules match, the one taught
    first wins.

    Attributes:
        id: Unique identifier generated at creation time.
        keyword: Lower-cased, trimmed description captured at teaching
            time.  Never empty.
        category: The correct category supplied by the user.
        note: Optional free-text rationale, or empty string.
        created_at: Creation time in milliseconds since the epoch.  Used
            only for ordering and audit, never for matching.
    """

    id: str
    keyword: str
    category: str
    note: str = ""
    created_at: int = 0

    def to_dict(self) -> dict:
        """Return the persisted representation of this rule."""
        return {
            "id": self.id,
            "keyword": self.keyword,
            "category": self.category,
            "note": self.note,
            "timestamp": self.created_at,
        }


@dataclass(frozen=True)
class TeachOutcome:
    """Result of a teach attempt.

    Default call sites only check :attr:`ok`; callers that want to tell
    "nothing to do" apart from "actually failed" inspect :attr:`status`.

    Attributes:
        status: One of ``"created"``, ``"existing"``, ``"ignored"`` or
            ``"failed"``.
        rule: The new rule (``created``), the matching stored rule
            (``existing``), the rule that could not be persisted
            (``failed``), or ``None`` (``ignored``).
        error: Human-readable reason for ``failed``, else empty string.
    """

    status: str
    rule: Rule | None = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.status in ("created", "existing")

    @property
    def changed(self) -> bool:
        return self.status == "created"


@dataclass
class AppConfig:
    """Top-level application configuration loaded from config.toml.

    Attributes:
        rules_file: Path of the learning-rules JSON record, relative to
            the project root unless absolute.
        min_description_length: Shortest trimmed description that is
            considered for prediction.  Default: 3.
        context_max_rules: Cap on the number of rules sent to the agent.
            ``0`` means no cap.
        agent_url: URL of the FinMon agent endpoint.
        agent_timeout: HTTP timeout in seconds for agent requests.
    """

    rules_file: str = f"data/{RULES_RECORD_NAME}.json"
    min_description_length: int = 3
    context_max_rules: int = 0
    agent_url: str = "http://localhost:3000/api/finmon-agent"
    agent_timeout: float = 30.0
