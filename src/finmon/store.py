"""Rule storage: the single owner of the learned RuleSet.

Rules are persisted as one JSON record holding an ordered list::

    [
        {"id": "...", "keyword": "...", "category": "...",
         "note": "...", "timestamp": 1767225600000},
        ...
    ]

Two implementations share the ``RuleStore`` protocol:

- :class:`JsonFileRuleStore` keeps the record on local disk.
- :class:`MemoryRuleStore` keeps it in memory (tests, throwaway sessions).

Read failures are never surfaced: a missing or corrupt record loads as an
empty RuleSet.  Write failures are logged and reported through the boolean
return value of ``save`` / ``clear``; they are not retried.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Protocol

from finmon.models import Rule

logger = logging.getLogger(__name__)


class RuleStore(Protocol):
    """Protocol that rule stores must implement.

    ``lock`` guards read-modify-write sequences (load, append, save) so
    that two writers in the same process cannot lose each other's rules.
    """

    lock: threading.RLock

    def load(self) -> list[Rule]:
        ...

    def save(self, rules: list[Rule]) -> bool:
        ...

    def clear(self) -> bool:
        ...


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------


def rules_from_payload(payload: object) -> list[Rule]:
    """Convert a decoded JSON payload into a list of rules.

    A payload that is not a list is treated as corrupt and yields an empty
    list.  Entries that are not objects or that lack a keyword or category
    are skipped.  The legacy key names ``correctCategory`` and ``userNote``
    are accepted alongside ``category`` and ``note``.
    """
    if not isinstance(payload, list):
        logger.warning("Learning rules record is not a list; ignoring it")
        return []

    rules: list[Rule] = []
    for entry in payload:
        if not isinstance(entry, dict):
            logger.warning("Skipping malformed learning rule: %r", entry)
            continue
        keyword = str(entry.get("keyword", "")).strip().lower()
        category = str(entry.get("category", entry.get("correctCategory", "")))
        if not keyword or not category.strip():
            logger.warning("Skipping learning rule without keyword or category: %r", entry)
            continue
        try:
            created_at = int(entry.get("timestamp", 0))
        except (TypeError, ValueError, OverflowError):
            created_at = 0
        rules.append(
            Rule(
                id=str(entry.get("id", "")),
                keyword=keyword,
                category=category,
                note=str(entry.get("note", entry.get("userNote", "")) or ""),
                created_at=created_at,
            )
        )
    return rules


def rules_to_payload(rules: list[Rule]) -> list[dict]:
    """Convert rules to their JSON-ready representation, preserving order."""
    return [rule.to_dict() for rule in rules]


# ---------------------------------------------------------------------------
# JSON file store
# ---------------------------------------------------------------------------


class JsonFileRuleStore:
    """Rule store backed by a single JSON file.

    The parsed RuleSet is cached against the file's modification time and
    size, so repeated loads (one per keystroke in the expense form) do not
    re-read an unchanged file, while writes made by another process are
    still picked up.  A same-size rewrite by another process within one
    mtime tick is not detected and the previous RuleSet is returned.

    Args:
        path: Location of the JSON record.  Parent directories are created
            on the first save.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.lock = threading.RLock()
        self._cache: list[Rule] | None = None
        self._cache_key: tuple[int, int] | None = None

    def load(self) -> list[Rule]:
        """Return the persisted rules, or an empty list if none are readable."""
        with self.lock:
            try:
                stat = self.path.stat()
            except FileNotFoundError:
                self._invalidate()
                return []
            except OSError as exc:
                logger.warning("Could not stat learning rules %s: %s", self.path, exc)
                return []

            key = (stat.st_mtime_ns, stat.st_size)
            if self._cache is not None and self._cache_key == key:
                return list(self._cache)

            try:
                payload = json.loads(self.path.read_text(encoding="utf-8"))
            except (json.JSONDecodeError, UnicodeDecodeError, RecursionError, OSError) as exc:
                logger.warning("Could not read learning rules %s: %s", self.path, exc)
                self._invalidate()
                return []

            rules = rules_from_payload(payload)
            self._cache = rules
            self._cache_key = key
            return list(rules)

    def save(self, rules: list[Rule]) -> bool:
        """Atomically overwrite the record with *rules*.

        The payload is written to a temporary file in the same directory and
        moved over the record with ``os.replace``, so readers never observe a
        partial write.

        Returns:
            ``True`` if the record was written, ``False`` on a storage error.
        """
        text = json.dumps(rules_to_payload(rules), indent=2, ensure_ascii=False)
        with self.lock:
            tmp_name = ""
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(
                    prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
                )
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(text)
                os.replace(tmp_name, self.path)
            except OSError as exc:
                logger.warning("Could not save learning rules %s: %s", self.path, exc)
                if tmp_name:
                    Path(tmp_name).unlink(missing_ok=True)
                self._invalidate()
                return False

            self._invalidate()
            logger.debug("Saved %d learning rule(s) to %s", len(rules), self.path)
            return True

    def clear(self) -> bool:
        """Delete the record.  A missing record is not an error."""
        with self.lock:
            try:
                self.path.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("Could not delete learning rules %s: %s", self.path, exc)
                return False
            self._invalidate()
            logger.info("Learned rules wiped.")
            return True

    def _invalidate(self) -> None:
        self._cache = None
        self._cache_key = None


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


class MemoryRuleStore:
    """Rule store that keeps the RuleSet in memory.

    ``fail_writes`` makes every ``save`` report failure without changing
    the stored rules, which lets callers exercise the write-failure path.
    """

    def __init__(self, rules: list[Rule] | None = None, fail_writes: bool = False) -> None:
        self.lock = threading.RLock()
        self.fail_writes = fail_writes
        self._rules: list[Rule] = list(rules or [])

    def load(self) -> list[Rule]:
        with self.lock:
            return list(self._rules)

    def save(self, rules: list[Rule]) -> bool:
        with self.lock:
            if self.fail_writes:
                logger.warning("Could not save learning rules: storage unavailable")
                return False
            self._rules = list(rules)
            return True

    def clear(self) -> bool:
        with self.lock:
            self._rules = []
            logger.info("Learned rules wiped.")
            return True
