"""Agent chat client: sends chat messages with the learned rules attached.

The FinMon agent endpoint owns all language-model behavior.  This module only
builds the request body (including ``learnedRules`` from a
:class:`~finmon.context.PromptContextBuilder`), posts it with httpx, and
returns the ``response`` text.  Two implementations are provided:

- AgentClient: posts to the configured agent URL.
- NullAgentClient: offline client that always answers with the fallback text.

On any failure the clients return the persona's fallback text rather than
raising, matching how the chat screens degrade.
"""

from __future__ import annotations

import json
import logging
from typing import Protocol

import httpx

from finmon.context import PromptContextBuilder

logger = logging.getLogger(__name__)

PERSONAS = {
    "professor": "chat_professor",
    "finmon": "chat_finmon",
}

FALLBACK_RESPONSES = {
    "professor": "Professor Ledger is out of office (Connection Error).",
    "finmon": "... (Silence)",
}


class ChatClient(Protocol):
    """Protocol for agent chat clients."""

    def chat(
        self,
        message: str,
        history: list[dict] | None = None,
        persona: str = "professor",
        user_level: int = 1,
        memory_context: str = "",
        finmon_state: dict | None = None,
    ) -> str:
        ...


def build_chat_payload(
    message: str,
    learned_rules: list[dict],
    history: list[dict] | None = None,
    persona: str = "professor",
    user_level: int = 1,
    memory_context: str = "",
    finmon_state: dict | None = None,
) -> dict:
    """Construct the agent request body for a chat message.

    Args:
        message: The user's message.
        learned_rules: ``{keyword, category}`` pairs from the prompt context.
        history: Prior turns as ``{"role": ..., "parts": [{"text": ...}]}``.
        persona: ``"professor"`` or ``"finmon"``.
        user_level: Player level, sent with professor chats only.
        memory_context: Relevant memory snippets, passed through verbatim.
        finmon_state: Creature state, sent with finmon chats only.

    Returns:
        The JSON-ready request body.

    Raises:
        ValueError: If *persona* is unknown.
    """
    if persona not in PERSONAS:
        raise ValueError(f"Unknown persona: {persona!r}")

    payload: dict = {
        "type": PERSONAS[persona],
        "history": list(history or []),
        "message": message,
        "memoryContext": memory_context,
        "learnedRules": learned_rules,
    }
    if persona == "professor":
        payload["userLevel"] = user_level
    else:
        payload["finMonState"] = finmon_state or {}
    return payload


class AgentClient:
    """Chat client that posts to the FinMon agent endpoint via httpx.

    Args:
        url: Full URL of the agent endpoint.
        context_builder: Supplies the learned rules for every request.
        timeout: HTTP request timeout in seconds. Default: 30.
    """

    def __init__(
        self,
        url: str,
        context_builder: PromptContextBuilder,
        timeout: float = 30.0,
    ) -> None:
        self.url = url
        self.context_builder = context_builder
        self.timeout = timeout

    def chat(
        self,
        message: str,
        history: list[dict] | None = None,
        persona: str = "professor",
        user_level: int = 1,
        memory_context: str = "",
        finmon_state: dict | None = None,
    ) -> str:
        """Send *message* to the agent and return its reply text.

        Returns:
            The agent's ``response`` string, or the persona's fallback text
            on any failure.
        """
        payload = build_chat_payload(
            message,
            self.context_builder.build_context(),
            history=history,
            persona=persona,
            user_level=user_level,
            memory_context=memory_context,
            finmon_state=finmon_state,
        )
        fallback = FALLBACK_RESPONSES[persona]

        try:
            response = httpx.post(self.url, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except httpx.TimeoutException:
            logger.warning("Agent request timed out")
            return fallback
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Agent API returned HTTP %d: %s",
                exc.response.status_code,
                exc.response.text[:200],
            )
            return fallback
        except httpx.HTTPError as exc:
            logger.warning("Agent request failed: %s", exc)
            return fallback

        try:
            text = response.json()["response"]
        except (json.JSONDecodeError, KeyError, TypeError) as exc:
            logger.warning("Failed to extract text from agent response: %s", exc)
            return fallback

        if not isinstance(text, str) or not text:
            logger.warning("Agent response contained no text")
            return fallback
        return text


class NullAgentClient:
    """Offline chat client.  Always answers with the fallback text."""

    def chat(
        self,
        message: str,
        history: list[dict] | None = None,
        persona: str = "professor",
        user_level: int = 1,
        memory_context: str = "",
        finmon_state: dict | None = None,
    ) -> str:
        if persona not in PERSONAS:
            raise ValueError(f"Unknown persona: {persona!r}")
        return FALLBACK_RESPONSES[persona]
