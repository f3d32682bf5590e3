"""
File: zapbot/services/trigger_matcher.py
Project: ZapBot WhatsApp Automation

Purpose:
Keyword trigger matching for automated replies.

Rules enforced:
- Pure function, no database access, no sending
- Rules are evaluated in the order supplied; the first match wins
- A trigger piece matches a message word when either contains the other
  (so "oi" also matches "boi"; word-boundary matching is a known candidate fix)
- Blank trigger pieces never match
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Protocol, TypeVar


class TriggerRule(Protocol):
    trigger: str
    response: str


R = TypeVar("R", bound=TriggerRule)


def split_triggers(trigger_field: str | None) -> List[str]:
    pieces = (piece.strip().lower() for piece in (trigger_field or "").split(","))
    return [piece for piece in pieces if piece]


def _rule_matches(triggers: List[str], words: List[str]) -> bool:
    return any(
        trigger in word or word in trigger
        for trigger in triggers
        for word in words
    )


def match_response(rules: Iterable[R], message_text: str | None) -> Optional[R]:
    words = (message_text or "").lower().split()
    if not words:
        return None

    for rule in rules:
        if _rule_matches(split_triggers(rule.trigger), words):
            return rule
    return None
