"""
query_classifier.py
===================
Determine the intent of a natural-language question about the log corpus.

Rules are evaluated in a fixed priority order and the first match wins:

  NAME_LOOKUP       "как меня зовут", "моё имя", "what is my name"
  PERSONAL_PROFILE  "расскажи обо мне", "кто я", "my profile"
  STATISTICAL       "сколько", "топ", "чаще всего", "больше всего", "how many",
                    "the most errors"
  ANALYTICAL        everything else

So "как меня зовут и сколько всего ошибок" is a NAME_LOOKUP even though it
also contains statistical phrasing.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import List, Pattern, Tuple

logger = logging.getLogger(__name__)


class QueryIntent(str, Enum):
    NAME_LOOKUP      = "name_lookup"
    PERSONAL_PROFILE = "personal_profile"
    STATISTICAL      = "statistical"
    ANALYTICAL       = "analytical"


_PUNCTUATION = re.compile(r"[!?.,:;()\"'`]")
_WHITESPACE  = re.compile(r"\s+")


def _compile(*patterns: str) -> List[Pattern[str]]:
    return [re.compile(p) for p in patterns]


# ---------------------------------------------------------------------------
# Ordered intent rules (patterns run against the normalized question)
# ---------------------------------------------------------------------------

_RULES: List[Tuple[QueryIntent, List[Pattern[str]]]] = [
    (QueryIntent.NAME_LOOKUP, _compile(
        r"\b(?:как\s+)?меня\s+зовут\b",
        r"\bмо[её]\s+имя\b",
        r"\bимя\s+профил(?:я|е)\b",
        r"\bwhats\s+my\s+name\b",
        r"\bwhat\s+is\s+my\s+name\b",
        r"\bmy\s+name\b",
    )),
    (QueryIntent.PERSONAL_PROFILE, _compile(
        r"расскажи.*обо\s+мне",
        r"\bкто\s+я\b",
        r"что.*знаешь.*обо\s+мне",
        r"\bмой\s+профиль\b",
        r"\bмоя\s+информация\b",
        r"\bмоя\s+роль\b",
        r"какое.*имя.*(?:пользовател|профил)",
        r"\btell\s+me\s+about\s+(?:me|myself)\b",
        r"\bwho\s+am\s+i\b",
        r"\bmy\s+profile\b",
        r"\bmy\s+role\b",
        r"what.*know.*about\s+me\b",
    )),
    (QueryIntent.STATISTICAL, _compile(
        r"сколько",
        r"чаще\s+всего",
        r"больше\s+всего",
        r"сам(?:ая|ый|ое|ые)\s+част",
        r"какая.*чаще",
        r"какой.*чаще",
        r"какой.*больше",
        r"какая.*самая",
        r"какой.*самый",
        r"\bтоп\b",
        r"статистик",
        r"рейтинг",
        r"\bhow\s+many\b",
        r"\bhow\s+often\b",
        r"\bcount\b",
        r"\bmost\b",
        r"\btop\b",
        r"\bstatistic",
        r"\branking\b",
    )),
]

# Cues that the user wants reasoning, not a single fact.
_EXPLANATION_PATTERNS: List[Pattern[str]] = _compile(
    r"почему",
    r"объясни",
    r"проанализируй",
    r"что\s+(?:делать|проверить|происходит)",
    r"как\s+(?:исправить|починить|решить)",
    r"в\s+чём\s+причина|в\s+чем\s+причина",
    r"\bwhy\b",
    r"\bexplain\b",
    r"\banaly[sz]e\b",
    r"\bhow\s+(?:to|do\s+i|can\s+i)\s+fix\b",
    r"\bwhat\s+should\s+i\b",
    r"\broot\s+cause\b",
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def normalize(question: str) -> str:
    """Trim, case-fold, drop punctuation and collapse whitespace runs."""
    text = (question or "").strip().casefold()
    text = _PUNCTUATION.sub("", text)
    return _WHITESPACE.sub(" ", text).strip()


def classify(question: str) -> QueryIntent:
    q = normalize(question)
    for intent, patterns in _RULES:
        if any(p.search(q) for p in patterns):
            logger.debug("Question classified as %s: %r", intent.value, q)
            return intent
    return QueryIntent.ANALYTICAL


def requires_explanation(question: str, intent: QueryIntent) -> bool:
    """True when the answer should use the four-part structured format."""
    if intent in (QueryIntent.NAME_LOOKUP, QueryIntent.PERSONAL_PROFILE):
        return False
    if intent == QueryIntent.ANALYTICAL:
        return True
    q = normalize(question)
    return any(p.search(q) for p in _EXPLANATION_PATTERNS)
