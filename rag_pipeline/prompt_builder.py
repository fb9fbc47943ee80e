"""
prompt_builder.py
=================
Assemble the (system prompt, user message) pair for a classified question.

Modes
-----
  NAME_LOOKUP       direct answer: the profile name, nothing else
  PERSONAL_PROFILE  direct answer built from profile fields only, plus how many
                    records of the FULL corpus touch the user's responsibilities
  STATISTICAL       system prompt carries aggregate statistics only; retrieved
                    records are never shown to the model
  ANALYTICAL        statistics + the top-K retrieved records, flagged as a
                    partial sample that must not be used for counting

When a profile is loaded every system prompt carries the decision policy
block (owned services first, critical error types flagged, emoji / depth per
preferences, second-person address).  Without a profile the prompts say so
explicitly and no personal policy is applied.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from log_corpus.log_parser import LogRecord
from log_corpus.stats import compute_stats, format_stats
from personalization.profile import PersonalizationManager, UserProfile
from rag_pipeline.query_classifier import QueryIntent, requires_explanation

logger = logging.getLogger(__name__)

NAME_NOT_SET = "Имя в профиле не задано."
PROFILE_NOT_LOADED = "Профиль пользователя не загружен — мне нечего рассказать о тебе."
NOT_SPECIFIED = "не указано"


@dataclass(frozen=True)
class PromptPair:
    system: str
    user: str
    direct_answer: Optional[str] = None     # set → answer without calling the LLM


# ---------------------------------------------------------------------------
# Prompt fragments
# ---------------------------------------------------------------------------

_ROLE_BLOCK = """ROLE:
Ты — персональный аналитик логов и ошибок (RAG). Ты отвечаешь ОДНОМУ пользователю и обязан учитывать его профиль."""

_ROLE_BLOCK_ANONYMOUS = """ROLE:
Ты — аналитик логов и ошибок (RAG). Профиль пользователя не задан: отвечай по данным логов, без персональных допущений."""

_PROFILE_QUESTIONS_BLOCK = """PERSONAL QUESTIONS:
- Если вопрос про имя/роль/рабочие часы/сервисы пользователя — отвечай ТОЛЬКО данными профиля.
- В таком ответе запрещены анализ логов, статистика и рекомендации."""

_OUTPUT_RULES_BLOCK = """OUTPUT RULES (ОБЯЗАТЕЛЬНО):
- Не пересказывай логи: анализируй и делай выводы.
- Запрещены предположения без данных ("возможно", "вероятно") в статистическом режиме."""

_SHORT_FORMAT_BLOCK = """RESPONSE FORMAT (ОБЯЗАТЕЛЕН):
На вопрос есть один фактический ответ — ответь ОДНОЙ строкой (число, название или короткий факт).
Не добавляй разделы, списки и пояснения."""

_STRUCTURED_FORMAT_BLOCK = """RESPONSE FORMAT (ОБЯЗАТЕЛЕН):
1) ВЫВОД (1–2 строки{personal})
2) ЧТО ПРОИСХОДИТ (факты, цифры)
3) ПОЧЕМУ ЭТО ВАЖНО{for_user}
4) ЧТО ПРОВЕРИТЬ / СДЕЛАТЬ (маркированный список)"""

_STATISTICS_MODE_TEMPLATE = """MODE: STATISTICS

AVAILABLE DATA:
Используй ТОЛЬКО агрегированную статистику ниже. Отдельные записи логов в этом режиме не предоставляются.

STATISTICS:
{statistics}

RULES FOR THIS MODE:
1) Все цифры должны быть строго из STATISTICS.
2) Никаких догадок, никаких "возможно/вероятно".
3) Если данных для ответа нет в STATISTICS — так и скажи."""

_ANALYSIS_MODE_TEMPLATE = """MODE: ANALYSIS

GLOBAL STATISTICS (для подсчётов и контекста):
{statistics}

CONTEXT LOGS:
Ниже приведены примеры ({shown} из {total}). Они НЕ отражают полную картину.
Используй их ТОЛЬКО для деталей (симптомы, паттерны, примеры сообщений), а не для итоговых подсчётов.
Любые количества бери из GLOBAL STATISTICS.

{records}"""

_PROFILE_MODE_TEMPLATE = """MODE: PROFILE

PROFILE DATA:
{profile_block}

Отвечай только этими данными."""


def _plural(n: int, one: str, few: str, many: str) -> str:
    n_abs = abs(n) % 100
    if 11 <= n_abs <= 14:
        return many
    last = n_abs % 10
    if last == 1:
        return one
    if 2 <= last <= 4:
        return few
    return many


# ---------------------------------------------------------------------------
# Section builders
# ---------------------------------------------------------------------------

def format_record(index: int, record: LogRecord) -> str:
    metadata = json.dumps(dict(record.metadata), ensure_ascii=False, indent=2)
    return (
        f"[Запись {index}]\n"
        f"Сервис: {record.service}\n"
        f"Тип ошибки: {record.error_type}\n"
        f"Сообщение: {record.message}\n"
        f"Время: {record.timestamp}\n"
        f"User ID: {record.user_id or 'N/A'}\n"
        f"Метаданные: {metadata}"
    )


def format_records(records: Sequence[LogRecord]) -> str:
    if not records:
        return "(релевантные записи не найдены)"
    return "\n\n---\n\n".join(format_record(i, r) for i, r in enumerate(records, start=1))


def _user_context(profile: Optional[UserProfile], personalization: Optional[PersonalizationManager]) -> str:
    if profile is None:
        return "USER CONTEXT:\nне задан"
    manager = personalization or PersonalizationManager(profile)
    return f"USER CONTEXT:\n{manager.get_user_context()}"


def decision_policy(profile: UserProfile) -> str:
    prefs = profile.preferences
    services = ", ".join(profile.responsibilities.services) or NOT_SPECIFIED
    critical = ", ".join(profile.responsibilities.critical_errors) or NOT_SPECIFIED
    emoji_rule = (
        "Emoji разрешены, но умеренно (0–3 на ответ)."
        if prefs.use_emoji
        else "Emoji запрещены — не используй их вообще."
    )
    recommendations_rule = (
        "Давай конкретные рекомендации."
        if prefs.include_recommendations
        else "Рекомендации не давай, только факты и выводы."
    )
    return (
        "DECISION POLICY (ОБЯЗАТЕЛЬНО):\n"
        f"1. Если ошибка относится к сервисам пользователя ({services}) → это ГЛАВНЫЙ ПРИОРИТЕТ ответа.\n"
        f"2. Если тип ошибки входит в критичные ({critical}) → помечай как \"КРИТИЧНО ДЛЯ ТЕБЯ\" и выноси в начало.\n"
        "3. Чужие сервисы и прочие ошибки упоминай кратко, без углубления.\n"
        f"4. Уровень объяснений: {prefs.technical_level}. Стиль ответа: {prefs.answer_style}.\n"
        f"5. {emoji_rule}\n"
        f"6. {recommendations_rule}\n"
        "7. Пиши напрямую пользователю: \"у тебя\", \"твой сервис\", \"твоя зона ответственности\"."
    )


def _response_format(structured: bool, personalized: bool) -> str:
    if not structured:
        return _SHORT_FORMAT_BLOCK
    return _STRUCTURED_FORMAT_BLOCK.format(
        personal=", персонально" if personalized else "",
        for_user=" ДЛЯ ТЕБЯ" if personalized else "",
    )


def _base_system_prompt(
    profile: Optional[UserProfile],
    personalization: Optional[PersonalizationManager],
    structured: bool,
) -> str:
    blocks: List[str] = []
    if profile is not None:
        blocks += [
            _ROLE_BLOCK,
            "IMPORTANT:\nИгнорирование персонализации считается ошибкой ответа.",
            _PROFILE_QUESTIONS_BLOCK,
            _user_context(profile, personalization),
            decision_policy(profile),
        ]
    else:
        blocks += [
            _ROLE_BLOCK_ANONYMOUS,
            _user_context(None, None),
            "EMOJI: запрещены.",
        ]
    blocks += [_OUTPUT_RULES_BLOCK, _response_format(structured, profile is not None)]
    return "\n\n".join(blocks)


# ---------------------------------------------------------------------------
# Profile-only answers
# ---------------------------------------------------------------------------

def personalized_summary(
    records: Sequence[LogRecord],
    profile: Optional[UserProfile],
    personalization: Optional[PersonalizationManager] = None,
) -> str:
    """How many corpus records touch the user's services or critical errors."""
    if profile is None:
        return ""
    manager = personalization or PersonalizationManager(profile)
    services = ", ".join(profile.responsibilities.services) or NOT_SPECIFIED
    use_emoji = profile.preferences.use_emoji

    relevant = [r for r in records if manager.is_relevant_to_user(r.service, r.error_type)]
    if not relevant:
        emoji = "✅ " if use_emoji else ""
        return f"{emoji}В твоих сервисах ({services}) всё спокойно!"

    emoji = "⚠️ " if use_emoji else ""
    noun = _plural(len(relevant), "проблема", "проблемы", "проблем")
    return f"{emoji}ВАЖНО ДЛЯ ТЕБЯ: {len(relevant)} {noun} в твоих сервисах ({services})"


def name_answer(profile: Optional[UserProfile]) -> str:
    if profile is None or not profile.name.strip():
        return NAME_NOT_SET
    emoji = "👤 " if profile.preferences.use_emoji else ""
    return f"{emoji}{profile.name}"


def profile_answer(
    records: Sequence[LogRecord],
    profile: Optional[UserProfile],
    personalization: Optional[PersonalizationManager] = None,
) -> str:
    if profile is None:
        return PROFILE_NOT_LOADED
    manager = personalization or PersonalizationManager(profile)
    emoji = "👤 " if profile.preferences.use_emoji else ""
    hours = profile.working_hours
    return (
        f"{emoji}Вот что я знаю о тебе:\n"
        "\n"
        f"{manager.get_user_context()}\n"
        "\n"
        f"Рабочие часы: {hours.start} - {hours.end}\n"
        f"Стиль ответов: {profile.preferences.answer_style}\n"
        f"Технический уровень: {profile.preferences.technical_level}\n"
        "\n"
        f"{personalized_summary(records, profile, manager)}"
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def build_prompt(
    intent: QueryIntent,
    question: str,
    corpus_records: Sequence[LogRecord],
    retrieved: Sequence[LogRecord] = (),
    profile: Optional[UserProfile] = None,
    personalization: Optional[PersonalizationManager] = None,
) -> PromptPair:
    """
    Build the prompt pair for one question.

    Parameters
    ----------
    intent          : classified intent of the question
    question        : raw question text (sent as the user message)
    corpus_records  : the full corpus (statistics, personal relevance)
    retrieved       : top-K records from the ranker (ANALYTICAL only)
    profile         : loaded user profile, or None for depersonalized mode
    personalization : manager owning the profile (relevance predicate)
    """
    user_message = f"QUESTION:\n{question}"

    if intent in (QueryIntent.NAME_LOOKUP, QueryIntent.PERSONAL_PROFILE):
        if intent == QueryIntent.NAME_LOOKUP:
            answer = name_answer(profile)
        else:
            answer = profile_answer(corpus_records, profile, personalization)
        system = "\n\n".join([
            _base_system_prompt(profile, personalization, structured=False),
            _PROFILE_MODE_TEMPLATE.format(profile_block=answer),
        ])
        return PromptPair(system=system, user=user_message, direct_answer=answer)

    structured = requires_explanation(question, intent)
    base = _base_system_prompt(profile, personalization, structured)
    statistics = format_stats(compute_stats(corpus_records))

    if intent == QueryIntent.STATISTICAL:
        mode = _STATISTICS_MODE_TEMPLATE.format(statistics=statistics)
    else:
        mode = _ANALYSIS_MODE_TEMPLATE.format(
            statistics = statistics,
            shown      = len(retrieved),
            total      = len(corpus_records),
            records    = format_records(retrieved),
        )

    logger.debug(
        "Prompt built: intent=%s structured=%s personalized=%s retrieved=%d",
        intent.value, structured, profile is not None, len(retrieved),
    )
    return PromptPair(system=f"{base}\n\n{mode}", user=user_message)
