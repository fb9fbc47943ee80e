"""
stats.py
========
Aggregate statistics over the full corpus.

Counts are recomputed from the records on every call; nothing is cached,
so the numbers shown to the LLM always match the loaded corpus.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from log_corpus.log_parser import LogRecord

FrequencyTable = List[Tuple[str, int]]


@dataclass(frozen=True)
class CorpusStats:
    total: int
    by_error_type: FrequencyTable   # sorted by count desc, ties in first-seen order
    by_service: FrequencyTable

    def count_for_error_type(self, error_type: str) -> int:
        return dict(self.by_error_type).get(error_type, 0)

    def count_for_service(self, service: str) -> int:
        return dict(self.by_service).get(service, 0)


def _frequency(values: Iterable[str]) -> FrequencyTable:
    # Counter keeps insertion order and most_common() sorts stably.
    return Counter(values).most_common()


def compute_stats(records: Sequence[LogRecord]) -> CorpusStats:
    return CorpusStats(
        total         = len(records),
        by_error_type = _frequency(r.error_type for r in records),
        by_service    = _frequency(r.service for r in records),
    )


def format_stats(stats: CorpusStats) -> str:
    """Render stats as the plain-text block embedded into prompts and the CLI."""
    error_lines = "\n".join(f"  - {name}: {count}" for name, count in stats.by_error_type)
    service_lines = "\n".join(f"  - {name}: {count}" for name, count in stats.by_service)

    return (
        "ОБЩАЯ СТАТИСТИКА ЛОГОВ:\n"
        "-----------------------\n"
        f"Всего записей: {stats.total}\n"
        "\n"
        "Ошибки по типам:\n"
        f"{error_lines or '  (нет данных)'}\n"
        "\n"
        "Ошибки по сервисам:\n"
        f"{service_lines or '  (нет данных)'}"
    )
