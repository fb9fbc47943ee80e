"""Unit tests for aggregate corpus statistics."""

from __future__ import annotations

from conftest import make_record
from log_corpus.stats import compute_stats, format_stats


def test_counts_sorted_descending_with_first_seen_tie_order() -> None:
    records = [
        make_record("auth", "AuthFailed"),
        make_record("payment", "Timeout"),
        make_record("payment", "Timeout"),
        make_record("search", "NotFound"),
    ]

    stats = compute_stats(records)

    assert stats.total == 4
    assert stats.by_error_type == [("Timeout", 2), ("AuthFailed", 1), ("NotFound", 1)]
    assert stats.by_service == [("payment", 2), ("auth", 1), ("search", 1)]
    assert stats.count_for_error_type("Timeout") == 2
    assert stats.count_for_service("missing") == 0


def test_format_stats_lists_every_count(scenario_records) -> None:
    text = format_stats(compute_stats(scenario_records))

    assert "Всего записей: 3" in text
    assert "  - Timeout: 2" in text
    assert "  - AuthFailed: 1" in text
    assert "  - payment: 2" in text
    assert text.index("Timeout: 2") < text.index("AuthFailed: 1")


def test_empty_corpus_renders_placeholder() -> None:
    text = format_stats(compute_stats([]))
    assert "Всего записей: 0" in text
    assert "(нет данных)" in text
