"""Tests for the interactive terminal front-end."""

from __future__ import annotations

import json

from conftest import CountingEmbedder, ScriptedChat

from backend import cli
from personalization.profile import PersonalizationManager, UserProfile
from rag_pipeline.llm_engine import ChatError
from rag_pipeline.orchestrator import RAGOrchestrator


def _scripted(*answers):
    pending = list(answers)

    def read(prompt: str) -> str:
        if not pending:
            raise EOFError
        return pending.pop(0)

    return read


def _loaded(cache, records, write_corpus, chat=None, personalization=None) -> RAGOrchestrator:
    orchestrator = RAGOrchestrator(
        embedder        = CountingEmbedder(),
        chat_client     = chat or ScriptedChat(),
        cache           = cache,
        personalization = personalization,
    )
    orchestrator.load_corpus(write_corpus(records))
    return orchestrator


def test_goodbye_variants(profile_data) -> None:
    assert cli.goodbye(None) == "До свидания!"
    assert cli.goodbye(PersonalizationManager()) == "До свидания!"
    assert cli.goodbye(PersonalizationManager(UserProfile.model_validate(profile_data))) == "До свидания, Алексей!"

    profile_data["preferences"]["useEmoji"] = True
    manager = PersonalizationManager(UserProfile.model_validate(profile_data))
    assert cli.goodbye(manager) == "👋 До свидания, Алексей!"


def test_loop_streams_answers_and_exits(cache, scenario_records, write_corpus, capsys) -> None:
    chat = ScriptedChat(chunks=["Ответ", " готов."])
    orchestrator = _loaded(cache, scenario_records, write_corpus, chat=chat)

    cli.interactive_loop(orchestrator, read=_scripted("", "Почему падает payment?", "exit"))

    out = capsys.readouterr().out
    assert "Ответ готов." in out
    assert out.rstrip().endswith("До свидания!")
    assert len(chat.calls) == 1


def test_loop_exits_on_eof(cache, scenario_records, write_corpus, capsys, personalization) -> None:
    orchestrator = _loaded(cache, scenario_records, write_corpus, personalization=personalization)
    cli.interactive_loop(orchestrator, read=_scripted())
    assert "До свидания, Алексей!" in capsys.readouterr().out


def test_loop_survives_a_failed_question(cache, scenario_records, write_corpus, capsys) -> None:
    chat = ScriptedChat(error=ChatError("model not found"))
    orchestrator = _loaded(cache, scenario_records, write_corpus, chat=chat)

    cli.interactive_loop(orchestrator, read=_scripted("Почему?", "Что происходит?", "QUIT"))

    out = capsys.readouterr().out
    assert out.count("Ошибка при обработке вопроса: model not found") == 2
    assert "До свидания!" in out


def test_main_runs_a_session(tmp_path, scenario_records, write_corpus, profile_data, monkeypatch, capsys) -> None:
    corpus = write_corpus(scenario_records)
    profile_path = tmp_path / "profile.json"
    profile_path.write_text(json.dumps(profile_data, ensure_ascii=False), encoding="utf-8")

    monkeypatch.setenv("EMBED_BACKEND", "hash")
    monkeypatch.setenv("EMBED_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.setattr(cli, "ChatClient", lambda: ScriptedChat(chunks=["2"]))

    code = cli.main(
        ["--log-file", str(corpus), "--profile", str(profile_path), "--skip-model-check"],
        read=_scripted("как меня зовут?", "exit"),
    )

    out = capsys.readouterr().out
    assert code == 0
    assert "Алексей!" in out
    assert "Готово: 3 записей проиндексировано." in out
    assert "Всего записей: 3" in out
    assert "ВАЖНО ДЛЯ ТЕБЯ: 2 проблемы" in out
    assert "До свидания, Алексей!" in out


def test_main_fails_on_missing_corpus(tmp_path, monkeypatch, capsys) -> None:
    monkeypatch.setenv("EMBED_BACKEND", "hash")
    monkeypatch.setenv("EMBED_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.setattr(cli, "ChatClient", lambda: ScriptedChat())

    code = cli.main(
        ["--log-file", str(tmp_path / "absent.json"), "--profile", str(tmp_path / "none.json"), "--skip-model-check"],
        read=_scripted(),
    )

    assert code == 1
    assert "Профиль персонализации не найден" in capsys.readouterr().out


def test_main_fails_when_chat_model_missing(tmp_path, monkeypatch, capsys) -> None:
    class MissingModels(ScriptedChat):
        model = "qwen2.5-coder:7b"

        def check_models(self, embed_model=None):
            return {"chat": False, "embedding": True}

    monkeypatch.setattr(cli, "ChatClient", MissingModels)
    code = cli.main(["--profile", str(tmp_path / "none.json")], read=_scripted())

    assert code == 1
    assert "ollama pull qwen2.5-coder:7b" in capsys.readouterr().out
