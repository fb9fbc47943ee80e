"""
cli.py
======
Interactive terminal front-end for the log analyst.

  logwise                      # uses .env / defaults
  logwise --log-file data/error-logs.json --profile config/profile.json

Start-up: profile greeting (or depersonalized notice) → model availability
check → corpus indexing with progress → statistics and personal summary →
question loop with streamed answers.  Type "exit" or "quit" to leave.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Callable, Optional, Sequence

from dotenv import load_dotenv  # type: ignore

from backend import session
from log_corpus.log_parser import CorpusFormatError
from personalization.profile import PersonalizationManager
from rag_pipeline.embedder import EmbeddingError
from rag_pipeline.llm_engine import ChatClient, ChatError
from rag_pipeline.orchestrator import RAGOrchestrator

logger = logging.getLogger(__name__)

_RULE_HEAVY = "═" * 60
_RULE_LIGHT = "─" * 60
_EXIT_COMMANDS = ("exit", "quit")

_EXAMPLE_QUESTIONS = (
    "Какая ошибка встречается чаще всего?",
    "Какой сервис генерирует больше всего ошибок?",
    "Сколько было ошибок DatabaseConnectionError?",
    "Какие проблемы есть в payment-service?",
    "Почему падает auth-service?",
)


def _write(text: str = "", end: str = "\n") -> None:
    sys.stdout.write(text + end)
    sys.stdout.flush()


def _print_header() -> None:
    _write("╔════════════════════════════════════════════════════════╗")
    _write("║              LOGWISE — персональный анализ логов       ║")
    _write("╚════════════════════════════════════════════════════════╝")
    _write()


def _print_help() -> None:
    _write("Примеры вопросов:")
    for question in _EXAMPLE_QUESTIONS:
        _write(f"  • {question}")
    _write()


def _progress(done: int, total: int) -> None:
    _write(f"\r   {done}/{total} записей обработано...", end="")
    if done == total:
        _write()


def goodbye(personalization: Optional[PersonalizationManager]) -> str:
    profile = personalization.get_profile() if personalization is not None else None
    if profile is None:
        return "До свидания!"
    emoji = "👋 " if profile.preferences.use_emoji else ""
    return f"{emoji}До свидания, {profile.name}!"


def interactive_loop(
    orchestrator: RAGOrchestrator,
    read: Callable[[str], str] = input,
) -> None:
    """Question/answer loop; a failed question is reported and the loop goes on."""
    _write(_RULE_HEAVY)
    _write('Режим вопросов-ответов (введите "exit" для выхода)')
    _write()

    while True:
        try:
            question = read("❓ Ваш вопрос: ")
        except EOFError:
            question = "exit"

        if question.strip().lower() in _EXIT_COMMANDS:
            _write()
            _write(goodbye(orchestrator.personalization))
            return

        if not question.strip():
            continue

        _write(_RULE_LIGHT)
        try:
            orchestrator.answer(question, on_token=lambda token: _write(token, end=""))
        except (EmbeddingError, ChatError) as exc:
            _write()
            _write(f"Ошибка при обработке вопроса: {exc}")
        _write()
        _write(_RULE_LIGHT)
        _write()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Ask questions about an error-log corpus")
    parser.add_argument("--log-file",         default=None, help="Path to the JSON log corpus")
    parser.add_argument("--profile",          default=None, help="Path to the user profile JSON")
    parser.add_argument("--top-k",            type=int, default=None, help="Records retrieved per question")
    parser.add_argument("--skip-model-check", action="store_true", help="Do not query the model list")
    return parser


def main(argv: Optional[Sequence[str]] = None, read: Callable[[str], str] = input) -> int:
    load_dotenv(os.path.join(os.getcwd(), ".env"))
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )
    args = build_parser().parse_args(argv)

    _print_header()

    personalization = session.load_personalization(args.profile)
    if personalization is not None:
        _write(personalization.get_greeting())
    else:
        _write("Профиль персонализации не найден. Работаю в стандартном режиме.")
    _write()

    chat_client = ChatClient()
    if not args.skip_model_check:
        _write("Проверка доступности моделей...")
        available = chat_client.check_models()
        if not available["chat"]:
            _write(f"Модель {chat_client.model} не найдена! Установите её: ollama pull {chat_client.model}")
            return 1
        if not available["embedding"]:
            _write("Модель для embeddings не найдена! Проверьте EMBED_MODEL.")
            return 1
        _write("Все модели доступны")
        _write()

    orchestrator = session.build_orchestrator(chat_client=chat_client, personalization=personalization)
    if args.top_k is not None:
        orchestrator.top_k = args.top_k

    log_file = args.log_file or session.log_file_path()
    _write(f"Загрузка и индексация логов из {log_file}...")
    try:
        orchestrator.load_corpus(log_file, on_progress=_progress)
    except (OSError, CorpusFormatError, EmbeddingError) as exc:
        _write(f"Ошибка загрузки файла {log_file}: {exc}")
        return 1
    _write(f"Готово: {len(orchestrator.index)} записей проиндексировано.")
    _write()

    _write(orchestrator.get_statistics())
    summary = orchestrator.get_personalized_summary()
    if summary:
        _write()
        _write(summary)
    _write()

    _print_help()
    interactive_loop(orchestrator, read=read)
    return 0


if __name__ == "__main__":
    sys.exit(main())
