"""
orchestrator.py
===============
End-to-end "ask a question" pipeline over an indexed log corpus.

  1. classify the question (query_classifier)
  2. STATISTICAL / ANALYTICAL: embed the question and rank the top-K records
     NAME_LOOKUP / PERSONAL_PROFILE: skip retrieval
  3. assemble the prompt pair (prompt_builder)
  4. direct answer, or stream the chat completion through on_token

Embedding and chat failures propagate unchanged; they end the current
question, not the session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Union

from log_corpus.log_parser import Corpus, LogRecord, load_corpus
from log_corpus.stats import compute_stats, format_stats
from personalization.profile import PersonalizationManager, UserProfile
from rag_pipeline.embedding_cache import EmbeddedRecord, EmbeddingCache
from rag_pipeline.indexer import ProgressCallback, VectorIndexer
from rag_pipeline.llm_engine import TokenCallback
from rag_pipeline.prompt_builder import build_prompt, personalized_summary
from rag_pipeline.query_classifier import QueryIntent, classify
from rag_pipeline.ranker import rank

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 8

_RETRIEVAL_INTENTS = (QueryIntent.STATISTICAL, QueryIntent.ANALYTICAL)


@dataclass
class AnswerResult:
    question: str
    intent: QueryIntent
    text: str
    retrieved: List[LogRecord] = field(default_factory=list)


class RAGOrchestrator:
    """
    Owns the in-memory vector index and the session's personalization.

    Parameters
    ----------
    embedder        : object exposing embed(text) -> List[float]
    chat_client     : object exposing chat(system, user, on_token) -> str
    cache           : EmbeddingCache (default ./data/.cache)
    personalization : PersonalizationManager, or None for depersonalized mode
    top_k           : records retrieved per question
    """

    def __init__(
        self,
        embedder: Any,
        chat_client: Any,
        cache: Optional[EmbeddingCache] = None,
        personalization: Optional[PersonalizationManager] = None,
        top_k: int = DEFAULT_TOP_K,
    ):
        self.embedder = embedder
        self.chat_client = chat_client
        self.indexer = VectorIndexer(embedder, cache or EmbeddingCache())
        self.personalization = personalization
        self.top_k = top_k
        self.corpus: Optional[Corpus] = None
        self.index: List[EmbeddedRecord] = []

    # ── Session setup ─────────────────────────────────────────────────────

    def set_personalization(self, personalization: Optional[PersonalizationManager]) -> None:
        self.personalization = personalization

    def load_corpus(
        self,
        path: Union[str, Path],
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[EmbeddedRecord]:
        corpus = load_corpus(path)
        index = self.indexer.index(corpus, on_progress=on_progress)
        # Only swap in the new state once indexing fully succeeded.
        self.corpus = corpus
        self.index = index
        return index

    @property
    def records(self) -> List[LogRecord]:
        return self.corpus.records if self.corpus is not None else []

    @property
    def profile(self) -> Optional[UserProfile]:
        return self.personalization.get_profile() if self.personalization is not None else None

    def _require_corpus(self) -> Corpus:
        if self.corpus is None:
            raise RuntimeError("No corpus loaded. Call load_corpus() first.")
        return self.corpus

    # ── Reports ───────────────────────────────────────────────────────────

    def get_statistics(self) -> str:
        return format_stats(compute_stats(self._require_corpus().records))

    def get_personalized_summary(self) -> str:
        return personalized_summary(self.records, self.profile, self.personalization)

    # ── Question answering ────────────────────────────────────────────────

    def retrieve(self, question: str) -> List[LogRecord]:
        query_vector = self.embedder.embed(question)
        return rank(query_vector, self.index, self.top_k)

    def answer_with_details(
        self,
        question: str,
        on_token: Optional[TokenCallback] = None,
    ) -> AnswerResult:
        corpus = self._require_corpus()
        intent = classify(question)

        retrieved: List[LogRecord] = []
        if intent in _RETRIEVAL_INTENTS:
            retrieved = self.retrieve(question)

        prompt = build_prompt(
            intent          = intent,
            question        = question,
            corpus_records  = corpus.records,
            retrieved       = retrieved,
            profile         = self.profile,
            personalization = self.personalization,
        )

        if prompt.direct_answer is not None:
            text = prompt.direct_answer
            if on_token is not None:
                on_token(text)
        else:
            logger.info("Asking LLM (intent=%s, %d records retrieved)", intent.value, len(retrieved))
            text = self.chat_client.chat(prompt.system, prompt.user, on_token)

        return AnswerResult(question=question, intent=intent, text=text, retrieved=retrieved)

    def answer(self, question: str, on_token: Optional[TokenCallback] = None) -> str:
        return self.answer_with_details(question, on_token).text
