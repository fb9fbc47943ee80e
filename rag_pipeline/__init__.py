"""
rag_pipeline — Retrieval-Augmented Generation over error-log records.

Components:
  embedding_cache  — fingerprinted JSON cache of per-record embeddings
  embedder         — text → vector (OpenAI-compatible / sentence-transformers / hash)
  indexer          — corpus → EmbeddedRecord list, cache-aware
  ranker           — cosine-similarity top-K retrieval
  query_classifier — question → QueryIntent
  prompt_builder   — intent-conditioned, personalized prompt assembly
  llm_engine       — streaming chat client
  orchestrator     — end-to-end answer() pipeline
"""
