"""
llm_engine.py
=============
Streaming chat client for the log analyst, talking to any OpenAI-compatible
chat-completions endpoint (a local Ollama server by default).

  • base_url : LLM_BASE_URL   (default http://localhost:11434/v1)
  • model    : CHAT_MODEL     (default qwen2.5-coder:7b)

Each streamed content delta is handed to the caller's on_token callback as
soon as it arrives; the accumulated text is returned at the end.  Failures
surface as ChatError and are never replaced by a canned answer.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Callable, Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)

TokenCallback = Callable[[str], None]

_DEFAULT_BASE_URL = "http://localhost:11434/v1"
_DEFAULT_CHAT_MODEL = "qwen2.5-coder:7b"
_DEFAULT_EMBED_MODEL = "nomic-embed-text"


class ChatError(RuntimeError):
    """Raised when the chat backend fails to produce an answer."""


def _clean_env(name: str, default: str = "") -> str:
    value = os.getenv(name, default)
    return value.strip().strip('"').strip("'")


def _build_client() -> Any:
    from openai import OpenAI  # type: ignore

    return OpenAI(
        base_url = _clean_env("LLM_BASE_URL", _DEFAULT_BASE_URL),
        api_key  = _clean_env("LLM_API_KEY", "ollama"),
        timeout  = float(_clean_env("LLM_TIMEOUT", "120")),
    )


def _model_matches(available: List[str], wanted: str) -> bool:
    # Ollama lists "nomic-embed-text:latest" for a request of "nomic-embed-text".
    base = wanted.split(":")[0]
    return any(name == wanted or name.split(":")[0] == base for name in available)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

class ChatClient:
    """
    Parameters
    ----------
    model       : chat model name (default from CHAT_MODEL)
    temperature : sampling temperature (default from CHAT_TEMPERATURE)
    client      : optional pre-built openai.OpenAI client
    """

    def __init__(
        self,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        client: Optional[Any] = None,
    ):
        self.model = model or _clean_env("CHAT_MODEL", _DEFAULT_CHAT_MODEL)
        self.temperature = (
            temperature if temperature is not None
            else float(_clean_env("CHAT_TEMPERATURE", "0.2"))
        )
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = _build_client()
        return self._client

    def _stream_content(self, system_prompt: str, user_message: str) -> Iterator[str]:
        """Yield non-empty content deltas; backend failures surface as ChatError."""
        try:
            completion = self._get_client().chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_message},
                ],
                temperature=self.temperature,
                stream=True,
            )
            stream = iter(completion)
        except Exception as exc:
            logger.error("Error during chat (%s): %s", self.model, exc)
            raise ChatError(f"Chat request failed: {exc}") from exc

        while True:
            try:
                chunk = next(stream)
            except StopIteration:
                return
            except Exception as exc:
                logger.error("Chat stream interrupted (%s): %s", self.model, exc)
                raise ChatError(f"Chat request failed: {exc}") from exc

            if not getattr(chunk, "choices", None):
                continue
            delta = chunk.choices[0].delta
            content = getattr(delta, "content", None) if delta is not None else None
            if content:
                yield str(content)

    def chat(
        self,
        system_prompt: str,
        user_message: str,
        on_token: Optional[TokenCallback] = None,
    ) -> str:
        """Stream a completion, forwarding each chunk to on_token in arrival order."""
        output_parts: List[str] = []
        # Callback errors propagate unwrapped.
        for content in self._stream_content(system_prompt, user_message):
            output_parts.append(content)
            if on_token is not None:
                on_token(content)
        return "".join(output_parts)

    def check_models(self, embed_model: Optional[str] = None) -> Dict[str, bool]:
        """Report whether the chat and embedding models are served by the backend."""
        embed_model = embed_model or _clean_env("EMBED_MODEL", _DEFAULT_EMBED_MODEL)
        try:
            models = self._get_client().models.list()
            names = [m.id for m in (getattr(models, "data", None) or [])]
        except Exception as exc:
            logger.error("Error checking models: %s", exc)
            return {"chat": False, "embedding": False}

        return {
            "chat":      _model_matches(names, self.model),
            "embedding": _model_matches(names, embed_model),
        }
