"""
log_parser.py
=============
Read an error-log corpus file and return an ordered list of LogRecord objects.

Expected file layout: a single JSON array, one object per log record:

  [
    {
      "timestamp":   "2024-01-15T10:23:45Z",
      "level":       "ERROR",
      "service":     "payment-service",
      "error_type":  "PaymentGatewayTimeout",
      "message":     "Gateway did not respond within 30s",
      "user_id":     "user_123",            (optional, may be null)
      "request_id":  "req-abc",             (optional)
      "stack_trace": "...",                 (optional)
      "metadata":    {"gateway": "stripe"}  (optional object)
    },
    ...
  ]

The raw bytes are kept alongside the parsed records because the embedding
cache fingerprints the file content, not the parsed structure.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Union

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("timestamp", "level", "service", "error_type", "message")
_OPTIONAL_TEXT_FIELDS = ("request_id", "stack_trace")


class CorpusFormatError(ValueError):
    """Raised when a corpus file cannot be interpreted as a list of log records."""

    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message)
        self.index = index


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LogRecord:
    timestamp: str
    level: str
    service: str
    error_type: str
    message: str
    user_id: Optional[str] = None
    request_id: str = ""
    stack_trace: str = ""
    metadata: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        # Read-only view over a private copy of the caller's mapping.
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp":   self.timestamp,
            "level":       self.level,
            "service":     self.service,
            "error_type":  self.error_type,
            "message":     self.message,
            "user_id":     self.user_id,
            "request_id":  self.request_id,
            "stack_trace": self.stack_trace,
            "metadata":    dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], index: Optional[int] = None) -> "LogRecord":
        """Build a record from its JSON object form, validating field types."""
        where = f"record #{index}" if index is not None else "record"

        if not isinstance(data, dict):
            raise CorpusFormatError(f"{where}: expected a JSON object, got {type(data).__name__}", index)

        for name in _REQUIRED_FIELDS:
            if name not in data:
                raise CorpusFormatError(f"{where}: missing required field '{name}'", index)
            if not isinstance(data[name], str):
                raise CorpusFormatError(f"{where}: field '{name}' must be a string", index)

        user_id = data.get("user_id")
        if user_id is not None and not isinstance(user_id, str):
            user_id = str(user_id)

        optional: Dict[str, str] = {}
        for name in _OPTIONAL_TEXT_FIELDS:
            value = data.get(name)
            optional[name] = "" if value is None else str(value)

        metadata = data.get("metadata")
        if metadata is None:
            metadata = {}
        if not isinstance(metadata, dict):
            raise CorpusFormatError(f"{where}: field 'metadata' must be an object", index)

        return cls(
            timestamp   = data["timestamp"],
            level       = data["level"],
            service     = data["service"],
            error_type  = data["error_type"],
            message     = data["message"],
            user_id     = user_id,
            request_id  = optional["request_id"],
            stack_trace = optional["stack_trace"],
            metadata    = metadata,
        )


@dataclass
class Corpus:
    path: Path
    raw: bytes                      # file content exactly as read (fingerprint input)
    records: List[LogRecord]

    def __len__(self) -> int:
        return len(self.records)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_records(raw: bytes) -> List[LogRecord]:
    """Decode raw corpus bytes into LogRecord objects, preserving file order."""
    try:
        payload = json.loads(raw.decode("utf-8-sig"))
    except UnicodeDecodeError as exc:
        raise CorpusFormatError(f"Corpus is not valid UTF-8: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise CorpusFormatError(f"Invalid JSON in corpus: {exc}") from exc

    if not isinstance(payload, list):
        raise CorpusFormatError("Corpus must be a JSON array of log records")

    return [LogRecord.from_dict(item, index=i) for i, item in enumerate(payload)]


def load_corpus(path: Union[str, Path]) -> Corpus:
    """
    Read and parse a corpus file.

    Raises FileNotFoundError when the file is absent and CorpusFormatError
    when its content is malformed.
    """
    corpus_path = Path(path)
    if not corpus_path.is_file():
        raise FileNotFoundError(f"Log file not found: {corpus_path}")

    raw = corpus_path.read_bytes()
    records = parse_records(raw)
    logger.info("Loaded %d log records from %s", len(records), corpus_path)
    return Corpus(path=corpus_path, raw=raw, records=records)
