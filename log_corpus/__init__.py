"""
log_corpus — error-log corpus ingestion and aggregate statistics.

Components:
  log_parser — JSON log file → ordered LogRecord sequence (+ raw bytes)
  stats      — per-error-type / per-service frequency tables
"""
