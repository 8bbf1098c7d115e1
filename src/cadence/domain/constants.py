"""Centralized constants for the Cadence scheduling core.

All algorithm parameters and defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Quality scale ----------
MIN_QUALITY = 0
MAX_QUALITY = 5
PASSING_QUALITY = 3  # >= counts as a successful recall

# ---------- SM-2 ----------
DEFAULT_EASINESS = 2.5
MIN_EASINESS = 1.3
DEFAULT_INTERVAL = 1  # days
DEFAULT_REPETITION = 0
FIRST_INTERVAL = 1  # days, after the first successful recall
SECOND_INTERVAL = 6  # days, after the second successful recall

# ---------- Mastery ----------
MASTERY_MIN_QUALITY = 4
MASTERY_MIN_INTERVAL = 21  # interval must be strictly greater

# ---------- Queries ----------
DEFAULT_DUE_LIMIT = 20
DEFAULT_SUMMARY_PERIOD_DAYS = 7

# ---------- Concurrency ----------
DEFAULT_CONFLICT_RETRIES = 3
DEFAULT_RETRY_BACKOFF = 0.01  # seconds, multiplied by attempt number
DEFAULT_OPERATION_TIMEOUT = 5.0  # seconds
