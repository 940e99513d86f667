"""Centralized constants for the lexis application.

All magic numbers and configuration defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Scheduling (SM-2) ----------
MIN_EASE_FACTOR = 1.3
MAX_EASE_FACTOR = 2.5
DEFAULT_EASE_FACTOR = 2.5
DEFAULT_INTERVAL = 1
FAILURE_EASE_PENALTY = 0.2
FIRST_SUCCESS_INTERVAL = 1
SECOND_SUCCESS_INTERVAL = 6
REVIEW_HISTORY_LIMIT = 10
QUALITY_WINDOW = 3
DEFAULT_QUALITY = 3

# ---------- Status thresholds (days) ----------
LEARNING_INTERVAL_LIMIT = 7
MASTERED_INTERVAL = 21
MASTERED_SUCCESS_RATE = 0.8
HARD_INTERVAL_LIMIT = 3
MEDIUM_INTERVAL_LIMIT = 7

# ---------- Sessions ----------
DEFAULT_ROUND_SIZE = 50
MIN_ROUND_SIZE = 1
MAX_ROUND_SIZE = 100
DEFAULT_NEW_REVIEW_RATIO = 50
RETRY_DELAY_MINUTES = 10
SESSION_HISTORY_LIMIT = 100
SECONDS_PER_CARD_ESTIMATE = 3

# ---------- Comparison groups ----------
MIN_GROUP_SIZE = 2
MAX_GROUP_SIZE = 6

# ---------- Storage keys ----------
PROGRESS_PREFIX = "progress/"
DAILY_STATS_PREFIX = "stats/daily/"
STREAK_KEY = "stats/streak"
SESSION_KEY = "session/current"
EXPORT_FORMAT_VERSION = "1.0.0"
