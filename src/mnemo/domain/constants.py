"""Centralized constants for the mnemo engine.

All magic numbers and scheduling defaults live here so every layer
imports from a single source of truth.
"""

# ---------- SuperMemo-2 ----------
INITIAL_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
FAILURE_EASE_PENALTY = 0.2
FIRST_INTERVAL = 1  # days
SECOND_INTERVAL = 6  # days
FAILURE_INTERVAL = 1  # days
PASSING_QUALITY = 3
PERFECT_BONUS = 1.3
MASTERY_THRESHOLD = 8

# ---------- Card Context ----------
DEFAULT_DIFFICULTY_HINT = 3
DEFAULT_PRIORITY = 5

# ---------- Sessions ----------
DUE_SHARE = 0.7
DEFAULT_TARGET_CARDS = 20
DEFAULT_MAX_DURATION_MINUTES = 30
IDEAL_RESPONSE_TIME_MS = 3000

# ---------- Queries ----------
DEFAULT_DUE_LIMIT = 20
DEFAULT_NEW_LIMIT = 10
DEFAULT_HISTORY_LIMIT = 10

# ---------- Persistence ----------
STATE_FORMAT_VERSION = 1
