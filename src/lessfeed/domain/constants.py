"""Centralized constants for lessfeed.

All magic numbers and storage keys live here so every layer
imports from a single source of truth.
"""

# ---------- Review (spaced repetition) ----------
REVIEW_STAGE_DAYS = [1, 3, 7, 14]
REVIEW_INITIAL_DELAY_HOURS = 24
REVIEW_RESCHEDULE_HOURS = 6
REVIEW_ADVANCE_MIN_VIEW_MS = 6500

# ---------- Feed scoring ----------
SCORE_UNUSEFUL = -1000.0
SCORE_LEARNED = -500.0
SCORE_NEW_CARD = 300.0
SCORE_VIEW_DIVISOR = 10.0
SCORE_VIEW_CAP = 200.0
REVIEW_PINNED_BOOST = 40.0
REVIEW_DUE_BOOST = 260.0

# ---------- System card injection ----------
SYSTEM_CARD_MIN_VIEWED = 8
SYSTEM_CARD_POSITION = 8

# ---------- Daily ritual ----------
DAILY_CARD_COUNT = 4
DAILY_SHUFFLE_PASSES = 3
FNV_OFFSET_BASIS = 0xCBF29CE484222325
FNV_PRIME = 0x100000001B3

# ---------- Timers (seconds) ----------
UNDO_TOAST_SECONDS = 2.6
SLOW_HINT_SECONDS = 6.5

# ---------- Cards cache ----------
CARDS_CACHE_FRESH_HOURS = 24

# ---------- HTTP ----------
REQUEST_TIMEOUT = 15.0

# ---------- Storage keys ----------
KEY_LEARNED = "learned_cards_v1"
KEY_UNUSEFUL = "unuseful_cards_v1"
KEY_FAVORITES = "favorite_cards_v1"
KEY_REVIEWS = "reviews_v1"
KEY_SETTINGS = "settings_v1"
KEY_SUPPORT_INJECTED_DAY = "support_injected_day_v1"
KEY_SUPPORT_USED_DAY = "support_used_day_v1"
KEY_FEEDBACK_QUEUE = "feedback_queue_v1"
KEY_PENDING_ANALYTICS = "pending_analytics_v1"
KEY_DAILY_OPENING_SEEN = "daily_opening_seen_v1"
KEY_STREAK_COUNT = "streak_count_v1"
KEY_STREAK_LAST_COMPLETION = "streak_last_completion_v1"


def seen_cards_key(lang_code: str) -> str:
    return f"seen_cards_{lang_code}"


def cards_cache_key(lang_code: str) -> str:
    return f"cards_cache_{lang_code}"


def daily_started_key(day: str) -> str:
    return f"daily_started_at_{day}"


def daily_completed_key(day: str) -> str:
    return f"daily_completed_at_{day}"


def daily_viewed_key(day: str) -> str:
    return f"daily_cards_viewed_{day}"
