import os

APP_TITLE = "Focus Keeper"
APPDATA_DIR = os.path.join(os.getenv("APPDATA") or os.path.expanduser("~"), "FocusKeeper")

LOG_DIR = os.path.join(APPDATA_DIR, "logs")
LOG_FILE = os.path.join(LOG_DIR, "focus_keeper.log")
LOGGER_NAME = "FocusKeeper"

# Sampling loop
TICK_INTERVAL_SEC = 1.0
WEBSITE_CHECK_EVERY_TICKS = 5
REMINDER_COOLDOWN_TICKS = 2
OBSERVER_TIMEOUT_SEC = 0.8
SUBPROCESS_TIMEOUT_SEC = 0.7

BLOCKABLE_BROWSER = "Google Chrome"
WEBSITE_TARGET_PREFIX = "web:"

# Session durations
DEFAULT_DURATION_SEC = 25 * 60
MIN_DURATION_SEC = 60
MAX_DURATION_SEC = 4 * 60 * 60

# Scoring
SCORE_BASE = 100
SCORE_VIOLATION_PENALTY = 5
SCORE_DISMISSAL_PENALTY = 2
SCORE_TIME_PENALTY_PER_MINUTE = 1
SCORE_MIN = 0
SCORE_MAX = 100

MIN_STREAK_DURATION_MINUTES = 30
MIN_STREAK_SCORE = 80
