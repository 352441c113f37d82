"""
detection/constants.py

Tuning constants used by the activity detection engine.
All detection thresholds and intervals must be referenced from this module.
"""

# ── Classification ───────────────────────────────────────────
# Exact match, not a minimum. Change to "high" for a less sensitive detector.
REQUIRED_CONFIDENCE: str = "medium"

# ── Confirmation ─────────────────────────────────────────────
REQUIRED_VALIDATIONS: int = 2

# ── Periodic validation (seconds) ────────────────────────────
VALIDATION_INTERVAL_S: float = 20.0
VALIDATION_LOOKBACK_S: float = 30.0

# ── Default durations (minutes) ──────────────────────────────
DEFAULT_MINIMUM_DURATION_MIN: int = 10
DEFAULT_STOP_DURATION_MIN: int = 5

# ── Sample source ────────────────────────────────────────────
SAMPLE_HISTORY_MAX_LEN: int = 500

# ── Episode log display ──────────────────────────────────────
ACTIVITY_LOG_DISPLAY_LIMIT: int = 10
