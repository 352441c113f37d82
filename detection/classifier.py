"""
detection/classifier.py

Maps a raw motion sample onto a canonical activity type.
Pure function; safe to call on every sample.
"""

from typing import Optional

from detection.constants import REQUIRED_CONFIDENCE
from detection.schemas import (
    ActivityType,
    EnablementConfig,
    MotionConfidence,
    RawSample,
)

_REQUIRED_CONFIDENCE = MotionConfidence(REQUIRED_CONFIDENCE)


def classify(
    sample: RawSample,
    config: EnablementConfig,
) -> Optional[ActivityType]:
    """
    Return the activity a sample represents, or None.

    Only samples whose confidence equals REQUIRED_CONFIDENCE are considered;
    both lower and higher confidence readings are rejected.
    Priority: running > walking > cycling > other (automotive or unknown).
    A flag whose activity is disabled in config falls through to the next tier.
    """
    if sample.confidence != _REQUIRED_CONFIDENCE:
        return None

    if sample.running and config.running_enabled:
        return ActivityType.RUNNING
    if sample.walking and config.walking_enabled:
        return ActivityType.WALKING
    if sample.cycling and config.cycling_enabled:
        return ActivityType.CYCLING
    if (sample.automotive or sample.unknown) and config.other_enabled:
        return ActivityType.OTHER

    return None
