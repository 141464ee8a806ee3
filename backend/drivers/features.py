"""
Vehicle accessibility feature tokens.

Drivers pick features from human labels in the app settings screen; matching
works on short lowercase tokens, so every label is normalised on the way in.
"""

from typing import Iterable, List

FEATURE_LABELS = {
    "wheelchair accessible": "wheelchair",
    "wheelchair": "wheelchair",
    "assistance available": "assistance",
    "assistance": "assistance",
    "ramp access": "ramp",
    "ramp": "ramp",
    "audio announcements": "audio",
    "visual displays": "visual",
    "left entry": "left",
    "left": "left",
    "right entry": "right",
    "right": "right",
}


def normalize_feature(label: str) -> str:
    key = " ".join(str(label).strip().lower().split())
    return FEATURE_LABELS.get(key, key.replace(" ", "_"))


def normalize_features(labels: Iterable[str]) -> List[str]:
    """Normalise, de-duplicate and sort a list of feature labels."""
    return sorted({normalize_feature(label) for label in (labels or []) if str(label).strip()})
