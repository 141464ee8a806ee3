"""
Immutable value types shared by the ride, driver and matching layers.

These are plain dataclasses so they can be built from ORM rows, request
payloads or test fixtures alike.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional


class EntrySide(str, Enum):
    LEFT = "left"
    RIGHT = "right"
    EITHER = "either"


@dataclass(frozen=True)
class Location:
    """A point on the map with an optional human-readable address."""
    latitude: float
    longitude: float
    address: Optional[str] = None

    @classmethod
    def from_values(cls, latitude, longitude, address: Optional[str] = None) -> "Location":
        return cls(float(latitude), float(longitude), address or None)

    def is_valid(self) -> bool:
        if math.isnan(self.latitude) or math.isnan(self.longitude):
            return False
        return -90 <= self.latitude <= 90 and -180 <= self.longitude <= 180


# Raw tokens understood on the wire (booking request "accessibility_options")
WHEELCHAIR = "wheelchair"
ASSISTANCE = "assistance"
ENTRY_SIDE_TOKENS = {side.value for side in EntrySide}
REQUIREMENT_TOKENS = {WHEELCHAIR, ASSISTANCE} | ENTRY_SIDE_TOKENS


@dataclass(frozen=True)
class AccessibilityRequirement:
    """Constraints a matched vehicle must satisfy."""
    wheelchair: bool = False
    entry_side: EntrySide = EntrySide.EITHER
    assistance: bool = False

    @classmethod
    def from_options(cls, options: Optional[Iterable[str]]) -> "AccessibilityRequirement":
        """
        Build a requirement from the booking request's list of option strings.

        "wheelchair" and "assistance" switch the flags on; the first of
        "left", "right" or "either" picks the entry side (default "either").

        Raises:
            ValueError: If an option is not a known token
        """
        tokens = [str(opt).strip().lower() for opt in (options or [])]
        unknown = [t for t in tokens if t not in REQUIREMENT_TOKENS]
        if unknown:
            raise ValueError(f"Unknown accessibility options: {', '.join(unknown)}")

        side = next((t for t in tokens if t in ENTRY_SIDE_TOKENS), EntrySide.EITHER.value)
        return cls(
            wheelchair=WHEELCHAIR in tokens,
            entry_side=EntrySide(side),
            assistance=ASSISTANCE in tokens,
        )

    def required_features(self) -> set:
        """Feature tokens a vehicle must list to satisfy this requirement."""
        features = set()
        if self.wheelchair:
            features.add(WHEELCHAIR)
        if self.assistance:
            features.add(ASSISTANCE)
        if self.entry_side != EntrySide.EITHER:
            features.add(self.entry_side.value)
        return features

    def as_options(self) -> list:
        options = []
        if self.wheelchair:
            options.append(WHEELCHAIR)
        if self.assistance:
            options.append(ASSISTANCE)
        options.append(self.entry_side.value)
        return options
