from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Literal, Optional, Union

logger = logging.getLogger("seeya.visibility")


class InvalidVisibilityError(ValueError):
    """Raised when a value is not one of the five known visibility levels."""


class VisibilityLevel(IntEnum):
    """
    Trip disclosure levels, ranked from most to least restrictive.

    The integer value is the rank: a lower value always discloses less.
    `wire` is the string stored in the `visibility_level` column.
    """
    ONLY_ME = 0
    BUSY_ONLY = 1
    DATES_ONLY = 2
    LOCATION_ONLY = 3
    FULL_DETAILS = 4

    @property
    def wire(self) -> str:
        return self.name.lower()

    @property
    def label(self) -> str:
        return _LABELS[self][0]

    @property
    def description(self) -> str:
        return _LABELS[self][1]


_LABELS = {
    VisibilityLevel.ONLY_ME: ("Only me", "Private - only you can see this trip"),
    VisibilityLevel.BUSY_ONLY: ("Show I'm busy", "Friends see you're traveling"),
    VisibilityLevel.DATES_ONLY: ("Show dates", "Friends see when you're traveling"),
    VisibilityLevel.LOCATION_ONLY: ("Show destination", "Friends see where you're going"),
    VisibilityLevel.FULL_DETAILS: ("Full details", "Friends see all trip details"),
}

_BY_WIRE = {level.wire: level for level in VisibilityLevel}

VisibilityInput = Union[VisibilityLevel, str]
DisplayAs = Literal["hidden", "busy", "dates", "location", "full"]


@dataclass(frozen=True)
class DisplayPolicy:
    show_name: bool
    show_destination: bool
    show_dates: bool
    display_as: DisplayAs


_POLICIES = {
    VisibilityLevel.ONLY_ME: DisplayPolicy(False, False, False, "hidden"),
    VisibilityLevel.BUSY_ONLY: DisplayPolicy(False, False, True, "busy"),
    VisibilityLevel.DATES_ONLY: DisplayPolicy(True, False, True, "dates"),
    VisibilityLevel.LOCATION_ONLY: DisplayPolicy(True, True, False, "location"),
    VisibilityLevel.FULL_DETAILS: DisplayPolicy(True, True, True, "full"),
}

# Per-trip calendar preference -> personal override ("follow" = no override)
_CALENDAR_CHOICES = {
    "follow": None,
    "hide": VisibilityLevel.ONLY_ME,
    "busy": VisibilityLevel.BUSY_ONLY,
    "dates": VisibilityLevel.DATES_ONLY,
    "location": VisibilityLevel.LOCATION_ONLY,
}


def parse_visibility(value: Optional[VisibilityInput]) -> Optional[VisibilityLevel]:
    """
    Normalise a level given as enum member or wire string.

    None passes through (no override). Anything else that is not one of
    the five levels raises InvalidVisibilityError.
    """
    if value is None:
        return None
    if isinstance(value, VisibilityLevel):
        return value
    if isinstance(value, str):
        level = _BY_WIRE.get(value.strip())
        if level is not None:
            return level
    raise InvalidVisibilityError(f"Unknown visibility level: {value!r}")


def _require(value: VisibilityInput) -> VisibilityLevel:
    level = parse_visibility(value)
    if level is None:
        raise InvalidVisibilityError("A visibility level is required, got None.")
    return level


def resolve_effective(
    trip_visibility: VisibilityInput,
    personal_visibility: Optional[VisibilityInput] = None,
) -> VisibilityLevel:
    """
    Most restrictive of the owner's trip setting and the viewer's override.
    No override means the trip setting applies unchanged.
    """
    trip_level = _require(trip_visibility)
    personal_level = parse_visibility(personal_visibility)
    if personal_level is None:
        return trip_level
    return min(trip_level, personal_level)


def should_show_trip(
    trip_visibility: VisibilityInput,
    personal_visibility: Optional[VisibilityInput] = None,
) -> bool:
    return resolve_effective(trip_visibility, personal_visibility) is not VisibilityLevel.ONLY_ME


def display_policy(effective: VisibilityInput) -> DisplayPolicy:
    """Field visibility for an effective level. Unknown levels raise."""
    level = _require(effective)
    try:
        return _POLICIES[level]
    except KeyError:
        # Only reachable if a level is added without a policy.
        logger.error("No display policy for visibility level %r", level)
        raise InvalidVisibilityError(f"No display policy for {level!r}") from None


def calendar_override(choice: str) -> Optional[VisibilityLevel]:
    """Map a calendar preference ("follow", "hide", ...) to a personal override."""
    try:
        return _CALENDAR_CHOICES[choice]
    except KeyError:
        raise InvalidVisibilityError(f"Unknown calendar preference: {choice!r}") from None


def calendar_choice(override: Optional[VisibilityInput]) -> str:
    """Inverse of calendar_override; FULL_DETAILS maps back to "follow"."""
    level = parse_visibility(override)
    if level is None or level is VisibilityLevel.FULL_DETAILS:
        return "follow"
    for choice, mapped in _CALENDAR_CHOICES.items():
        if mapped is level:
            return choice
    raise InvalidVisibilityError(f"Unknown visibility level: {override!r}")
