# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Immutable admission policy.

The policy bundles every tunable the gates and the digest batcher read:
daily caps per priority, the types that bypass preferences, the dedup
window and the digest windows. It is built once from settings and passed
to collaborators at construction time.

Example:
    >>> policy = NotificationPolicy.from_settings(get_settings().notifications)
    >>> policy.cap_for(PriorityLevel.LOW)
    3
"""

from dataclasses import dataclass, field
from datetime import timedelta
from types import MappingProxyType
from typing import Mapping

from src.core.config.settings import NotificationSettings
from src.core.notifications.types import (
    DigestFrequency,
    NotificationTypes,
    PriorityLevel,
)

_DEFAULT_CAPS = MappingProxyType(
    {
        PriorityLevel.HIGH: 10,
        PriorityLevel.MEDIUM: 5,
        PriorityLevel.LOW: 3,
        PriorityLevel.INFO: 2,
    }
)

_DEFAULT_DIGEST_WINDOWS = MappingProxyType(
    {
        DigestFrequency.DAILY: timedelta(hours=24),
        DigestFrequency.WEEKLY: timedelta(days=7),
    }
)


@dataclass(frozen=True)
class NotificationPolicy:
    """Frozen configuration shared by the admission and digest components.

    Attributes:
        daily_caps: Per-priority daily cap. CRITICAL is absent (unbounded).
        critical_types: Types that always pass the preference gate.
        dedup_window: Trailing window for duplicate detection.
        digest_priorities: Priorities eligible for digests.
        digest_windows: Look-back per digest frequency.
        default_timezone: Zone for users without one.
    """

    daily_caps: Mapping[PriorityLevel, int] = field(default_factory=lambda: _DEFAULT_CAPS)
    critical_types: frozenset[str] = frozenset(
        {
            NotificationTypes.SAFETY_ALERT,
            NotificationTypes.EMERGENCY,
            NotificationTypes.RISK_ALERT,
        }
    )
    dedup_window: timedelta = timedelta(hours=6)
    digest_priorities: frozenset[PriorityLevel] = frozenset(
        {PriorityLevel.LOW, PriorityLevel.INFO}
    )
    digest_windows: Mapping[DigestFrequency, timedelta] = field(
        default_factory=lambda: _DEFAULT_DIGEST_WINDOWS
    )
    default_timezone: str = "UTC"

    def __post_init__(self) -> None:
        if PriorityLevel.CRITICAL in self.daily_caps:
            raise ValueError("CRITICAL notifications cannot be capped")
        previous = 0
        for level in sorted(self.daily_caps):
            cap = self.daily_caps[level]
            if cap < previous:
                raise ValueError(
                    f"Daily cap for {level.name} ({cap}) is lower than a less "
                    f"important level ({previous})"
                )
            previous = cap
        object.__setattr__(self, "daily_caps", MappingProxyType(dict(self.daily_caps)))

    @classmethod
    def from_settings(cls, settings: NotificationSettings) -> "NotificationPolicy":
        """Build the policy from notification settings."""
        return cls(
            daily_caps={
                PriorityLevel.HIGH: settings.daily_cap_high,
                PriorityLevel.MEDIUM: settings.daily_cap_medium,
                PriorityLevel.LOW: settings.daily_cap_low,
                PriorityLevel.INFO: settings.daily_cap_info,
            },
            dedup_window=timedelta(hours=settings.dedup_window_hours),
            default_timezone=settings.default_timezone,
        )

    def cap_for(self, priority: PriorityLevel) -> int | None:
        """Daily cap for a priority, None when unbounded."""
        if priority == PriorityLevel.CRITICAL:
            return None
        return self.daily_caps.get(priority)

    def is_critical_type(self, notification_type: str) -> bool:
        """Check whether a type bypasses preference suppression."""
        return notification_type in self.critical_types

    def digest_window(self, frequency: DigestFrequency) -> timedelta:
        """Look-back window for a digest frequency."""
        return self.digest_windows[frequency]
