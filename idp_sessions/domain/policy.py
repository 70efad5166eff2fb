from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import Settings


@dataclass(frozen=True)
class SessionPolicy:
    sliding_window: timedelta = timedelta(minutes=30)
    access_token_lifetime: timedelta = timedelta(minutes=10)
    absolute_lifetime: timedelta = timedelta(hours=8)
    max_rotation_attempts: int = 3

    def __post_init__(self) -> None:
        if self.sliding_window <= timedelta(0):
            raise ValueError("sliding_window must be positive")
        if self.absolute_lifetime < self.sliding_window:
            raise ValueError("absolute_lifetime cannot be shorter than sliding_window")
        if self.max_rotation_attempts < 1:
            raise ValueError("max_rotation_attempts must be at least 1")

    @classmethod
    def from_settings(cls, settings: "Settings") -> "SessionPolicy":
        return cls(
            sliding_window=timedelta(minutes=settings.sliding_window_minutes),
            access_token_lifetime=timedelta(minutes=settings.access_token_expire_minutes),
            absolute_lifetime=timedelta(hours=settings.session_absolute_lifetime_hours),
            max_rotation_attempts=settings.refresh_rotation_max_attempts,
        )


DEFAULT_SESSION_POLICY = SessionPolicy()
