"""Error types raised by the reminder pipeline.

Every stage raises a subclass of ReminderError. None of them are recovered
inside the pipeline; the CLI catches ReminderError once, logs it and exits
with a non-zero status.
"""

from __future__ import annotations


class ReminderError(Exception):
    """Base class for all reminder failures."""


class ConfigError(ReminderError):
    """Configuration is missing, unreadable or invalid."""


class FetchError(ReminderError):
    """A Bitbucket API request failed."""

    def __init__(self, endpoint: str, message: str, status_code: int | None = None):
        self.endpoint = endpoint
        self.status_code = status_code
        detail = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(f"Bitbucket request to {endpoint} failed{detail}: {message}")


class DeliveryError(ReminderError):
    """The Slack webhook did not accept the digest."""
