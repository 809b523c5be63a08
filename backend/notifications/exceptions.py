"""
Errors raised while preparing or performing a notification fan-out.
Per-device send failures are not exceptions; they are counted in the
dispatch summary.
"""


class NotificationError(Exception):
    """Base class for fan-out errors that stop a dispatch attempt."""


class TransportNotConfigured(NotificationError):
    """Push credentials are missing or unusable. Nothing was sent."""


class NoTargets(NotificationError):
    """The device registry is empty. Nothing was sent."""

    def __init__(self, message="No POS devices found"):
        super().__init__(message)
