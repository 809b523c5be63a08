import logging
from django.db import DatabaseError
from .models import PushDevice

logger = logging.getLogger(__name__)


class RegistryUnavailable(Exception):
    """The device table could not be read. No partial target set is returned."""


class DeviceRegistry:
    """
    Read-only view over registered staff devices.

    Tokens are the identity of a delivery target, so every read collapses
    duplicate registrations before anything is sent.
    """

    def __init__(self, queryset=None):
        self._queryset = queryset

    def _rows(self):
        queryset = self._queryset if self._queryset is not None else PushDevice.objects.all()
        # Newest registrations first; the order is only a freshness hint.
        return queryset.order_by('-created_at').values_list('fcm_token', flat=True)

    def list_targets_ordered(self):
        """Distinct tokens, most recently registered first."""
        try:
            tokens = list(self._rows())
        except DatabaseError as e:
            logger.error(f"Failed to read device registry: {e}")
            raise RegistryUnavailable(f"Failed to fetch FCM tokens: {e}") from e

        seen = set()
        ordered = []
        for token in tokens:
            token = (token or '').strip()
            if not token or token in seen:
                continue
            seen.add(token)
            ordered.append(token)

        if len(ordered) < len(tokens):
            logger.debug(f"Collapsed {len(tokens)} device rows into {len(ordered)} targets")
        return ordered

    def list_targets(self):
        """Every known device token, duplicates collapsed."""
        return frozenset(self.list_targets_ordered())
