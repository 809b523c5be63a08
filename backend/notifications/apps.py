from django.apps import AppConfig
import logging

logger = logging.getLogger(__name__)


class NotificationsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "notifications"

    # Push transport shared by every dispatch in this process
    transport = None

    def ready(self):
        """
        Create the push transport once at startup. Missing credentials are
        not fatal here; dispatch attempts report them until configured.
        """
        from .exceptions import TransportNotConfigured
        from .transport import FirebaseTransport

        try:
            self.transport = FirebaseTransport.from_settings()
        except TransportNotConfigured as e:
            logger.warning(f"Push notifications disabled until configured: {e}")
