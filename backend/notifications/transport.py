import logging
import threading

import firebase_admin
from django.apps import apps
from django.conf import settings
from firebase_admin import credentials, messaging

from .exceptions import TransportNotConfigured

logger = logging.getLogger(__name__)

CREDENTIAL_SETTINGS = ("FIREBASE_PROJECT_ID", "FIREBASE_CLIENT_EMAIL", "FIREBASE_PRIVATE_KEY")


def missing_credentials():
    return [name for name in CREDENTIAL_SETTINGS if not getattr(settings, name, None)]


class PushTransport:
    """Delivers one message to one device. Subclasses do the actual I/O."""

    def ensure_initialized(self):
        """Fail fast with TransportNotConfigured before any send is attempted."""

    def send(self, message) -> str:
        raise NotImplementedError


class FirebaseTransport(PushTransport):
    """
    Firebase Cloud Messaging transport.

    Owns a named firebase_admin App, created at most once per transport even
    when several sends race to use it first.
    """

    APP_NAME = "order-notifications"

    def __init__(self, project_id, client_email, private_key, app_name=APP_NAME):
        if not (project_id and client_email and private_key):
            raise TransportNotConfigured("Firebase project id, client email and private key are required")
        self.project_id = project_id
        self.client_email = client_email
        self._private_key = private_key
        self.app_name = app_name
        self._app = None
        self._init_lock = threading.Lock()

    @classmethod
    def from_settings(cls):
        missing = missing_credentials()
        if missing:
            raise TransportNotConfigured(f"Missing {', '.join(missing)}")
        return cls(
            project_id=settings.FIREBASE_PROJECT_ID,
            client_email=settings.FIREBASE_CLIENT_EMAIL,
            private_key=settings.FIREBASE_PRIVATE_KEY,
        )

    def ensure_initialized(self):
        if self._app is not None:
            return self._app

        with self._init_lock:
            if self._app is None:
                try:
                    certificate = credentials.Certificate({
                        "type": "service_account",
                        "project_id": self.project_id,
                        "client_email": self.client_email,
                        "private_key": self._private_key,
                        "token_uri": "https://oauth2.googleapis.com/token",
                    })
                except ValueError as e:
                    raise TransportNotConfigured(f"Invalid Firebase credentials: {e}") from e

                try:
                    self._app = firebase_admin.initialize_app(
                        certificate, {"projectId": self.project_id}, name=self.app_name
                    )
                    logger.info(f"Firebase app '{self.app_name}' initialized for project {self.project_id}")
                except ValueError:
                    # Another transport in this process already created the app
                    self._app = firebase_admin.get_app(self.app_name)
        return self._app

    def send(self, message) -> str:
        return messaging.send(message, app=self.ensure_initialized())


def get_transport() -> PushTransport:
    """
    The process-wide transport created when the notifications app started.
    Raises TransportNotConfigured when credentials were not available.
    """
    transport = apps.get_app_config("notifications").transport
    if transport is None:
        missing = missing_credentials() or list(CREDENTIAL_SETTINGS)
        raise TransportNotConfigured(f"Missing {', '.join(missing)}")
    return transport
