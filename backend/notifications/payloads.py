import json
import warnings
from dataclasses import dataclass
from typing import Dict, Optional

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from firebase_admin import messaging

DEFAULT_PUSH_SETTINGS = {
    "TITLE": "新しい注文",
    "BODY_TEMPLATE": "{table_name}から注文が入りました",
    "ANDROID_CHANNEL_ID": "orders",
    "ANDROID_PRIORITY": "high",
    "SOUND_NAME": "notify",
    "APNS_SOUND_EXTENSION": "caf",
}

# Value FCM treats as "play the system sound"
SYSTEM_SOUND = "default"


def get_push_settings() -> Dict:
    config = dict(DEFAULT_PUSH_SETTINGS)
    config.update(getattr(settings, "PUSH_NOTIFICATIONS", None) or {})
    return config


@dataclass(frozen=True)
class NotificationPayload:
    """
    Platform-neutral new-order notification.

    `data` is for the receiving app and always maps strings to strings.
    The visible title/body is what the OS shows in the tray.
    """

    data: Dict[str, str]
    title: str
    body: str
    android_priority: str
    android_channel_id: str
    android_sound: str
    apns_sound: str

    def for_token(self, token: str) -> Dict:
        """Wire shape of the message addressed to one device."""
        return {
            "token": token,
            "data": dict(self.data),
            "notification": {"title": self.title, "body": self.body},
            "android": {
                "priority": self.android_priority,
                "notification": {
                    "channel_id": self.android_channel_id,
                    "sound": self.android_sound,
                },
            },
            "apns": {"payload": {"aps": {"sound": self.apns_sound}}},
        }

    def to_message(self, token: str) -> messaging.Message:
        # `token` carries an FCM registration token. Newer SDKs flag it as
        # deprecated in favour of installation ids (fid), which devices here
        # do not register.
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", DeprecationWarning)
            return self._build_message(token)

    def _build_message(self, token: str) -> messaging.Message:
        return messaging.Message(
            token=token,
            data=dict(self.data),
            notification=messaging.Notification(title=self.title, body=self.body),
            android=messaging.AndroidConfig(
                priority=self.android_priority,
                notification=messaging.AndroidNotification(
                    channel_id=self.android_channel_id,
                    sound=self.android_sound,
                ),
            ),
            apns=messaging.APNSConfig(
                payload=messaging.APNSPayload(aps=messaging.Aps(sound=self.apns_sound)),
            ),
        )


class NotificationPayloadBuilder:
    """
    Turns an Order into a NotificationPayload. The same order always yields
    an equal payload.

    The order must arrive with its items prefetched, as OrderService.get_order
    returns it; otherwise reading `order.items` queries the database.
    """

    def __init__(self, config: Optional[Dict] = None):
        self.config = config if config is not None else get_push_settings()

        sound = str(self.config["SOUND_NAME"])
        # The Android sound is referenced without its file extension.
        self.sound_name = sound.rsplit(".", 1)[0] if "." in sound else sound
        if not self.sound_name or self.sound_name == SYSTEM_SOUND:
            raise ImproperlyConfigured(
                "PUSH_NOTIFICATIONS['SOUND_NAME'] must name a custom sound, not the system default"
            )
        extension = str(self.config["APNS_SOUND_EXTENSION"]).lstrip(".")
        self.apns_sound = f"{self.sound_name}.{extension}"

    @staticmethod
    def serialize_items(order) -> str:
        """
        Compact JSON array of {id, name, price, quantity} in display order.
        Reads the prefetched `order.items`.
        """
        items = [
            {
                "id": item.menu_item_id,
                "name": item.name,
                "price": str(item.price),
                "quantity": item.quantity,
            }
            for item in order.items.all()
        ]
        return json.dumps(items, ensure_ascii=False, sort_keys=True, separators=(",", ":"))

    def build(self, order) -> NotificationPayload:
        table_name = order.table_name or ""
        return NotificationPayload(
            data={
                "orderId": str(order.id),
                "tableName": table_name,
                "status": order.status or "",
                "items": self.serialize_items(order),
            },
            title=self.config["TITLE"],
            body=self.config["BODY_TEMPLATE"].format(table_name=table_name),
            android_priority=self.config["ANDROID_PRIORITY"],
            android_channel_id=self.config["ANDROID_CHANNEL_ID"],
            android_sound=self.sound_name,
            apns_sound=self.apns_sound,
        )
