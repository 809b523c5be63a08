from django.db import models


class PushDevice(models.Model):
    """
    A staff device that receives new-order push notifications.

    `fcm_token` is the delivery address and the device's identity. The same
    token may be registered more than once (reinstalls, repeated pairing);
    readers collapse duplicates instead of the table enforcing uniqueness.
    """

    fcm_token = models.CharField(
        max_length=512,
        db_index=True,
        help_text="Firebase Cloud Messaging registration token"
    )
    label = models.CharField(
        max_length=100,
        blank=True,
        help_text="Optional nickname shown in the admin"
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = 'pos_devices'
        ordering = ['-created_at']

    def __str__(self):
        suffix = self.fcm_token[-8:] if self.fcm_token else "?"
        return f"{self.label or 'Device'} (…{suffix})"
