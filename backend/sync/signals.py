from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import receiver

from orders.models import Order

from .realtime import publish_order_change

INSERT = "INSERT"
UPDATE = "UPDATE"


@receiver(post_save, sender=Order)
def handle_order_saved(sender, instance, created, **kwargs):
    """
    Announce order writes on the realtime feed once they are committed,
    so observers re-read a state that already includes the change.
    """
    event = INSERT if created else UPDATE
    order_id = str(instance.id)
    transaction.on_commit(lambda: publish_order_change(event, order_id))
