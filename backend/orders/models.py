import uuid
from decimal import Decimal
from django.core.validators import MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _


class Order(models.Model):
    """
    A table order placed from the customer ordering surface.

    The order record is the single source of truth shared by the customer
    and staff surfaces. Only `status` changes after creation.
    """

    class OrderStatus(models.TextChoices):
        UNPROVIDED = "unprovided", _("Unprovided")  # Waiting to be served
        PROVIDED = "provided", _("Provided")  # Served to the table
        PAID = "paid", _("Paid")  # Settled

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    table_name = models.CharField(
        max_length=100,
        help_text=_("Free-text label of the table or ordering location"),
    )
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.UNPROVIDED,
        db_index=True,
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="order_status_created_idx"),
        ]

    def __str__(self):
        return f"Order {self.id} ({self.table_name}, {self.status})"


class OrderItem(models.Model):
    """
    Point-in-time copy of a menu entry inside an order.

    Name and price are snapshotted when the order is placed, so later menu
    changes never alter existing orders.
    """

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    menu_item_id = models.CharField(
        max_length=64,
        help_text=_("Identifier of the menu entry this line was copied from"),
    )
    name = models.CharField(max_length=200)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    position = models.PositiveIntegerField(
        default=0,
        help_text=_("Insertion order within the order, used for display"),
    )

    class Meta:
        ordering = ["position", "id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_item_quantity_positive",
            ),
        ]

    def __str__(self):
        return f"{self.name} x {self.quantity}"

    @property
    def total_price(self):
        return self.price * self.quantity
