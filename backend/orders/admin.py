from django.contrib import admin
from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ("menu_item_id", "name", "price", "quantity", "position", "get_line_item_total")
    fields = ("position", "menu_item_id", "name", "price", "quantity", "get_line_item_total")
    can_delete = False

    def get_line_item_total(self, obj):
        return f"¥{obj.total_price:,.2f}"

    get_line_item_total.short_description = "Line Item Total"

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Admin configuration for the Order model.
    Items are snapshots and stay read-only; only status is editable.
    """

    list_display = ("id", "table_name", "status", "item_count", "created_at")
    list_filter = ("status", "created_at")
    search_fields = ("id", "table_name")
    readonly_fields = ("id", "table_name", "created_at", "updated_at")
    inlines = [OrderItemInline]
    ordering = ("-created_at",)

    def get_queryset(self, request):
        return super().get_queryset(request).prefetch_related("items")

    def item_count(self, obj):
        return len(obj.items.all())

    item_count.short_description = "Lines"
