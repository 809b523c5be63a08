from django.contrib import admin
from django.db.models import Count, OuterRef, Subquery
from .models import PushDevice


@admin.register(PushDevice)
class PushDeviceAdmin(admin.ModelAdmin):
    """
    Admin for staff push devices. Registering a device here makes it a
    target for new-order notifications.
    """

    list_display = ("label", "token_preview", "registrations", "created_at")
    search_fields = ("label", "fcm_token")
    readonly_fields = ("created_at",)
    ordering = ("-created_at",)

    def get_queryset(self, request):
        duplicates = (
            PushDevice.objects.filter(fcm_token=OuterRef("fcm_token"))
            .values("fcm_token")
            .annotate(total=Count("id"))
            .values("total")
        )
        return super().get_queryset(request).annotate(registration_count=Subquery(duplicates))

    def token_preview(self, obj):
        token = obj.fcm_token or ""
        return f"{token[:12]}…{token[-6:]}" if len(token) > 20 else token

    token_preview.short_description = "FCM token"

    def registrations(self, obj):
        """Rows sharing this token; more than one is delivered to once."""
        return getattr(obj, "registration_count", 1)

    registrations.short_description = "Registrations"
