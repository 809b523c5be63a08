from django.apps import AppConfig


class SyncConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "sync"
    verbose_name = "Realtime Order Sync"

    def ready(self):
        import sync.signals  # noqa: F401
