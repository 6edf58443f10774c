from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "orders"

    def ready(self):
        # Register the signal definitions so receivers in other apps can connect.
        from . import signals  # noqa: F401
