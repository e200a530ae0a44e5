from django.apps import AppConfig


class WpLinkerConfig(AppConfig):
    """Configuration for the wplinker Django app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'wplinker'
    verbose_name = 'WordPress internal linker'
