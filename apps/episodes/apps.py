"""Episodes app configuration."""
from django.apps import AppConfig


class EpisodesConfig(AppConfig):
    """Configuration for episodes app."""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.episodes'
    verbose_name = 'Episodes'
