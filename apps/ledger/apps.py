"""Ledger app configuration."""
from django.apps import AppConfig


class LedgerConfig(AppConfig):
    """Configuration for the lifecycle ledger app."""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.ledger'
    verbose_name = 'Lifecycle Ledger'
