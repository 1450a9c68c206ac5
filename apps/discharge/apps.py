"""Discharge app configuration."""
from django.apps import AppConfig


class DischargeConfig(AppConfig):
    """Configuration for discharge app."""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.discharge'
    verbose_name = 'Discharge Letters'
