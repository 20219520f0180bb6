"""
Buildings app configuration.

This app provides the apartment billing core:
- Append-only per-apartment ledger and balance engine
- Occupancy period tracking
- Monthly subscription and recurring expense generation
- Balance reconciliation reporting
"""

from django.apps import AppConfig


class BuildingsConfig(AppConfig):
    """Configuration for the buildings application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "buildings"
    verbose_name = "Buildings"
