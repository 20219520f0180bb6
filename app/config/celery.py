"""
Celery configuration for the Django application.

Celery runs the scheduled billing jobs:
- Monthly subscription charges
- Recurring expense generation
- Daily balance reconciliation

Schedules are stored in the database (django-celery-beat DatabaseScheduler)
and registered by a data migration in the buildings app. Tasks are
auto-discovered from all installed Django apps.

Usage:
    # Worker and scheduler
    celery -A config worker -l info
    celery -A config beat -l info

    # Trigger a job by hand
    from buildings.tasks import generate_monthly_subscriptions
    generate_monthly_subscriptions.delay()

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Celery looks for a tasks.py module in each installed app
app.autodiscover_tasks()
