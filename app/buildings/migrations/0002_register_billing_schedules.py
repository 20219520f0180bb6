"""
Add celery-beat schedules for billing tasks.

This migration creates the periodic task schedules for:
- generate_monthly_subscriptions: 1st of the month at midnight
- process_recurring_expenses: 1st of the month, after subscriptions
- run_balance_reconciliation: daily

Crontabs run on the BILLING_TIME_ZONE clock.
"""

from django.conf import settings
from django.db import migrations

TASK_NAMES = [
    "Generate Monthly Subscriptions",
    "Process Recurring Expenses",
    "Run Balance Reconciliation",
]


def create_periodic_tasks(apps, schema_editor):
    """Create the periodic tasks for billing."""
    CrontabSchedule = apps.get_model("django_celery_beat", "CrontabSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    # 1st of every month at 00:00
    monthly_midnight, _ = CrontabSchedule.objects.get_or_create(
        minute="0",
        hour="0",
        day_of_week="*",
        day_of_month="1",
        month_of_year="*",
        timezone=settings.BILLING_TIME_ZONE,
    )

    # 1st of every month at 00:30
    monthly_after_subscriptions, _ = CrontabSchedule.objects.get_or_create(
        minute="30",
        hour="0",
        day_of_week="*",
        day_of_month="1",
        month_of_year="*",
        timezone=settings.BILLING_TIME_ZONE,
    )

    # Daily at 03:00
    daily_3am, _ = CrontabSchedule.objects.get_or_create(
        minute="0",
        hour="3",
        day_of_week="*",
        day_of_month="*",
        month_of_year="*",
        timezone=settings.BILLING_TIME_ZONE,
    )

    PeriodicTask.objects.get_or_create(
        name="Generate Monthly Subscriptions",
        defaults={
            "task": "buildings.tasks.generate_monthly_subscriptions",
            "crontab": monthly_midnight,
            "enabled": True,
            "description": (
                "Posts every missing subscription month for occupied apartments "
                "with an active subscription. Safe to re-run."
            ),
        },
    )

    PeriodicTask.objects.get_or_create(
        name="Process Recurring Expenses",
        defaults={
            "task": "buildings.tasks.process_recurring_expenses",
            "crontab": monthly_after_subscriptions,
            "enabled": True,
            "description": (
                "Creates the missing monthly/yearly child expenses of every "
                "recurring template and splits them among occupied apartments."
            ),
        },
    )

    PeriodicTask.objects.get_or_create(
        name="Run Balance Reconciliation",
        defaults={
            "task": "buildings.tasks.run_balance_reconciliation",
            "crontab": daily_3am,
            "enabled": True,
            "description": "Logs apartments whose cached balance differs from the ledger. Never corrects.",
        },
    )


def remove_periodic_tasks(apps, schema_editor):
    """Remove the periodic tasks on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(name__in=TASK_NAMES).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("buildings", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
