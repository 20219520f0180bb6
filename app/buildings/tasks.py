"""
Celery tasks for scheduled billing.

This module provides periodic tasks for:
- Posting monthly subscription charges (1st of the month)
- Generating recurring expense children (1st of the month)
- Reporting cached balance drift (daily)

Schedules live in the database (django-celery-beat) and are registered
by migration 0002_register_billing_schedules.

Usage:
    from buildings.tasks import generate_monthly_subscriptions

    # Run now instead of waiting for the schedule
    generate_monthly_subscriptions.delay()
"""

from __future__ import annotations

import logging

from celery import shared_task

from buildings.services import ExpenseService, ReconciliationService, SubscriptionService

logger = logging.getLogger(__name__)


@shared_task
def generate_monthly_subscriptions() -> dict:
    """
    Post every missing subscription month for all billable apartments.

    Safe to run more than once for the same month: months already charged
    are skipped. Each apartment is processed in its own transaction.

    Returns:
        Dict with month, apartments, charges_posted and failed counts
    """
    return SubscriptionService.generate_monthly_subscriptions()


@shared_task
def process_recurring_expenses() -> dict:
    """
    Generate the missing child expenses of every recurring template.

    Returns:
        Dict with templates, children_created and failed counts
    """
    return ExpenseService.process_recurring_expenses()


@shared_task
def run_balance_reconciliation() -> dict:
    """
    Compare cached balances with the ledger and log any drift.

    Never corrects anything.

    Returns:
        Dict with apartments_checked and discrepancies counts
    """
    report = ReconciliationService.get_reconciliation()
    stats = {
        "apartments_checked": report.apartments_checked,
        "discrepancies": len(report.discrepancies),
    }
    logger.info("Balance reconciliation task completed", extra=stats)
    return stats
