"""
Buildings app for apartment billing.

This app handles:
- Apartment ledger (append-only debits/credits) and cached balances
- Occupancy periods and move-in/move-out accounting
- Monthly subscription charges with first-month proration
- Building expenses: penny-exact splits, recurring templates, backfill
- Payments and their allocation to charges
- Reconciliation of cached balances against the ledger
"""
