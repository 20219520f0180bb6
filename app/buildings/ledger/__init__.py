"""
Apartment ledger subpackage.

Modules:
    models: LedgerEntry (append-only) and its enums
    types: Parameter and result dataclasses
    services: LedgerService - posting and idempotency lookups
    balance: BalanceService - signed-sum balance and the cached copy
    proration: Pure proration, calendar-month and penny-splitting helpers
    exceptions: Ledger exception hierarchy
"""
