"""
Personal-finance API: JWT auth and per-user revenue records.

Feature packages (`auth/`, `revenue/`, `docs/`, `dashboard/`) each keep their
own router, business logic and SQL. Shared wiring lives in `core/`.
"""
