"""
Deletion queue processing.

This package provides:
- Postgres-backed queue of scheduled hard deletes
- Single-pass processor with conditional claims and forward-only statuses
- Bounded retry of status writes and a stale-claim sweep
- Service-role protected endpoints for the scheduler and operators
"""
