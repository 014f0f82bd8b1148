"""
Task subsystem.

Components:
- task_models.py: data structures (Task)
- task_store.py: SQLite-backed storage + query/update helpers
- ordering.py: visible ordering and drag reordering
- reconcile.py: desired-state tracker + per-task reconciliation worker
- session.py: one user's optimistic task list
"""
