"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Priority, TaskStatus, TimeInterval) + validation
- timetrack.py: start/stop state machine and elapsed-time accounting
- scoring.py: urgency score and ordering
- record_lock.py: per-record advisory lock with bounded wait
- task_store.py: directory-backed YAML record store
- task_api.py: small high-level helpers used by the command layer
"""
