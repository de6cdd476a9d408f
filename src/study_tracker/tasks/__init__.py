"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Tag, TaskStatus, TaskType)
- task_store.py: SQLite-backed storage scoped per user
- task_api.py: small high-level helpers wiring tasks to their timers
"""
