"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskStatus) and ChangeRecord JSON
- task_store.py: SQLite-backed task store, backlog log and staged sync session
"""
