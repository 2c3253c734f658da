"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskStatus)
- task_repository.py: owner-scoped CRUD over the record store
"""
