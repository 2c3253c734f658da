"""
taskflow: single-user task tracker with an AI helper.

Components:
- storage/record_store.py: named record collections (SQLite, in-memory)
- accounts/: accounts, session tokens, credential verifier seam
- tasks/: task models + owner-scoped repository
- advisor/: subtask suggestions and prioritization over a completion client
- llm/: OpenRouter-compatible and offline completion clients
- core/session.py: client session controller (invalidate-then-refetch cache)
- cli/, connectors/: console front end
"""

__version__ = "0.1.0"
