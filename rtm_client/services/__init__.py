"""
Service layer modules orchestrate task workflows on top of the lower-level
HTTP client adapter.
"""

__all__ = [
    "task_service",
]
