"""API routers package.

- tasks: task and subtask routes
- attachments: task attachment routes
- users: user listing
"""

__all__ = [
    "tasks",
    "attachments",
    "users",
]
