"""
Repo Module — Source repository inspection and primary push.
"""

from .inspector import Repository, inspect_repository
from .primary import default_commit_message, push_primary

__all__ = [
    "Repository",
    "inspect_repository",
    "default_commit_message",
    "push_primary",
]
