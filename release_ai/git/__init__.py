"""Git operations.

Usage:
    from release_ai.git import Repository

    repo = Repository(Path("."))
    if repo.is_clean():
        repo.checkout("develop")
"""

from release_ai.git.repository import (
    LOG_FORMAT,
    Commit,
    GitError,
    Repository,
    parse_log,
)

__all__ = [
    "Commit",
    "GitError",
    "LOG_FORMAT",
    "Repository",
    "parse_log",
]
