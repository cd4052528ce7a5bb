"""Error codes for CLI exit status.

Every command maps its failure to one of these codes so shell scripts
driving a release can tell a bad argument from a broken remote.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    These values are used as process exit codes and should remain stable:
    - 0: Success
    - 1: User error (bad version string, missing argument)
    - 2: Environment error (missing tool, missing credential, bad config)
    - 3: Git error (checkout, merge, push, tag failed)
    - 4: Network error (AI API unreachable, timed out, rejected)
    - 5: I/O error (version file could not be written)
    - 6: Verification error (version files disagree after update)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    GIT_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5
    VERIFY_ERROR = 6

    def __str__(self) -> str:
        """Return human-readable name."""
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
