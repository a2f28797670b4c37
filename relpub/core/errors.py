"""Exit codes for relpub commands.

Each publish failure kind maps to one of these codes so CI jobs can tell a
configuration problem apart from a network failure without parsing output.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Process exit codes.

    These values are used as process exit codes and should remain stable:
    - 0: Success
    - 1: User error (bad input, no release tag to publish)
    - 2: Environment error (bad config, missing credential)
    - 3: Build error (installer could not be rendered)
    - 4: Network error (clone or push failed)
    - 5: I/O error (local commit or tag failed)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5
