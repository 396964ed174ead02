"""Exceptions raised by k3sjoin"""


class JoinError(Exception):
    """Base exception for k3sjoin errors"""

    pass


class FatalError(JoinError):
    """Unrecoverable error, the process exits non-zero"""

    pass


class RetryableError(JoinError):
    """Transient condition, retried until a deadline passes"""

    pass


class ConfigError(FatalError):
    """Invalid configuration"""

    pass


class ParameterNotFound(RetryableError):
    """Parameter does not exist in the store yet"""

    pass


class StoreUnavailable(RetryableError):
    """Parameter store could not be reached"""

    pass


class StoreWriteRejected(FatalError):
    """Parameter store refused a write"""

    pass


class ProbeFailed(RetryableError):
    """Endpoint health probe did not succeed"""

    pass


class MembershipUnavailable(RetryableError):
    """Cluster membership could not be listed"""

    pass


class MembershipTimeout(FatalError):
    """Expected node count was not reached in time"""

    def __init__(self, ready: int, expected: int, timeout: float):
        self.ready = ready
        self.expected = expected
        self.timeout = timeout
        super().__init__(
            f"Timeout: only {ready} of {expected} nodes Ready after {format_duration(timeout)}"
        )


class MetadataError(FatalError):
    """Instance metadata lookup failed"""

    pass


class DiscoveryFailed(FatalError):
    """Coordinator instance could not be discovered"""

    pass


class Terminated(FatalError):
    """Process received SIGTERM"""

    pass


class CommandFailed(FatalError):
    """External command exited non-zero"""

    def __init__(self, cmd: list, returncode: int, stderr: str = ""):
        self.cmd = cmd
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"Command failed with code {returncode}: {' '.join(cmd)}")


def format_duration(seconds: float) -> str:
    """Render seconds as e.g. '5m 0s'"""
    seconds = int(seconds)
    return f"{seconds // 60}m {seconds % 60}s"
