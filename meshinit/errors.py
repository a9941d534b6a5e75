"""
Error types raised by the supervisor.

Every error carries a ``fatal`` flag. Fatal errors stop the run and make the
entry point exit with FATAL_EXIT_STATUS; recoverable ones are logged at
warning level and orchestration carries on.
"""

from typing import Optional

# Reserved for supervisor failures, as `docker run` does
FATAL_EXIT_STATUS = 125


class MeshInitError(Exception):
    """Base class for all supervisor errors."""

    fatal = True


class RuntimeInitError(MeshInitError):
    """The supervisor could not be brought up before any phase ran."""


class ConfigurationError(RuntimeInitError):
    """Invalid or incomplete configuration."""


class ReadinessError(MeshInitError):
    """The sidecar readiness wait did not succeed."""


class ReadinessTimeout(ReadinessError):
    """The readiness deadline elapsed before the sidecar reported ready."""

    def __init__(self, endpoint: str, deadline: float, attempts: int):
        super().__init__(
            f"Sidecar at {endpoint} not ready after {deadline:g}s ({attempts} probes)"
        )
        self.endpoint = endpoint
        self.deadline = deadline
        self.attempts = attempts


class ReadinessWaitFailed(MeshInitError):
    """Orchestration aborted because the sidecar never became ready."""


class SupervisorError(MeshInitError):
    """Base class for workload supervision failures."""


class SpawnError(SupervisorError):
    """The workload executable could not be started."""

    fatal = False

    def __init__(self, executable_path: str, cause: Optional[OSError] = None):
        reason = (cause.strerror or str(cause)) if cause else "unknown error"
        super().__init__(f"Failed to spawn {executable_path}: {reason}")
        self.executable_path = executable_path
        self.cause = cause


class ChildWaitError(SupervisorError):
    """The workload was started but its termination could not be observed."""


class TerminationError(MeshInitError):
    """The sidecar shutdown request failed."""

    def __init__(self, endpoint: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"Sidecar shutdown via {endpoint} failed: {message}")
        self.endpoint = endpoint
        self.status_code = status_code
        # Set by the orchestrator; the workload outcome computed before teardown.
        self.result = None
