from enum import Enum


class JobPhase(str, Enum):
    IDLE = "Idle"
    SUBMITTING = "Submitting"
    POLLING = "Polling"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    TIMED_OUT = "TimedOut"


class DeploymentOutcome(str, Enum):
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"


class TestOutcome(str, Enum):
    __test__ = False

    PASS = "Pass"
    FAIL = "Fail"


class Direction(str, Enum):
    ENTERING = "Entering"
    EXITING = "Exiting"
    UNKNOWN = "Unknown"


class Severity(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class SubmissionMode(str, Enum):
    """How a deployment request reaches the remote system"""
    DIRECT = "direct"
    SIDE_CHANNEL = "side_channel"


class SnapshotSource(str, Enum):
    DETAILED = "detailed"
    SIMPLE = "simple"
    SIDE_CHANNEL = "side_channel"


class TerminalKind(str, Enum):
    """Why the status poller stopped"""
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    STATUS_CHECK_ERROR = "status_check_error"
