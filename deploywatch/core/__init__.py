from .enums import (
    DeploymentOutcome,
    Direction,
    JobPhase,
    Severity,
    SnapshotSource,
    SubmissionMode,
    TerminalKind,
    TestOutcome,
)
from .errors import (
    DeploymentError,
    DeploymentFailed,
    DeploymentTimedOut,
    JobStateError,
    ServiceError,
    SourceFetchWarning,
    StatusCheckError,
    SubmissionError,
)
from .models import (
    CardSummary,
    DeploymentJob,
    FieldMapping,
    FieldMappingBundle,
    Notification,
    RawFieldMappings,
    ResolvedMapping,
    SideChannelInspection,
    SideChannelResult,
    SimpleStatus,
    StatusSnapshot,
    TargetOption,
    TestResult,
)
