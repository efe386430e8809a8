from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union

from .enums import (
    DeploymentOutcome,
    Direction,
    JobPhase,
    Severity,
    SnapshotSource,
    SubmissionMode,
    TestOutcome,
)
from .errors import DeploymentError


def _first(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the value of the first key present (and not None) in data"""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


@dataclass
class TestResult:
    """Outcome of a single test executed as part of a deployment"""
    __test__ = False

    name: str
    outcome: TestOutcome
    message: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_outcome: TestOutcome = TestOutcome.PASS) -> 'TestResult':
        raw_outcome = _first(data, 'outcome')
        try:
            outcome = TestOutcome(raw_outcome) if raw_outcome else default_outcome
        except ValueError:
            outcome = TestOutcome.FAIL
        return cls(
            name=str(_first(data, 'name', 'methodName', default='')),
            outcome=outcome,
            message=_first(data, 'message'),
        )


@dataclass
class StatusSnapshot:
    """One point-in-time read of a remote deployment"""
    components_total: int = 0
    components_done: int = 0
    tests_total: int = 0
    tests_done: int = 0
    test_errors: int = 0
    done: bool = False
    outcome: DeploymentOutcome = DeploymentOutcome.UNKNOWN
    component_errors: List[str] = field(default_factory=list)
    test_results: List[TestResult] = field(default_factory=list)
    state: Optional[str] = None
    message: Optional[str] = None
    source: SnapshotSource = SnapshotSource.DETAILED

    @property
    def succeeded(self) -> bool:
        return self.done and self.outcome == DeploymentOutcome.SUCCEEDED

    @property
    def failed_tests(self) -> List[TestResult]:
        return [t for t in self.test_results if t.outcome == TestOutcome.FAIL]

    @property
    def passed_tests(self) -> List[TestResult]:
        return [t for t in self.test_results if t.outcome == TestOutcome.PASS]

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: SnapshotSource = SnapshotSource.DETAILED) -> 'StatusSnapshot':
        """
        Build a snapshot from any of the accepted status payload shapes.

        The detailed status service reports ``componentErrors``/``testResults``
        while side-channel events report ``componentFailures``/``testFailures``;
        count fields are accepted in snake_case, camelCase and the remote
        ``number*`` spelling.
        """
        data = data or {}

        raw_outcome = _first(data, 'outcome', 'status')
        if isinstance(raw_outcome, DeploymentOutcome):
            outcome = raw_outcome
        elif raw_outcome in (DeploymentOutcome.SUCCEEDED.value, DeploymentOutcome.FAILED.value):
            outcome = DeploymentOutcome(raw_outcome)
        elif raw_outcome in ('Completed',):
            outcome = DeploymentOutcome.SUCCEEDED
        elif raw_outcome in ('Canceled', 'Cancelled', 'SucceededPartial'):
            outcome = DeploymentOutcome.FAILED
        else:
            outcome = DeploymentOutcome.UNKNOWN

        test_results = [
            TestResult.from_dict(t) if isinstance(t, dict) else t
            for t in _first(data, 'test_results', 'testResults', default=[])
        ]
        test_results.extend(
            TestResult.from_dict(t, default_outcome=TestOutcome.FAIL) if isinstance(t, dict) else t
            for t in _first(data, 'test_failures', 'testFailures', default=[])
        )

        component_errors = [
            _component_error_text(e)
            for e in list(_first(data, 'component_errors', 'componentErrors', default=[]))
            + list(_first(data, 'component_failures', 'componentFailures', default=[]))
        ]

        return cls(
            components_total=_as_int(_first(data, 'components_total', 'componentsTotal', 'numberComponentsTotal')),
            components_done=_as_int(_first(data, 'components_done', 'componentsDone', 'numberComponentsDeployed')),
            tests_total=_as_int(_first(data, 'tests_total', 'testsTotal', 'numberTestsTotal')),
            tests_done=_as_int(_first(data, 'tests_done', 'testsDone', 'numberTestsCompleted')),
            test_errors=_as_int(_first(data, 'test_errors', 'testErrors', 'numberTestErrors')),
            done=bool(data.get('done', False)),
            outcome=outcome,
            component_errors=[e for e in component_errors if e],
            test_results=test_results,
            state=_first(data, 'state', 'status'),
            message=_first(data, 'message', 'errorMessage'),
            source=source,
        )


def _component_error_text(error: Any) -> str:
    if isinstance(error, dict):
        return str(_first(error, 'problem', 'message', 'error', default=''))
    return '' if error is None else str(error)


@dataclass
class SimpleStatus:
    """Coarse status returned by the fallback status service"""
    state: str
    message: Optional[str] = None
    done: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SimpleStatus':
        return cls(
            state=str(data.get('state') or ''),
            message=data.get('message'),
            done=bool(data.get('done', False)),
        )

    def to_snapshot(self) -> StatusSnapshot:
        """Map the coarse status onto a snapshot: only 'Completed' is a success"""
        if self.done:
            outcome = DeploymentOutcome.SUCCEEDED if self.state == 'Completed' else DeploymentOutcome.FAILED
        else:
            outcome = DeploymentOutcome.UNKNOWN
        return StatusSnapshot(
            done=self.done,
            outcome=outcome,
            state=self.state,
            message=self.message,
            source=SnapshotSource.SIMPLE,
        )


@dataclass
class SideChannelResult:
    success: bool
    job_id: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SideChannelResult':
        return cls(
            success=bool(data.get('success', False)),
            job_id=_first(data, 'job_id', 'jobId', 'asyncResultId'),
            error=data.get('error'),
        )


@dataclass
class SideChannelInspection:
    """What an inspection of an open side channel found"""
    closed: bool = False
    result: Optional[SideChannelResult] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SideChannelInspection':
        result = data.get('result')
        return cls(
            closed=bool(data.get('closed', False)),
            result=SideChannelResult.from_dict(result) if isinstance(result, dict) else result,
        )


@dataclass(frozen=True)
class TargetOption:
    key: str
    label: str

    @classmethod
    def from_value(cls, value: Union[str, Dict[str, Any]]) -> 'TargetOption':
        if isinstance(value, dict):
            key = str(_first(value, 'key', 'value', 'name'))
            return cls(key=key, label=str(_first(value, 'label', default=key)))
        return cls(key=str(value), label=str(value))


@dataclass(frozen=True)
class CardSummary:
    """Aggregate stats for one deployable target"""
    target_key: str
    label: str
    field_count: int = 0
    total_mappings: int = 0
    has_deployed_artifact: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CardSummary':
        target_key = str(_first(data, 'target_key', 'targetKey', 'objectApiName', 'objectName'))
        return cls(
            target_key=target_key,
            label=str(_first(data, 'label', 'objectLabel', default=target_key)),
            field_count=_as_int(_first(data, 'field_count', 'fieldCount')),
            total_mappings=_as_int(_first(data, 'total_mappings', 'totalMappings')),
            has_deployed_artifact=bool(_first(
                data, 'has_deployed_artifact', 'hasDeployedArtifact', 'hasDeployedTrigger', 'isDeployed',
                default=False,
            )),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class FieldMapping:
    """Raw per-record mapping configuration as stored remotely"""
    picklist_field: Optional[str] = None
    picklist_value: Optional[str] = None
    entry_date_field: Optional[str] = None
    exit_date_field: Optional[str] = None
    raw_direction: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FieldMapping':
        """Accepts both the current key names and the legacy dateField/direction keys"""
        return cls(
            picklist_field=_first(data, 'picklist_field', 'picklistField'),
            picklist_value=_first(data, 'picklist_value', 'picklistValue'),
            entry_date_field=_first(data, 'entry_date_field', 'entryDateField', 'dateField'),
            exit_date_field=_first(data, 'exit_date_field', 'exitDateField'),
            raw_direction=_first(data, 'raw_direction', 'rawDirection', 'direction'),
        )


@dataclass(frozen=True)
class ResolvedMapping:
    """Display-ready mapping with its direction and date field worked out"""
    picklist_field: Optional[str]
    picklist_value: Optional[str]
    resolved_direction: Union[Direction, str]
    display_date_field: str

    def to_dict(self) -> Dict[str, Any]:
        direction = self.resolved_direction
        return {
            'picklist_field': self.picklist_field,
            'picklist_value': self.picklist_value,
            'direction': direction.value if isinstance(direction, Direction) else direction,
            'date_field': self.display_date_field,
        }


@dataclass
class RawFieldMappings:
    """Field-mapping payload as returned by the remote service, before resolution"""
    tree_nodes: List[Any] = field(default_factory=list)
    mapping_details: List[FieldMapping] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RawFieldMappings':
        data = data or {}
        return cls(
            tree_nodes=list(_first(data, 'tree_nodes', 'treeNodes', default=[])),
            mapping_details=mappings_from_records(_first(data, 'mapping_details', 'mappingDetails', default=[])),
        )


@dataclass
class FieldMappingBundle:
    tree_nodes: List[Any] = field(default_factory=list)
    mappings: List[ResolvedMapping] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'tree_nodes': list(self.tree_nodes),
            'mappings': [m.to_dict() for m in self.mappings],
        }


@dataclass(frozen=True)
class Notification:
    title: str
    message: str
    severity: Severity = Severity.INFO
    persistent: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'message': self.message,
            'severity': self.severity.value,
            'persistent': self.persistent,
        }


@dataclass
class DeploymentJob:
    """One deployment attempt for a target, tracked from submission to a terminal phase"""
    target_key: str
    job_id: Optional[str] = None
    phase: JobPhase = JobPhase.IDLE
    attempts: int = 0
    generation: int = 0
    submission_mode: SubmissionMode = SubmissionMode.DIRECT
    max_attempts: int = 60
    deployment_class: Optional[str] = None
    message: str = ''
    error: Optional[DeploymentError] = None
    source_text: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def can_retry(self) -> bool:
        return self.phase in (JobPhase.FAILED, JobPhase.TIMED_OUT)

    @property
    def is_active(self) -> bool:
        return self.phase in (JobPhase.SUBMITTING, JobPhase.POLLING)

    @property
    def is_terminal(self) -> bool:
        return self.phase in (JobPhase.SUCCEEDED, JobPhase.FAILED, JobPhase.TIMED_OUT)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'target_key': self.target_key,
            'job_id': self.job_id,
            'phase': self.phase.value,
            'attempts': self.attempts,
            'max_attempts': self.max_attempts,
            'deployment_class': self.deployment_class,
            'submission_mode': self.submission_mode.value,
            'can_retry': self.can_retry,
            'message': self.message,
            'error': str(self.error) if self.error else None,
            'error_type': type(self.error).__name__ if self.error else None,
            'has_source': self.source_text is not None,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'finished_at': self.finished_at.isoformat() if self.finished_at else None,
        }


def mappings_from_records(records: Optional[Iterable[Any]]) -> List[FieldMapping]:
    """Coerce raw mapping records (dicts or FieldMapping) into FieldMapping objects"""
    mappings = []
    for record in records or []:
        if isinstance(record, FieldMapping):
            mappings.append(record)
        elif isinstance(record, dict):
            mappings.append(FieldMapping.from_dict(record))
    return mappings
