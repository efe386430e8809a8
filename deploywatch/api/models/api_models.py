from typing import Optional, List, Dict, Any
from pydantic import BaseModel


class TargetOptionModel(BaseModel):
    """Deployable target for the simple picker"""
    key: str
    label: str


class CardModel(BaseModel):
    """Aggregate stats for one deployable target"""
    target_key: str
    label: str
    field_count: int = 0
    total_mappings: int = 0
    has_deployed_artifact: bool = False


class MappingModel(BaseModel):
    """Resolved field mapping row"""
    picklist_field: Optional[str] = None
    picklist_value: Optional[str] = None
    direction: str
    date_field: str = ""


class MappingBundleModel(BaseModel):
    target_key: str
    tree_nodes: List[Any] = []
    mappings: List[MappingModel] = []


class TestResultModel(BaseModel):
    name: str
    outcome: str
    message: Optional[str] = None


class ProgressModel(BaseModel):
    """Derived progress view for the running or last job"""
    visible: bool = False
    component_percent: int = 0
    test_percent: int = 0
    has_test_errors: bool = False
    message: str = ""
    close_message: str = ""
    done: bool = False
    outcome: Optional[str] = None
    component_errors: List[str] = []
    test_results: List[TestResultModel] = []


class JobModel(BaseModel):
    target_key: str
    job_id: Optional[str] = None
    phase: str
    attempts: int = 0
    max_attempts: int
    deployment_class: Optional[str] = None
    submission_mode: str
    can_retry: bool = False
    message: str = ""
    error: Optional[str] = None
    error_type: Optional[str] = None
    has_source: bool = False
    started_at: Optional[str] = None
    finished_at: Optional[str] = None


class JobResponse(BaseModel):
    job: Optional[JobModel] = None
    progress: ProgressModel


class DeployRequest(BaseModel):
    """Request model for deploying a target"""
    deployment_class: Optional[str] = None


class SideChannelEventRequest(BaseModel):
    """Message pushed by the side channel"""
    type: str
    status: Optional[Dict[str, Any]] = None
    jobId: Optional[str] = None
    success: Optional[bool] = None
    error: Optional[str] = None

    def to_event(self) -> Dict[str, Any]:
        event = {
            'type': self.type,
            'status': self.status,
            'jobId': self.jobId,
            'success': self.success,
            'error': self.error,
        }
        return {key: value for key, value in event.items() if value is not None}


class SourceResponse(BaseModel):
    target_key: str
    source: Optional[str] = None


class NotificationModel(BaseModel):
    title: str
    message: str
    severity: str
    persistent: bool = False
