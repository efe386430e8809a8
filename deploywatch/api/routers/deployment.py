"""
API endpoints for deployment jobs.
"""
from fastapi import APIRouter, HTTPException
from typing import List, Optional

from ...core.errors import JobStateError
from ...deploy.orchestrator import DeploymentOrchestrator
from ...services.notifier import CollectingNotifier
from ..models.api_models import (
    DeployRequest,
    JobModel,
    JobResponse,
    NotificationModel,
    ProgressModel,
    SideChannelEventRequest,
    SourceResponse,
)
from ..state import app_state
from .targets import get_orchestrator

router = APIRouter(prefix="/api/deploy", tags=["deployment"])
notifications_router = APIRouter(prefix="/api", tags=["notifications"])


def _job_response(orchestrator: DeploymentOrchestrator) -> JobResponse:
    job = orchestrator.job
    return JobResponse(
        job=JobModel(**job.to_dict()) if job else None,
        progress=ProgressModel(**orchestrator.progress.to_dict())
    )


@router.get("/job", response_model=JobResponse)
async def get_job():
    """Current job and progress view"""
    orchestrator = get_orchestrator()
    if orchestrator.job is None:
        raise HTTPException(status_code=404, detail="No deployment job")
    return _job_response(orchestrator)


@router.post("/retry", response_model=JobResponse)
async def retry_deployment():
    """Resubmit the current target after a failure or timeout"""
    orchestrator = get_orchestrator()
    try:
        await orchestrator.retry()
    except JobStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _job_response(orchestrator)


@router.post("/source", response_model=SourceResponse)
async def view_source():
    """Deployed source of the current target (warning notification on failure)"""
    orchestrator = get_orchestrator()
    if orchestrator.job is None:
        raise HTTPException(status_code=404, detail="No target selected")
    source = await orchestrator.view_source()
    return SourceResponse(target_key=orchestrator.job.target_key, source=source)


@router.post("/side-channel/events")
async def side_channel_event(request: SideChannelEventRequest):
    """Accept a message pushed by the side channel"""
    orchestrator = get_orchestrator()
    accepted = await orchestrator.handle_side_channel_event(request.to_event())
    return {"accepted": accepted}


@router.delete("/progress", response_model=ProgressModel)
async def close_progress():
    """Dismiss the progress view"""
    orchestrator = get_orchestrator()
    orchestrator.close_progress()
    return ProgressModel(**orchestrator.progress.to_dict())


@router.post("/{target_key}", response_model=JobResponse, status_code=202)
async def deploy_target(target_key: str, request: Optional[DeployRequest] = None):
    """
    Start deploying a target.

    Args:
        target_key: Target to deploy
        request: Deployment options

    Returns:
        Job state right after submission
    """
    orchestrator = get_orchestrator()
    deployment_class = request.deployment_class if request else None
    try:
        await orchestrator.submit(target_key, deployment_class=deployment_class)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _job_response(orchestrator)


@notifications_router.get("/notifications", response_model=List[NotificationModel])
async def drain_notifications():
    """Return and clear pending notifications"""
    notifier = app_state.get("notifier")
    if not isinstance(notifier, CollectingNotifier):
        return []
    return [NotificationModel(**n.to_dict()) for n in notifier.drain()]
