"""Factory for creating a DeploymentOrchestrator from DeploywatchConfig"""
import logging
from typing import Callable, Optional

from ..cache_backend import get_status_cache
from ..core.enums import SubmissionMode
from ..deploy.orchestrator import DeploymentOrchestrator
from ..deploy.progress import ProgressView
from ..services.base import DeploymentServices
from ..services.http_client import HttpDeploymentServices
from ..services.notifier import LoggingNotifier, Notifier
from .settings import DeploywatchConfig


def create_orchestrator(config: DeploywatchConfig,
                        services: Optional[DeploymentServices] = None,
                        notifier: Optional[Notifier] = None,
                        progress_callback: Optional[Callable[[ProgressView], None]] = None) -> DeploymentOrchestrator:
    """
    Create a DeploymentOrchestrator from configuration

    Args:
        config: The deploywatch configuration
        services: Remote services; an HTTP client for config.service when omitted
        notifier: Notification sink; logs notifications when omitted
        progress_callback: Optional progress view listener

    Returns:
        Configured DeploymentOrchestrator
    """
    logger = logging.getLogger(__name__)

    if services is None:
        services = HttpDeploymentServices(
            base_url=config.service.base_url,
            timeout=config.service.timeout,
            api_token=config.service.api_token
        )
        logger.info(f"Using deployment service at {config.service.base_url}")

    cache = get_status_cache(config.cache.type, {
        'max_mapping_entries': config.cache.max_mapping_entries
    })

    return DeploymentOrchestrator(
        services=services,
        notifier=notifier or LoggingNotifier(),
        cache=cache,
        submission_mode=SubmissionMode(config.orchestrator.submission_mode),
        max_poll_attempts=config.orchestrator.max_poll_attempts,
        poll_budgets=config.orchestrator.poll_budgets,
        progress_callback=progress_callback
    )
