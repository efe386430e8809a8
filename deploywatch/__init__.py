"""
deploywatch - submit deployments and follow them to completion

Main modules:
- core: Job models, enums, errors, direction resolution and error classification
- services: Remote deployment services and notification sinks
- cache_backend: Session status cache
- monitoring: Status polling
- deploy: Job orchestration, side-channel waiting and the progress view
- config: Configuration loading and orchestrator factory
"""

from .core.models import DeploymentJob, StatusSnapshot
from .core.errors import DeploymentError
from .deploy.orchestrator import DeploymentOrchestrator
from .monitoring.status_poller import StatusPoller
from .cache_backend import InMemoryStatusCache
from .services.base import DeploymentServices
from .config.settings import DeploywatchConfig, load_config
from .config.orchestrator_factory import create_orchestrator

__version__ = "1.0.0"
__all__ = [
    'DeploymentJob',
    'StatusSnapshot',
    'DeploymentError',
    'DeploymentOrchestrator',
    'StatusPoller',
    'InMemoryStatusCache',
    'DeploymentServices',
    'DeploywatchConfig',
    'load_config',
    'create_orchestrator',
]
