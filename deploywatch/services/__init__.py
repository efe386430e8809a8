from .base import DeploymentServices
from .http_client import HttpDeploymentServices
from .notifier import CollectingNotifier, LoggingNotifier, Notifier

__all__ = [
    'DeploymentServices',
    'HttpDeploymentServices',
    'Notifier',
    'LoggingNotifier',
    'CollectingNotifier',
]
