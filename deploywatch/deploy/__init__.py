"""
Deployment job lifecycle: submission, monitoring and the derived progress view.
"""

from .orchestrator import AUTO_DISMISS_SECONDS, DeploymentOrchestrator
from .progress import ProgressManager, ProgressView, percent, progress_message
from .side_channel import SideChannelOutcome, SideChannelOutcomeKind, SideChannelWaiter

__all__ = [
    'AUTO_DISMISS_SECONDS',
    'DeploymentOrchestrator',
    'ProgressManager',
    'ProgressView',
    'percent',
    'progress_message',
    'SideChannelOutcome',
    'SideChannelOutcomeKind',
    'SideChannelWaiter',
]
