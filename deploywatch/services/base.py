from abc import ABC, abstractmethod
from typing import Any, List

from ..core.models import (
    CardSummary,
    RawFieldMappings,
    SideChannelInspection,
    SimpleStatus,
    StatusSnapshot,
    TargetOption,
)


class DeploymentServices(ABC):
    """
    Remote collaborators used by the orchestrator.

    Every method is a coroutine and may raise ServiceError. Implementations
    talk to the remote system only; they hold no job state.
    """

    @abstractmethod
    async def submit_deployment(self, target_key: str) -> str:
        """
        Submit a deployment directly.

        Args:
            target_key: Target to deploy

        Returns:
            Opaque job id used for status queries
        """
        pass

    @abstractmethod
    async def open_side_channel(self, target_key: str) -> Any:
        """
        Open a side channel that performs the deployment out of band.

        Returns:
            Channel handle passed back to inspect_side_channel()
        """
        pass

    @abstractmethod
    async def inspect_side_channel(self, handle: Any) -> SideChannelInspection:
        """Report whether the side channel closed and whether it produced a result"""
        pass

    async def close_side_channel(self, handle: Any) -> None:
        """Close a side channel once its result has been read (optional)"""
        return None

    @abstractmethod
    async def query_detailed_status(self, job_id: str) -> StatusSnapshot:
        """Detailed status with counts, test results and component errors"""
        pass

    @abstractmethod
    async def query_status(self, job_id: str) -> SimpleStatus:
        """Coarse fallback status: state, message, done"""
        pass

    @abstractmethod
    async def list_targets(self) -> List[TargetOption]:
        pass

    @abstractmethod
    async def list_targets_with_stats(self) -> List[CardSummary]:
        pass

    @abstractmethod
    async def get_field_mappings(self, target_key: str) -> RawFieldMappings:
        pass

    @abstractmethod
    async def get_deployed_source_text(self, target_key: str) -> str:
        pass

    async def close(self) -> None:
        """Release any transport resources"""
        return None
