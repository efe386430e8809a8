"""
Waiting on an out-of-band deployment channel.

In side-channel mode the deployment is performed by a detached context that
reports back asynchronously. The job handle arrives either through periodic
inspection of the channel or as an inbound message; whichever comes first
wins.
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from ..core.models import SideChannelResult
from ..services.base import DeploymentServices

SIDE_CHANNEL_INTERVAL_SECONDS = 1.0
SIDE_CHANNEL_TIMEOUT_SECONDS = 30.0


class SideChannelOutcomeKind(str, Enum):
    HANDLE = "handle"
    FAILED = "failed"
    CLOSED = "closed"
    TIMED_OUT = "timed_out"


@dataclass
class SideChannelOutcome:
    kind: SideChannelOutcomeKind
    job_id: Optional[str] = None
    error: Optional[str] = None


class SideChannelWaiter:
    """Waits for one side channel to produce a job handle, a failure, or to close"""

    def __init__(self, services: DeploymentServices, handle: Any):
        self.services = services
        self.handle = handle
        self._inbound: Optional[SideChannelResult] = None
        self._wakeup = asyncio.Event()
        self.inspections = 0
        self.logger = logging.getLogger(f"{__name__}.SideChannelWaiter")

    def deliver(self, result: SideChannelResult) -> None:
        """Hand over a result that arrived as an inbound message"""
        if self._inbound is None:
            self._inbound = result
            self._wakeup.set()

    async def wait(self) -> SideChannelOutcome:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + SIDE_CHANNEL_TIMEOUT_SECONDS

        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=min(SIDE_CHANNEL_INTERVAL_SECONDS, remaining))
            except asyncio.TimeoutError:
                pass

            if self._inbound is not None:
                return await self._conclude(self._from_result(self._inbound))

            self.inspections += 1
            try:
                inspection = await self.services.inspect_side_channel(self.handle)
            except Exception as e:
                # The channel may not be readable yet; keep waiting until the deadline.
                self.logger.debug(f"Side channel {self.handle} not readable yet: {e}")
                continue

            if inspection.result is not None:
                return await self._conclude(self._from_result(inspection.result))
            if inspection.closed:
                self.logger.info(f"Side channel {self.handle} closed before result")
                return SideChannelOutcome(SideChannelOutcomeKind.CLOSED, error="closed before result")

        self.logger.warning(
            f"Side channel {self.handle} produced no result within {SIDE_CHANNEL_TIMEOUT_SECONDS}s"
        )
        return await self._conclude(SideChannelOutcome(
            SideChannelOutcomeKind.TIMED_OUT, error="Deployment timed out waiting for the side channel"
        ))

    @staticmethod
    def _from_result(result: SideChannelResult) -> SideChannelOutcome:
        if result.success and result.job_id:
            return SideChannelOutcome(SideChannelOutcomeKind.HANDLE, job_id=result.job_id)
        if result.success:
            return SideChannelOutcome(SideChannelOutcomeKind.FAILED, error="Side channel reported success without a job id")
        return SideChannelOutcome(SideChannelOutcomeKind.FAILED, error=result.error or "Deployment failed")

    async def _conclude(self, outcome: SideChannelOutcome) -> SideChannelOutcome:
        try:
            await self.services.close_side_channel(self.handle)
        except Exception as e:
            self.logger.warning(f"Could not close side channel {self.handle}: {e}")
        return outcome
