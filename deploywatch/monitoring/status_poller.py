import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple, Union

from ..core.enums import TerminalKind
from ..core.errors import StatusCheckError, describe_error
from ..core.models import StatusSnapshot
from ..services.base import DeploymentServices

# Fixed query interval; callers tune the overall budget through max_attempts.
POLL_INTERVAL_SECONDS = 1.0

SnapshotCallback = Callable[[StatusSnapshot], Union[None, Awaitable[None]]]
TerminalCallback = Callable[['PollTerminal'], Union[None, Awaitable[None]]]


@dataclass
class PollTerminal:
    """Final signal delivered by the poller"""
    kind: TerminalKind
    job_id: str
    attempts: int
    snapshot: Optional[StatusSnapshot] = None
    error: Optional[StatusCheckError] = None


def running_task() -> Optional[asyncio.Task]:
    """The current task, or None when called outside a running event loop"""
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


async def invoke_callback(callback: Optional[Callable[..., Any]], *args: Any) -> None:
    """Call a sync or async callback"""
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class StatusPoller:
    """
    Repeatedly queries a remote job until it is done, the attempt budget is
    spent, or the status channel itself breaks.

    Each cycle tries the detailed status service first and falls back to the
    coarse status service for that cycle only. Only when both fail in the
    same cycle is a StatusCheckError terminal delivered.

    One poller owns at most one running task; start() replaces any running
    loop and stop() is safe to call at any time.
    """

    def __init__(self, services: DeploymentServices, max_attempts: int = 60):
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        self.services = services
        self.max_attempts = max_attempts
        self.job_id: Optional[str] = None
        self.attempts = 0
        self.last_snapshot: Optional[StatusSnapshot] = None
        self._task: Optional[asyncio.Task] = None
        self.logger = logging.getLogger(f"{__name__}.StatusPoller")

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, job_id: str, on_snapshot: Optional[SnapshotCallback], on_terminal: TerminalCallback) -> None:
        """
        Begin polling a job.

        Args:
            job_id: Remote job handle
            on_snapshot: Called with every snapshot, in receipt order
            on_terminal: Called once with the PollTerminal that ended the loop
        """
        self.stop()
        self.job_id = job_id
        self.attempts = 0
        self.last_snapshot = None
        self._task = asyncio.get_running_loop().create_task(
            self._run(job_id, on_snapshot, on_terminal),
            name=f"status-poller-{job_id}"
        )
        self.logger.info(f"Polling job {job_id} (max {self.max_attempts} attempts)")

    def stop(self) -> None:
        """Cancel the polling loop; a no-op when nothing is running"""
        task, self._task = self._task, None
        if task is None or task.done():
            return
        if task is running_task():
            # Stopping from inside our own callback: the loop exits on return.
            return
        task.cancel()
        self.logger.debug(f"Stopped polling job {self.job_id}")

    async def _run(self, job_id: str, on_snapshot: Optional[SnapshotCallback], on_terminal: TerminalCallback) -> None:
        while True:
            await asyncio.sleep(POLL_INTERVAL_SECONDS)
            self.attempts += 1

            snapshot, error = await self._query(job_id)

            if snapshot is None:
                self._finish()
                self.logger.error(f"Status check failed for job {job_id}: {error}")
                await invoke_callback(on_terminal, PollTerminal(
                    kind=TerminalKind.STATUS_CHECK_ERROR,
                    job_id=job_id,
                    attempts=self.attempts,
                    snapshot=self.last_snapshot,
                    error=error,
                ))
                return

            self.last_snapshot = snapshot
            await self._deliver(on_snapshot, snapshot)
            if self._task is not asyncio.current_task():
                # stop() or start() was called from the snapshot handler
                return

            if snapshot.done:
                kind = TerminalKind.COMPLETED
            elif self.attempts >= self.max_attempts:
                kind = TerminalKind.TIMED_OUT
            else:
                continue

            self._finish()
            self.logger.info(f"Job {job_id} polling ended: {kind.value} after {self.attempts} attempts")
            await invoke_callback(on_terminal, PollTerminal(
                kind=kind,
                job_id=job_id,
                attempts=self.attempts,
                snapshot=snapshot,
            ))
            return

    async def _query(self, job_id: str) -> Tuple[Optional[StatusSnapshot], Optional[StatusCheckError]]:
        """One cycle: detailed status, falling back to the coarse status"""
        try:
            return await self.services.query_detailed_status(job_id), None
        except Exception as e:
            self.logger.warning(
                f"Detailed status unavailable for job {job_id} (attempt {self.attempts}): {e}; using fallback"
            )

        try:
            status = await self.services.query_status(job_id)
            return status.to_snapshot(), None
        except Exception as e:
            return None, StatusCheckError(
                describe_error(e, 'Status check failed'),
                job_id=job_id,
                attempts=self.attempts,
            )

    async def _deliver(self, on_snapshot: Optional[SnapshotCallback], snapshot: StatusSnapshot) -> None:
        try:
            await invoke_callback(on_snapshot, snapshot)
        except Exception as e:
            self.logger.error(f"Snapshot handler failed for job {self.job_id}: {e}", exc_info=True)

    def _finish(self) -> None:
        if self._task is asyncio.current_task():
            self._task = None
