import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ..cache_backend import BaseStatusCache, InMemoryStatusCache
from ..core.direction_resolver import resolve_all
from ..core.enums import JobPhase, Severity, SnapshotSource, SubmissionMode, TerminalKind
from ..core.error_classifier import has_validation_rule_conflict
from ..core.errors import (
    DeploymentError,
    DeploymentFailed,
    DeploymentTimedOut,
    JobStateError,
    SourceFetchWarning,
    SubmissionError,
    describe_error,
)
from ..core.models import (
    CardSummary,
    DeploymentJob,
    FieldMappingBundle,
    Notification,
    SideChannelResult,
    StatusSnapshot,
    TargetOption,
)
from ..monitoring.status_poller import PollTerminal, StatusPoller, running_task
from ..services.base import DeploymentServices
from ..services.notifier import LoggingNotifier, Notifier
from .progress import ProgressManager, ProgressView, progress_message
from .side_channel import SideChannelOutcome, SideChannelOutcomeKind, SideChannelWaiter

AUTO_DISMISS_SECONDS = 2.0

CONFLICT_TITLE = 'Validation Rule Conflict'
CONFLICT_MESSAGE = 'Validation Rule Conflict detected. Please disable the rule and try again'


class DeploymentOrchestrator:
    """
    Drives one deployment job at a time from submission to a terminal phase.

    Phases: Idle -> Submitting -> Polling -> Succeeded | Failed | TimedOut.
    All mutation happens on the event loop, either from a caller awaiting one
    of the public coroutines or from the poller/side-channel tasks this
    object owns. Every job carries a generation number; results that arrive
    for an older generation are dropped.
    """

    def __init__(self,
                 services: DeploymentServices,
                 notifier: Optional[Notifier] = None,
                 cache: Optional[BaseStatusCache] = None,
                 submission_mode: SubmissionMode = SubmissionMode.DIRECT,
                 max_poll_attempts: int = 60,
                 poll_budgets: Optional[Dict[str, int]] = None,
                 progress_callback: Optional[Callable[[ProgressView], None]] = None):
        """
        Args:
            services: Remote collaborators
            notifier: Sink for user-visible notifications
            cache: Session status cache
            submission_mode: Direct submission or side channel
            max_poll_attempts: Default status-query budget per job
            poll_budgets: Named budgets per deployment class, e.g. {'quick': 30}
            progress_callback: Called whenever the progress view changes
        """
        if max_poll_attempts < 1:
            raise ValueError(f"max_poll_attempts must be at least 1, got {max_poll_attempts}")

        self.services = services
        self.notifier = notifier or LoggingNotifier()
        self.cache = cache or InMemoryStatusCache()
        self.submission_mode = SubmissionMode(submission_mode)
        self.max_poll_attempts = max_poll_attempts
        self.poll_budgets = dict(poll_budgets or {})
        self.logger = logging.getLogger(f"{__name__}.DeploymentOrchestrator")
        self.progress_manager = ProgressManager(progress_callback, self.logger)

        self.cards: List[CardSummary] = []
        self.target_options: List[TargetOption] = []

        self._job: Optional[DeploymentJob] = None
        self._generation = 0
        self._poller: Optional[StatusPoller] = None
        self._side_channel: Optional[SideChannelWaiter] = None
        self._side_channel_task: Optional[asyncio.Task] = None
        self._dismiss_handle: Optional[asyncio.TimerHandle] = None
        self._settled = asyncio.Event()
        self._settled.set()

    async def __aenter__(self) -> 'DeploymentOrchestrator':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def job(self) -> Optional[DeploymentJob]:
        return self._job

    @property
    def progress(self) -> ProgressView:
        return self.progress_manager.view

    @property
    def auto_dismiss_pending(self) -> bool:
        return self._dismiss_handle is not None and not self._dismiss_handle.cancelled()

    @property
    def is_polling(self) -> bool:
        return self._poller is not None and self._poller.is_running

    # Data loading

    async def load_cards(self, force: bool = False) -> List[CardSummary]:
        """Card summaries, served from the cache unless forced or missing"""
        if not force:
            cached = self.cache.get_cards()
            if cached is not None:
                self.cards = cached
                return self.cards

        cards = await self.services.list_targets_with_stats()
        self.cards = list(cards)
        self.cache.put_cards(self.cards)
        self.logger.debug(f"Loaded {len(self.cards)} cards")
        return self.cards

    async def load_target_options(self) -> List[TargetOption]:
        self.target_options = list(await self.services.list_targets())
        return self.target_options

    async def load_field_mappings(self, target_key: str) -> FieldMappingBundle:
        """Resolved mappings for a target; raw records never leave this method"""
        cached = self.cache.get_mappings(target_key)
        if cached is not None:
            return cached

        raw = await self.services.get_field_mappings(target_key)
        bundle = FieldMappingBundle(
            tree_nodes=list(raw.tree_nodes or []),
            mappings=resolve_all(raw.mapping_details),
        )
        self.cache.put_mappings(target_key, bundle)
        return bundle

    # Job lifecycle

    def select_target(self, target_key: str) -> DeploymentJob:
        """
        Make target_key the current target without deploying it.

        Picking a target resets its loaded source and retry state; an
        in-flight job for the same target is left alone.
        """
        job = self._active_job()
        if job is not None and job.target_key == target_key:
            return job

        self._teardown()
        self._job = DeploymentJob(target_key=target_key, generation=self._next_generation(),
                                  submission_mode=self.submission_mode)
        return self._job

    async def submit(self, target_key: str, deployment_class: Optional[str] = None) -> DeploymentJob:
        """
        Start deploying a target.

        A submit for the target that is already in flight is coalesced into
        the running job. A submit for a different target tears the running
        job down first.
        """
        job = self._active_job()
        if job is not None:
            if job.target_key == target_key:
                self.logger.info(f"Deployment of {target_key} already {job.phase.value}; not resubmitting")
                return job
            self.logger.info(f"Abandoning {job.phase.value} job for {job.target_key} to deploy {target_key}")

        max_attempts = self._budget_for(deployment_class)
        self._teardown()
        return await self._start_job(target_key, deployment_class, max_attempts)

    async def retry(self) -> DeploymentJob:
        """Resubmit the current target after a failure or timeout"""
        job = self._job
        if job is None or not job.can_retry:
            phase = job.phase.value if job else JobPhase.IDLE.value
            raise JobStateError(f"Cannot retry while job is {phase}",
                                target_key=job.target_key if job else None)

        self.logger.info(f"Retrying deployment of {job.target_key}")
        self._teardown()
        return await self._start_job(job.target_key, job.deployment_class, job.max_attempts)

    async def view_source(self) -> Optional[str]:
        """Deployed source text for the current target, fetched at most once per job"""
        job = self._job
        if job is None:
            return None
        if job.source_text is not None:
            return job.source_text

        try:
            text = await self.services.get_deployed_source_text(job.target_key)
        except Exception as e:
            warning = SourceFetchWarning(describe_error(e, 'Could not load deployed source'), job.target_key)
            self.logger.warning(f"Source load failed for {job.target_key}: {warning}")
            self._notify('Source Load Failed', str(warning), Severity.WARNING)
            return None

        if self._job is job:
            job.source_text = text
        return text

    async def wait_until_settled(self, timeout: Optional[float] = None) -> Optional[DeploymentJob]:
        """
        Wait until the current job reached a terminal phase and its terminal
        handling (card refresh, source fetch, notifications) has finished.
        """
        job = self._job
        await asyncio.wait_for(self._settled.wait(), timeout)
        return job

    def close_progress(self) -> None:
        """Hide the progress view (user dismissal or auto-dismiss)"""
        self._cancel_dismiss()
        self.progress_manager.dismiss()

    def close(self) -> None:
        """
        Cancel every timer this orchestrator owns.

        The current job stays readable, but results that are still in flight
        for it (a pending submission, a side-channel wait, success handling)
        are discarded when they arrive.
        """
        self._next_generation()
        self._stop_timers()
        self._cancel_dismiss()
        self._settled.set()
        self.logger.debug("Orchestrator closed")

    async def handle_side_channel_event(self, event: Dict[str, Any]) -> bool:
        """
        Accept a message pushed by the side channel.

        Supported types: 'result' (carries success/jobId/error), 'progress' and
        'complete' (carry a status payload). Returns False when the event was
        ignored because no matching job is active.
        """
        event_type = event.get('type')
        job = self._active_job()
        if job is None:
            self.logger.debug(f"Ignoring side channel event {event_type!r}: no active job")
            return False

        event_job_id = event.get('jobId') or event.get('job_id')
        if event_job_id and job.job_id and event_job_id != job.job_id:
            self.logger.debug(f"Ignoring side channel event for stale job {event_job_id}")
            return False

        if event_type == 'result':
            if job.phase != JobPhase.SUBMITTING or self._side_channel is None:
                return False
            self._side_channel.deliver(SideChannelResult.from_dict(event))
            return True

        if event_type not in ('progress', 'complete'):
            self.logger.warning(f"Unknown side channel event type: {event_type!r}")
            return False

        snapshot = StatusSnapshot.from_dict(event.get('status') or {}, source=SnapshotSource.SIDE_CHANNEL)
        if event_type == 'progress':
            self._apply_snapshot(job, snapshot)
            return True

        snapshot.done = True
        self._stop_timers()
        await self._complete(job, snapshot)
        return True

    # Internals

    def _budget_for(self, deployment_class: Optional[str]) -> int:
        if deployment_class is None:
            return self.max_poll_attempts
        if deployment_class not in self.poll_budgets:
            raise ValueError(f"Unknown deployment class: {deployment_class}")
        return self.poll_budgets[deployment_class]

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _current(self, generation: int) -> Optional[DeploymentJob]:
        job = self._job
        if job is None or job.generation != generation or generation != self._generation:
            return None
        return job

    def _active_job(self) -> Optional[DeploymentJob]:
        """The current job if it is still submitting or polling and was not closed"""
        job = self._job
        if job is None or not job.is_active or not self._current(job.generation):
            return None
        return job

    async def _start_job(self, target_key: str, deployment_class: Optional[str], max_attempts: int) -> DeploymentJob:
        job = DeploymentJob(
            target_key=target_key,
            phase=JobPhase.SUBMITTING,
            generation=self._next_generation(),
            submission_mode=self.submission_mode,
            max_attempts=max_attempts,
            deployment_class=deployment_class,
            started_at=datetime.now(),
        )
        self._job = job
        self._settled = asyncio.Event()
        self.logger.info(f"Submitting deployment of {target_key} ({self.submission_mode.value})")

        if self.submission_mode == SubmissionMode.DIRECT:
            try:
                job_id = await self.services.submit_deployment(target_key)
            except Exception as e:
                if self._current(job.generation):
                    self._fail(job, SubmissionError(describe_error(e, 'Deployment failed'), target_key),
                               'Deployment Failed')
                return job

            if not self._current(job.generation):
                self.logger.info(f"Discarding job id {job_id} for abandoned deployment of {target_key}")
                return job
            job.message = f"Deployment started. Job id: {job_id}"
            self._begin_polling(job, job_id)
            return job

        try:
            handle = await self.services.open_side_channel(target_key)
        except Exception as e:
            if self._current(job.generation):
                self._fail(job, SubmissionError(describe_error(e, 'Could not open deployment channel'), target_key),
                           'Deployment Failed')
            return job

        if not self._current(job.generation):
            self.logger.info(f"Side channel {handle} opened for abandoned deployment of {target_key}")
            return job

        job.message = 'Deployment channel opened. Processing...'
        self._side_channel = SideChannelWaiter(self.services, handle)
        self._side_channel_task = asyncio.get_running_loop().create_task(
            self._await_side_channel(job, self._side_channel),
            name=f"side-channel-{target_key}"
        )
        return job

    async def _await_side_channel(self, job: DeploymentJob, waiter: SideChannelWaiter) -> None:
        outcome: SideChannelOutcome = await waiter.wait()
        if not self._current(job.generation) or job.phase != JobPhase.SUBMITTING:
            return
        self._side_channel = None
        self._side_channel_task = None

        if outcome.kind == SideChannelOutcomeKind.HANDLE:
            job.message = f"Deployment started. Job id: {outcome.job_id}"
            self._begin_polling(job, outcome.job_id)
        elif outcome.kind == SideChannelOutcomeKind.TIMED_OUT:
            self._time_out(job, DeploymentTimedOut(outcome.error, job.target_key))
        else:
            self._fail(job, SubmissionError(outcome.error, job.target_key), 'Deployment Failed')

    def _begin_polling(self, job: DeploymentJob, job_id: str) -> None:
        job.job_id = job_id
        job.phase = JobPhase.POLLING
        job.attempts = 0
        self._cancel_dismiss()
        self.progress_manager.show()

        generation = job.generation
        self._poller = StatusPoller(self.services, max_attempts=job.max_attempts)
        self._poller.start(
            job_id,
            on_snapshot=lambda snapshot: self._on_snapshot(generation, snapshot),
            on_terminal=lambda terminal: self._on_terminal(generation, terminal),
        )

    def _on_snapshot(self, generation: int, snapshot: StatusSnapshot) -> None:
        job = self._current(generation)
        if job is None or job.phase != JobPhase.POLLING:
            self.logger.debug(f"Dropping snapshot for stale job generation {generation}")
            return
        if self._poller is not None:
            job.attempts = self._poller.attempts
        self._apply_snapshot(job, snapshot)

    async def _on_terminal(self, generation: int, terminal: PollTerminal) -> None:
        job = self._current(generation)
        if job is None or job.phase != JobPhase.POLLING:
            self.logger.debug(f"Dropping poll terminal for stale job generation {generation}")
            return
        job.attempts = terminal.attempts
        self._poller = None

        if terminal.kind == TerminalKind.STATUS_CHECK_ERROR:
            self._fail(job, terminal.error, 'Status Check Error')
        elif terminal.kind == TerminalKind.TIMED_OUT:
            self._time_out(job, DeploymentTimedOut(
                f"Stopped polling after {terminal.attempts} status checks. Check status later.", job.target_key
            ))
        else:
            await self._complete(job, terminal.snapshot)

    def _apply_snapshot(self, job: DeploymentJob, snapshot: StatusSnapshot) -> None:
        self.progress_manager.apply(snapshot)
        message = progress_message(snapshot)
        if message:
            job.message = message

    async def _complete(self, job: DeploymentJob, snapshot: StatusSnapshot) -> None:
        self._apply_snapshot(job, snapshot)
        if snapshot.succeeded:
            await self._succeed(job, snapshot)
        else:
            self._deployment_failed(job, snapshot)

    async def _succeed(self, job: DeploymentJob, snapshot: StatusSnapshot) -> None:
        job.phase = JobPhase.SUCCEEDED
        job.error = None
        job.finished_at = datetime.now()
        generation = job.generation

        self.cache.invalidate_cards()
        try:
            await self.load_cards(force=True)
        except Exception as e:
            self.logger.warning(f"Could not refresh cards after deploying {job.target_key}: {e}")

        try:
            job.source_text = await self.services.get_deployed_source_text(job.target_key)
        except Exception as e:
            self.logger.warning(f"Failed to load deployed source for {job.target_key}: {e}")

        if not self._current(generation):
            return

        if snapshot.components_done:
            message = f"{job.target_key} deployed successfully ({snapshot.components_done} components)"
        else:
            message = f"{job.target_key} deployed successfully"
        self.logger.info(message)
        self._notify('Deployment Succeeded', message, Severity.SUCCESS)
        self.progress_manager.set_close_message('Success! Closing automatically...')
        self._schedule_dismiss(generation)
        self._settled.set()

    def _deployment_failed(self, job: DeploymentJob, snapshot: StatusSnapshot) -> None:
        if has_validation_rule_conflict(snapshot):
            self._notify(CONFLICT_TITLE, CONFLICT_MESSAGE, Severity.ERROR, persistent=True)

        if snapshot.test_errors > 0:
            message = f"{snapshot.test_errors} test(s) failed. See details below."
        elif snapshot.source == SnapshotSource.SIMPLE:
            message = snapshot.message or 'See debug logs for details.'
        else:
            message = 'Deployment failed. Check details below.'

        self._fail(job, DeploymentFailed(message, job.target_key), 'Deployment Failed')
        self.progress_manager.set_close_message(
            "You can close this window when you're ready after reviewing the errors."
        )

    def _fail(self, job: DeploymentJob, error: DeploymentError, title: str) -> None:
        job.phase = JobPhase.FAILED
        job.error = error
        job.message = str(error)
        job.finished_at = datetime.now()
        self._stop_timers()
        self.logger.error(f"Deployment of {job.target_key} failed ({type(error).__name__}): {error}")
        self._notify(title, str(error), Severity.ERROR, persistent=True)
        self._settled.set()

    def _time_out(self, job: DeploymentJob, error: DeploymentTimedOut) -> None:
        job.phase = JobPhase.TIMED_OUT
        job.error = error
        job.message = str(error)
        job.finished_at = datetime.now()
        self._stop_timers()
        self.logger.warning(f"Deployment of {job.target_key} timed out: {error}")
        self._notify('Deployment Timed Out', str(error), Severity.WARNING)
        self._settled.set()

    def _notify(self, title: str, message: str, severity: Severity, persistent: bool = False) -> None:
        self.notifier.notify(Notification(title=title, message=message, severity=severity, persistent=persistent))

    def _schedule_dismiss(self, generation: int) -> None:
        self._cancel_dismiss()
        self._dismiss_handle = asyncio.get_running_loop().call_later(
            AUTO_DISMISS_SECONDS, self._auto_dismiss, generation
        )

    def _auto_dismiss(self, generation: int) -> None:
        self._dismiss_handle = None
        if self._current(generation):
            self.progress_manager.dismiss()

    def _cancel_dismiss(self) -> None:
        handle, self._dismiss_handle = self._dismiss_handle, None
        if handle is not None:
            handle.cancel()

    def _stop_timers(self) -> None:
        poller, self._poller = self._poller, None
        if poller is not None:
            poller.stop()

        task, self._side_channel_task = self._side_channel_task, None
        self._side_channel = None
        if task is not None and not task.done() and task is not running_task():
            task.cancel()

    def _teardown(self) -> None:
        """Drop the current job and everything running on its behalf"""
        self._stop_timers()
        self._cancel_dismiss()
        if self._job is not None:
            self.progress_manager.dismiss()
        self._job = None
        self._settled.set()
