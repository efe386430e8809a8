"""Pytest configuration and fixtures for deploywatch tests."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

import pytest
import pytest_asyncio

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from deploywatch.cache_backend import InMemoryStatusCache
from deploywatch.core.enums import DeploymentOutcome, SubmissionMode
from deploywatch.core.errors import ServiceError
from deploywatch.core.models import (
    CardSummary,
    RawFieldMappings,
    SideChannelInspection,
    SimpleStatus,
    StatusSnapshot,
    TargetOption,
)
from deploywatch.deploy import side_channel as side_channel_module
from deploywatch.deploy.orchestrator import DeploymentOrchestrator
from deploywatch.monitoring import status_poller as status_poller_module
from deploywatch.services.base import DeploymentServices
from deploywatch.services.notifier import CollectingNotifier

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def snapshot(done_components: int = 0, total_components: int = 0, done: bool = False,
             outcome: DeploymentOutcome = DeploymentOutcome.UNKNOWN, **kwargs) -> StatusSnapshot:
    """Shorthand for building detailed status snapshots in tests"""
    return StatusSnapshot(
        components_done=done_components,
        components_total=total_components,
        done=done,
        outcome=outcome,
        **kwargs
    )


class FakeDeploymentServices(DeploymentServices):
    """
    Scripted DeploymentServices.

    Each scripted response list is consumed front to back; the last entry
    repeats once the others are used up. Exception instances are raised.
    """

    def __init__(self):
        self.submit_response: Any = "job-1"
        self.submit_gate: Optional[asyncio.Event] = None
        self.source_gate: Optional[asyncio.Event] = None
        self.side_channel_handle: Any = "chan-1"
        self.open_side_channel_error: Optional[Exception] = None
        self.inspections: List[Any] = [SideChannelInspection()]
        self.detailed: List[Any] = [snapshot(0, 10)]
        self.simple: List[Any] = [ServiceError("status service unavailable")]
        self.targets: Any = [TargetOption("Account", "Account"), TargetOption("Contact", "Contact")]
        self.cards: Any = [CardSummary("Account", "Account", field_count=3, total_mappings=7)]
        self.field_mappings: Any = RawFieldMappings()
        self.source: Any = "trigger AccountTrigger on Account (after update) {}"

        self.submit_calls: List[str] = []
        self.detailed_calls: List[str] = []
        self.simple_calls: List[str] = []
        self.closed_channels: List[Any] = []
        self.card_calls = 0
        self.mapping_calls: List[str] = []
        self.source_calls: List[str] = []

    @staticmethod
    def _next(script: List[Any]) -> Any:
        value = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(value, Exception):
            raise value
        return value

    @staticmethod
    def _value(value: Any) -> Any:
        if isinstance(value, Exception):
            raise value
        return value

    async def submit_deployment(self, target_key: str) -> str:
        self.submit_calls.append(target_key)
        if self.submit_gate is not None:
            await self.submit_gate.wait()
        return self._value(self.submit_response)

    async def open_side_channel(self, target_key: str) -> Any:
        self.submit_calls.append(target_key)
        if self.open_side_channel_error is not None:
            raise self.open_side_channel_error
        return self.side_channel_handle

    async def inspect_side_channel(self, handle: Any) -> SideChannelInspection:
        return self._next(self.inspections)

    async def close_side_channel(self, handle: Any) -> None:
        self.closed_channels.append(handle)

    async def query_detailed_status(self, job_id: str) -> StatusSnapshot:
        self.detailed_calls.append(job_id)
        return self._next(self.detailed)

    async def query_status(self, job_id: str) -> SimpleStatus:
        self.simple_calls.append(job_id)
        return self._next(self.simple)

    async def list_targets(self) -> List[TargetOption]:
        return self._value(self.targets)

    async def list_targets_with_stats(self) -> List[CardSummary]:
        self.card_calls += 1
        return self._value(self.cards)

    async def get_field_mappings(self, target_key: str) -> RawFieldMappings:
        self.mapping_calls.append(target_key)
        return self._value(self.field_mappings)

    async def get_deployed_source_text(self, target_key: str) -> str:
        self.source_calls.append(target_key)
        if self.source_gate is not None:
            await self.source_gate.wait()
        return self._value(self.source)


@pytest.fixture
def fast_timers(monkeypatch):
    """Shrink the poll and side-channel intervals so tests finish quickly"""
    monkeypatch.setattr(status_poller_module, 'POLL_INTERVAL_SECONDS', 0.01)
    monkeypatch.setattr(side_channel_module, 'SIDE_CHANNEL_INTERVAL_SECONDS', 0.01)
    monkeypatch.setattr(side_channel_module, 'SIDE_CHANNEL_TIMEOUT_SECONDS', 0.2)
    return monkeypatch


@pytest.fixture
def services() -> FakeDeploymentServices:
    return FakeDeploymentServices()


@pytest.fixture
def notifier() -> CollectingNotifier:
    return CollectingNotifier()


@pytest.fixture
def cache() -> InMemoryStatusCache:
    return InMemoryStatusCache(max_mapping_entries=10)


@pytest.fixture
def progress_views() -> List[Any]:
    """Every progress view emitted, copied as dicts"""
    return []


@pytest_asyncio.fixture
async def make_orchestrator(services, notifier, cache, progress_views, fast_timers):
    """Build orchestrators wired to the fake services"""
    created = []

    def factory(**kwargs) -> DeploymentOrchestrator:
        kwargs.setdefault('submission_mode', SubmissionMode.DIRECT)
        kwargs.setdefault('poll_budgets', {'quick': 2})
        orchestrator = DeploymentOrchestrator(
            services=services,
            notifier=notifier,
            cache=cache,
            progress_callback=lambda view: progress_views.append(view.to_dict()),
            **kwargs
        )
        created.append(orchestrator)
        return orchestrator

    yield factory

    for orchestrator in created:
        orchestrator.close()
    # Let cancelled poller and side-channel tasks unwind
    await asyncio.sleep(0)


@pytest.fixture
def orchestrator(make_orchestrator) -> DeploymentOrchestrator:
    return make_orchestrator()
