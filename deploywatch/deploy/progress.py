"""
Derived progress view model for a deployment job.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ..core.models import StatusSnapshot, TestResult


def percent(done: Optional[int], total: Optional[int]) -> int:
    """done/total as a whole percentage, rounded half up; 0 when total is missing or zero"""
    if not total:
        return 0
    return int((done or 0) * 100 / total + 0.5)


def progress_message(snapshot: StatusSnapshot) -> str:
    parts = []
    if snapshot.components_total > 0:
        parts.append(f"Deploying: {snapshot.components_done}/{snapshot.components_total} components")
    if snapshot.tests_total > 0:
        parts.append(f"Tests: {snapshot.tests_done}/{snapshot.tests_total}")
    if parts:
        return ' | '.join(parts)
    if snapshot.state:
        return f"Status: {snapshot.state}" + (f" - {snapshot.message}" if snapshot.message else '')
    return ''


@dataclass
class ProgressView:
    visible: bool = False
    snapshot: Optional[StatusSnapshot] = None
    close_message: str = ''

    @property
    def component_percent(self) -> int:
        if not self.snapshot:
            return 0
        return percent(self.snapshot.components_done, self.snapshot.components_total)

    @property
    def test_percent(self) -> int:
        if not self.snapshot:
            return 0
        return percent(self.snapshot.tests_done, self.snapshot.tests_total)

    @property
    def has_test_errors(self) -> bool:
        return bool(self.snapshot and self.snapshot.test_errors > 0)

    @property
    def message(self) -> str:
        return progress_message(self.snapshot) if self.snapshot else ''

    @property
    def test_results(self) -> List[TestResult]:
        return list(self.snapshot.test_results) if self.snapshot else []

    @property
    def failed_tests(self) -> List[TestResult]:
        return self.snapshot.failed_tests if self.snapshot else []

    @property
    def passed_tests(self) -> List[TestResult]:
        return self.snapshot.passed_tests if self.snapshot else []

    @property
    def component_errors(self) -> List[str]:
        return list(self.snapshot.component_errors) if self.snapshot else []

    def to_dict(self) -> Dict[str, Any]:
        return {
            'visible': self.visible,
            'component_percent': self.component_percent,
            'test_percent': self.test_percent,
            'has_test_errors': self.has_test_errors,
            'message': self.message,
            'close_message': self.close_message,
            'done': bool(self.snapshot and self.snapshot.done),
            'outcome': self.snapshot.outcome.value if self.snapshot else None,
            'component_errors': self.component_errors,
            'test_results': [
                {'name': t.name, 'outcome': t.outcome.value, 'message': t.message}
                for t in self.test_results
            ],
        }


class ProgressManager:
    """Applies snapshots to the progress view and notifies an optional listener"""

    def __init__(self,
                 progress_callback: Optional[Callable[[ProgressView], None]] = None,
                 logger: Optional[logging.Logger] = None):
        self.view = ProgressView()
        self.progress_callback = progress_callback
        self.logger = logger or logging.getLogger(__name__)

    def show(self) -> None:
        self.view = ProgressView(visible=True)
        self._emit()

    def apply(self, snapshot: StatusSnapshot) -> None:
        """Latest snapshot wins; no history is kept"""
        self.view.snapshot = snapshot
        self.view.visible = True
        self.logger.debug(
            f"Progress: components {self.view.component_percent}%, tests {self.view.test_percent}%"
        )
        self._emit()

    def set_close_message(self, message: str) -> None:
        self.view.close_message = message
        self._emit()

    def dismiss(self) -> None:
        self.view = ProgressView()
        self._emit()

    def _emit(self) -> None:
        if self.progress_callback:
            self.progress_callback(self.view)
