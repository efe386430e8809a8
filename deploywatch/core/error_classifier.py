from typing import Iterable, Optional

from .models import StatusSnapshot

VALIDATION_CONFLICT_MARKER = 'FIELD_CUSTOM_VALIDATION_EXCEPTION'


def _contains_marker(texts: Iterable[Optional[str]], marker: str) -> bool:
    return any(isinstance(text, str) and marker in text for text in texts)


def has_validation_rule_conflict(snapshot: Optional[StatusSnapshot],
                                 marker: str = VALIDATION_CONFLICT_MARKER) -> bool:
    """True when any test message or component error mentions the conflict marker"""
    if snapshot is None:
        return False
    test_messages = (getattr(test, 'message', None) for test in snapshot.test_results or [])
    return (_contains_marker(test_messages, marker)
            or _contains_marker(snapshot.component_errors or [], marker))
