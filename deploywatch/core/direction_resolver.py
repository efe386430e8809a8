"""
Direction inference for field mappings.

A mapping records which date field is stamped when a picklist enters or
leaves a value. Older records carry the direction in a free-text flag
(``Exited``/``Exiting``/``Out`` all meant "exiting"); newer records imply it
by populating the exit date field instead of the entry date field.
"""
from typing import Any, Dict, Iterable, List, Optional, Union

from .enums import Direction
from .models import FieldMapping, ResolvedMapping, mappings_from_records

EXITING_ALIASES = frozenset({'Exited', 'Exiting', 'Out'})


def is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _direction_from_flag(raw_direction: Optional[str]) -> Direction:
    if isinstance(raw_direction, str) and raw_direction in EXITING_ALIASES:
        return Direction.EXITING
    return Direction.ENTERING


def _known_or_raw(raw_direction: str) -> Union[Direction, str]:
    try:
        return Direction(raw_direction)
    except ValueError:
        return raw_direction


def resolve(raw: Union[FieldMapping, Dict[str, Any]]) -> ResolvedMapping:
    """
    Work out the display direction and date field for a raw mapping.

    Rules, first match wins:
      1. exit field only -> Exiting, shows the exit field
      2. entry field only -> Exiting if the flag is an exiting alias, else Entering
      3. both fields -> same as 2, shows the entry field
      4. neither -> the raw flag if set, else Unknown, with no date field
    """
    if isinstance(raw, dict):
        raw = FieldMapping.from_dict(raw)

    has_entry = not is_blank(raw.entry_date_field)
    has_exit = not is_blank(raw.exit_date_field)

    if has_exit and not has_entry:
        direction = Direction.EXITING
        date_field = raw.exit_date_field
    elif has_entry:
        direction = _direction_from_flag(raw.raw_direction)
        date_field = raw.entry_date_field
    else:
        direction = Direction.UNKNOWN if is_blank(raw.raw_direction) else _known_or_raw(str(raw.raw_direction))
        date_field = ''

    return ResolvedMapping(
        picklist_field=raw.picklist_field,
        picklist_value=raw.picklist_value,
        resolved_direction=direction,
        display_date_field=str(date_field),
    )


def resolve_all(records: Optional[Iterable[Any]]) -> List[ResolvedMapping]:
    return [resolve(mapping) for mapping in mappings_from_records(records)]
