import math
import re
from dataclasses import dataclass
from datetime import date
from typing import Union

from timesheet_viewer.columns import ColumnRole

_EU_DATE_RE = re.compile(r'^(\d{2})-(\d{2})-(\d{4})$')
_ISO_DATE_RE = re.compile(r'^(\d{4})-(\d{2})-(\d{2})$')
_TIME_RE = re.compile(r'^(\d{1,2}):(\d{2})$')
_DECIMAL_RE = re.compile(r'^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$')


@dataclass(frozen=True)
class TimeOfDay:
    """A wall-clock time stored as minutes since midnight (0-1439)."""
    minutes: int

    def __str__(self) -> str:
        return format_minutes(self.minutes)


# A typed cell is exactly one of: text, number, calendar date, time of day or absent.
TypedScalar = Union[str, float, date, TimeOfDay, None]


def format_minutes(minutes: int) -> str:
    """Formats minutes since midnight as 'HH:MM'."""
    return f'{minutes // 60:02d}:{minutes % 60:02d}'


def _build_date(year: str, month: str, day: str) -> date | None:
    # date() rejects impossible components such as 31-02-2024
    try:
        return date(int(year), int(month), int(day))
    except ValueError:
        return None


def parse_date_cell(value: str) -> date | None:
    """Parses a 'DD-MM-YYYY' date; None if the text is not a real calendar date."""
    match = _EU_DATE_RE.match(value)
    if not match:
        return None
    dd, mm, yyyy = match.groups()
    return _build_date(yyyy, mm, dd)


def parse_iso_date_cell(value: str) -> date | None:
    """Parses a 'YYYY-MM-DD' date; None if the text is not a real calendar date."""
    match = _ISO_DATE_RE.match(value)
    if not match:
        return None
    yyyy, mm, dd = match.groups()
    return _build_date(yyyy, mm, dd)


def parse_time_cell(value: str) -> TimeOfDay | None:
    match = _TIME_RE.match(value)
    if not match:
        return None
    hours, minutes = (int(part) for part in match.groups())
    if hours > 23 or minutes > 59:
        return None
    return TimeOfDay(hours * 60 + minutes)


def parse_number_cell(value: str) -> float | None:
    """
    Parses a locale-formatted decimal where '.' groups thousands and ',' is
    the decimal separator, e.g. '1.234,5' -> 1234.5.
    """
    normalized = value.replace('.', '').replace(',', '.', 1)
    if not _DECIMAL_RE.match(normalized):
        return None
    parsed = float(normalized)
    return parsed if math.isfinite(parsed) else None


def parse_typed_cell(raw_value: str, role: ColumnRole) -> TypedScalar:
    """
    Turns one raw text cell into a typed scalar according to its column role.

    Empty text is absent for every role. A value that does not parse for its
    role degrades to its trimmed text; this function never raises.

    Args:
        raw_value: The cell text as read from the file.
        role: The semantic role of the cell's column.

    Returns:
        A str, float, date, TimeOfDay or None.
    """
    value = raw_value.strip()
    if not value:
        return None

    parsed: TypedScalar = None
    if role is ColumnRole.DATE:
        parsed = parse_date_cell(value) or parse_iso_date_cell(value)
    elif role in (ColumnRole.ARRIVAL, ColumnRole.DEPARTURE):
        parsed = parse_time_cell(value)
    elif role is ColumnRole.NUMERIC:
        parsed = parse_number_cell(value)

    return value if parsed is None else parsed


def extract_date(cell: TypedScalar) -> date | None:
    """Returns the calendar date held by a cell, accepting both date formats in text cells."""
    if isinstance(cell, date):
        return cell
    if isinstance(cell, str):
        return parse_date_cell(cell) or parse_iso_date_cell(cell)
    return None


def format_number(value: float) -> str:
    """Integers without decimals, anything else rounded to at most two decimals."""
    if float(value).is_integer():
        return str(int(value))
    return f'{value:.2f}'.rstrip('0').rstrip('.')


def cell_to_string(cell: TypedScalar) -> str:
    """Canonical text form of a typed cell; '' for an absent cell."""
    if cell is None:
        return ''
    if isinstance(cell, TimeOfDay):
        return format_minutes(cell.minutes)
    if isinstance(cell, date):
        return cell.isoformat()
    if isinstance(cell, float):
        return format_number(cell)
    if isinstance(cell, str):
        return cell
    raise TypeError(f'Unsupported cell value {cell!r}.')


def is_cell_empty(cell: TypedScalar) -> bool:
    return cell is None or not cell_to_string(cell).strip()
