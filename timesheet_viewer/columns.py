from dataclasses import dataclass
from enum import Enum

from timesheet_viewer import config


class ColumnRole(Enum):
    DATE = 'date'
    ARRIVAL = 'arrival'
    DEPARTURE = 'departure'
    NUMERIC = 'numeric'
    ABSENCE = 'absence'
    TEXT = 'text'


_EXACT_ROLES: dict[str, ColumnRole] = {
    config.DATE_HEADER: ColumnRole.DATE,
    config.ARRIVAL_HEADER: ColumnRole.ARRIVAL,
    config.DEPARTURE_HEADER: ColumnRole.DEPARTURE,
    config.ABSENCE_HEADER: ColumnRole.ABSENCE,
    config.TARGET_HEADER: ColumnRole.NUMERIC,
    config.ACTUAL_HEADER: ColumnRole.NUMERIC,
    config.PAID_BREAK_HEADER: ColumnRole.NUMERIC,
    config.UNPAID_BREAK_HEADER: ColumnRole.NUMERIC,
}


def normalize_header(header: str) -> str:
    return header.strip().lower()


def header_role(header: str) -> ColumnRole:
    """
    Infers a column's role from its header name.

    Exact matches for the date, time, absence and hour columns; any header
    starting with 'gesamt' holds totals and is numeric; everything else is text.
    """
    normalized = normalize_header(header)
    if normalized in _EXACT_ROLES:
        return _EXACT_ROLES[normalized]
    if normalized.startswith(config.TOTAL_HEADER_PREFIX):
        return ColumnRole.NUMERIC
    return ColumnRole.TEXT


def resolve_roles(headers: list[str]) -> dict[int, ColumnRole]:
    """Builds the column index -> role table for one file."""
    return {idx: header_role(header) for idx, header in enumerate(headers)}


def find_header(headers: list[str], name: str) -> int | None:
    """Index of the first header matching `name` (normalized), or None."""
    for idx, header in enumerate(headers):
        if normalize_header(header) == name:
            return idx
    return None


@dataclass(frozen=True)
class HeaderIndex:
    """
    Positions of the columns the pipeline reads, resolved once per file.
    A column missing from the file is None.
    """
    date: int | None
    arrival: int | None
    departure: int | None
    absence: int | None
    target: int | None
    actual: int | None
    paid_break: int | None
    unpaid_break: int | None
    row_kind: int | None
    holiday_marker: int | None

    @classmethod
    def from_headers(cls, headers: list[str]) -> 'HeaderIndex':
        return cls(
            date=find_header(headers, config.DATE_HEADER),
            arrival=find_header(headers, config.ARRIVAL_HEADER),
            departure=find_header(headers, config.DEPARTURE_HEADER),
            absence=find_header(headers, config.ABSENCE_HEADER),
            target=find_header(headers, config.TARGET_HEADER),
            actual=find_header(headers, config.ACTUAL_HEADER),
            paid_break=find_header(headers, config.PAID_BREAK_HEADER),
            unpaid_break=find_header(headers, config.UNPAID_BREAK_HEADER),
            row_kind=find_header(headers, config.ROW_KIND_HEADER),
            holiday_marker=find_header(headers, config.HOLIDAY_MARKER_HEADER),
        )
