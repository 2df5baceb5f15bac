import logging
from dataclasses import dataclass, field
from datetime import date

import pandas as pd

from timesheet_viewer import config
from timesheet_viewer.cells import TimeOfDay, TypedScalar, cell_to_string, extract_date, is_cell_empty
from timesheet_viewer.columns import HeaderIndex, normalize_header
from timesheet_viewer.normalizer import ParsedTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubEntry:
    """One arrival/departure/absence record of a day, as read from one source row."""
    arrival: TypedScalar = None
    departure: TypedScalar = None
    absence: TypedScalar = None
    actual: TypedScalar = None
    paid_break: TypedScalar = None
    unpaid_break: TypedScalar = None
    holiday_marker: TypedScalar = None

    @property
    def absence_code(self) -> str:
        return cell_to_string(self.absence).strip()

    @property
    def actual_hours(self) -> float | None:
        return self.actual if isinstance(self.actual, float) else None

    @property
    def paid_break_value(self) -> float | None:
        return self.paid_break if isinstance(self.paid_break, float) else None

    @property
    def unpaid_break_value(self) -> float | None:
        return self.unpaid_break if isinstance(self.unpaid_break, float) else None

    @property
    def is_holiday(self) -> bool:
        return not is_cell_empty(self.holiday_marker)

    @property
    def has_times(self) -> bool:
        return isinstance(self.arrival, TimeOfDay) and isinstance(self.departure, TimeOfDay)

    @property
    def is_empty(self) -> bool:
        return all(is_cell_empty(cell) for cell in (
            self.arrival, self.departure, self.actual, self.absence,
            self.holiday_marker, self.paid_break, self.unpaid_break))


@dataclass(frozen=True)
class DayRecord:
    """
    One calendar day: its sub-entries in source row order and the first
    non-empty value of every single-value column (by column index, date
    column excluded). Gap-filled days have no entries and no values.
    """
    date: date
    has_target: bool = False
    entries: tuple[SubEntry, ...] = ()
    values: dict[int, TypedScalar] = field(default_factory=dict, compare=False)
    target: TypedScalar = None
    actual: TypedScalar = None

    @property
    def target_hours(self) -> float | None:
        return self.target if isinstance(self.target, float) else None

    @property
    def actual_hours(self) -> float | None:
        return self.actual if isinstance(self.actual, float) else None

    @property
    def numeric_entries(self) -> list[SubEntry]:
        return [entry for entry in self.entries if entry.actual_hours is not None]

    @property
    def absence_codes(self) -> list[str]:
        return [entry.absence_code for entry in self.entries]

    @property
    def has_holiday_marker(self) -> bool:
        return any(entry.is_holiday for entry in self.entries)


def _cell(row: tuple, idx: int | None) -> TypedScalar:
    return None if idx is None else row[idx]


def build_sub_entry(row: tuple, index: HeaderIndex) -> SubEntry:
    return SubEntry(
        arrival=_cell(row, index.arrival),
        departure=_cell(row, index.departure),
        absence=_cell(row, index.absence),
        actual=_cell(row, index.actual),
        paid_break=_cell(row, index.paid_break),
        unpaid_break=_cell(row, index.unpaid_break),
        holiday_marker=_cell(row, index.holiday_marker),
    )


def first_non_empty(values: pd.Series) -> TypedScalar:
    """First non-empty cell of a column slice, or its first cell if all are empty."""
    for value in values:
        if not is_cell_empty(value):
            return value
    return values.iloc[0] if len(values) else None


def single_value_columns(table: ParsedTable) -> list[int]:
    """Columns reported once per day: everything except the date and the multi-value columns."""
    return [idx for idx, header in enumerate(table.headers)
            if idx != table.index.date and normalize_header(header) not in config.MULTI_VALUE_HEADERS]


def group_by_date(table: ParsedTable) -> list[DayRecord] | None:
    """
    Collapses the rows of a table into one record per calendar date.

    1.  Rows are bucketed by the date in the date column (either accepted
        format); rows without a parseable date are skipped.
    2.  Every row of a bucket becomes a SubEntry, in source order; entries
        with no data at all are dropped.
    3.  Single-value columns take the first non-empty value in the bucket.

    Args:
        table: The normalized, day-filtered table.

    Returns:
        DayRecords sorted by date, or None if the table has no date column or
        no parseable date, in which case the table is used as it is.
    """
    index = table.index
    if index.date is None:
        logger.warning('No %r column found; rows are not grouped by day.', config.DATE_HEADER)
        return None

    frame: pd.DataFrame = table.frame
    date_keys: pd.Series = frame[index.date].map(extract_date)
    has_date: pd.Series = date_keys.notna()
    if not has_date.any():
        logger.warning('No parseable date in the %r column; rows are not grouped by day.', config.DATE_HEADER)
        return None

    value_columns = single_value_columns(table)
    days: list[DayRecord] = []
    for day, bucket in frame[has_date].groupby(date_keys[has_date], sort=True):
        entries: list[SubEntry] = []
        for row in bucket.itertuples(index=False, name=None):
            entry = build_sub_entry(row, index)
            if not entry.is_empty:
                entries.append(entry)

        values: dict[int, TypedScalar] = {idx: first_non_empty(bucket[idx]) for idx in value_columns}
        target = values.get(index.target) if index.target is not None else None
        actual = values.get(index.actual) if index.actual is not None else None
        days.append(DayRecord(
            date=day,
            has_target=not is_cell_empty(target),
            entries=tuple(entries),
            values=values,
            target=target,
            actual=actual,
        ))

    logger.debug('Grouped %d row(s) into %d day(s).', int(has_date.sum()), len(days))
    return days


def fill_calendar_gaps(days: list[DayRecord]) -> list[DayRecord]:
    """
    Returns one record per calendar date between the first and last day.

    Dates missing from the source become empty placeholder days without
    target hours.
    """
    if not days:
        return []

    by_date: dict[date, DayRecord] = {day.date: day for day in days}
    filled: list[DayRecord] = []
    for timestamp in pd.date_range(days[0].date, days[-1].date, freq='D'):
        current: date = timestamp.date()
        filled.append(by_date.get(current) or DayRecord(date=current))

    if len(filled) > len(days):
        logger.debug('Filled %d calendar gap(s).', len(filled) - len(days))
    return filled
