import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

import pandas as pd

from timesheet_viewer import config
from timesheet_viewer.cells import cell_to_string, is_cell_empty
from timesheet_viewer.classifier import Classification, DayCategory, Diagnostic, classify_day, classify_row
from timesheet_viewer.config import DEFAULT_CONFIG, EligibilityRule, ViewerConfig
from timesheet_viewer.grouping import DayRecord, SubEntry
from timesheet_viewer.normalizer import ParsedTable
from timesheet_viewer.timeline import SegmentKind, build_segments, should_omit_timeline

logger = logging.getLogger(__name__)

# Minute buckets reported for the selection, in display order.
BUCKETS: list[tuple[str, SegmentKind]] = [
    ('empty', SegmentKind.NORMAL),
    (config.SICK_CODE, SegmentKind.SICK),
    (config.PARTIAL_LEAVE_CODE, SegmentKind.PARTIAL),
    (config.HOME_CODE, SegmentKind.HOME),
]

ENTRY_COLUMNS: list[str] = ['date', 'code', 'ist', 'paid_break', 'unpaid_break']


class ViewMode(str, Enum):
    COMPLETE = 'complete'
    YEAR = 'year'
    MONTH = 'month'


@dataclass(frozen=True)
class Selection:
    """The slice of days statistics are computed for. `month` is a 'YYYY-MM' key."""
    mode: ViewMode = ViewMode.COMPLETE
    year: int | None = None
    month: str | None = None


@dataclass(frozen=True)
class MinuteBucket:
    label: str
    minutes: int
    proportion: float


@dataclass(frozen=True)
class RecordedHours:
    """Recorded hours of the selection split by break kind and absence code."""
    unpaid_break: float = 0.0
    paid_break: float = 0.0
    office: float = 0.0
    home: float = 0.0
    sick: float = 0.0
    vacation: float = 0.0


@dataclass(frozen=True)
class AggregateStats:
    dates_with_entries: int = 0
    days_with_ist_entries: int = 0
    total_soll: float = 0.0
    total_ist: float = 0.0
    total_p_entries: int = 0
    buckets: list[MinuteBucket] = field(default_factory=list)
    total_tracked_minutes: int = 0
    office_days: int = 0
    home_office_days: int = 0
    sick_days: int = 0
    vacation_days: int = 0
    other_days: int = 0
    tax_eligible_days: int = 0
    tax_deduction: float = 0.0
    home_office_share_strict: float = 0.0
    home_office_share_optimistic: float = 0.0
    recorded_hours: RecordedHours = field(default_factory=RecordedHours)
    categories: list[DayCategory] = field(default_factory=list)
    mismatches: list[bool] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)


def month_key(day: date) -> str:
    return f'{day:%Y-%m}'


def available_years(days: list[DayRecord]) -> list[int]:
    return sorted({day.date.year for day in days})


def available_months(days: list[DayRecord]) -> list[str]:
    return sorted({month_key(day.date) for day in days})


def default_selection(days: list[DayRecord], mode: ViewMode) -> Selection:
    """Opens year and month views on the latest period in the data."""
    if mode is ViewMode.YEAR and days:
        return Selection(mode, year=available_years(days)[-1])
    if mode is ViewMode.MONTH and days:
        return Selection(mode, month=available_months(days)[-1])
    return Selection(mode)


def select_days(days: list[DayRecord], selection: Selection) -> list[DayRecord]:
    """Days inside the selection; a year or month view without a chosen period shows everything."""
    if selection.mode is ViewMode.YEAR and selection.year is not None:
        return [day for day in days if day.date.year == selection.year]
    if selection.mode is ViewMode.MONTH and selection.month is not None:
        return [day for day in days if month_key(day.date) == selection.month]
    return list(days)


def date_range_label(days: list[DayRecord]) -> str:
    if not days:
        return 'No valid dates found'
    first, last = min(day.date for day in days), max(day.date for day in days)
    if first == last:
        return f'{first:%b %d, %Y}'
    return f'{first:%b %d, %Y} - {last:%b %d, %Y}'


def tax_deduction(eligible_days: int, settings: ViewerConfig = DEFAULT_CONFIG) -> float:
    """Flat per-day home-office deduction, capped at `tax_max_days` days."""
    return min(eligible_days, settings.tax_max_days) * settings.tax_rate_per_day


def share(part: float, total: float) -> float:
    return part / total if total > 0 else 0.0


def entry_duration_hours(entry: SubEntry) -> float:
    """Unclipped arrival-to-departure duration in hours; 0 without both times or for inverted times."""
    if not entry.has_times:
        return 0.0
    minutes = entry.departure.minutes - entry.arrival.minutes
    return minutes / 60.0 if minutes > 0 else 0.0


def expected_ist(day: DayRecord, settings: ViewerConfig = DEFAULT_CONFIG) -> float:
    """
    Reconstructs a day's Ist from its sub-entries.

    On holiday-marked days only the marked entries count (their timed
    duration, or their credited Ist when they carry no times). Otherwise the
    durations of office, remote, sick and vacation entries count. The paid
    break is added in both cases.
    """
    worked: float = 0.0
    holiday: float = 0.0
    paid_break: float = 0.0
    counted_codes = ('', config.HOME_CODE, config.SICK_CODE, config.VACATION_CODE)
    for entry in day.entries:
        duration = entry_duration_hours(entry)
        if entry.is_holiday:
            if entry.has_times:
                holiday += duration
            elif entry.actual_hours is not None:
                holiday += entry.actual_hours
        if entry.absence_code in counted_codes:
            worked += duration
        if entry.paid_break_value is not None:
            paid_break += settings.break_to_hours(entry.paid_break_value)

    base = holiday if day.has_holiday_marker else worked
    return base + paid_break


def ist_mismatch(day: DayRecord, settings: ViewerConfig = DEFAULT_CONFIG) -> bool:
    """True when the declared Ist differs from the reconstructed hours by more than the tolerance."""
    if day.actual_hours is None or not day.entries:
        return False
    return abs(day.actual_hours - expected_ist(day, settings)) > settings.mismatch_tolerance


def home_office_hours(day: DayRecord) -> tuple[float, float]:
    """Unclipped (home, office) hours of a day's timed entries."""
    home: float = 0.0
    office: float = 0.0
    for entry in day.entries:
        if entry.absence_code == config.HOME_CODE:
            home += entry_duration_hours(entry)
        elif entry.absence_code == '':
            office += entry_duration_hours(entry)
    return home, office


def entries_frame(days: list[DayRecord], settings: ViewerConfig = DEFAULT_CONFIG) -> pd.DataFrame:
    """One row per sub-entry with its code and numeric values; breaks converted to hours."""
    records: list[dict] = []
    for day in days:
        for entry in day.entries:
            paid = entry.paid_break_value
            unpaid = entry.unpaid_break_value
            records.append({
                'date': day.date,
                'code': entry.absence_code,
                'ist': entry.actual_hours,
                'paid_break': None if paid is None else settings.break_to_hours(paid),
                'unpaid_break': None if unpaid is None else settings.break_to_hours(unpaid),
            })
    frame = pd.DataFrame(records, columns=ENTRY_COLUMNS)
    return frame.astype({'code': str, 'ist': float, 'paid_break': float, 'unpaid_break': float})


def segments_frame(days: list[DayRecord], settings: ViewerConfig = DEFAULT_CONFIG) -> pd.DataFrame:
    """Clipped segment minutes of every day whose timeline is shown."""
    records: list[dict] = []
    for day in days:
        segments = build_segments(day.entries, settings)
        if should_omit_timeline(day.has_target, segments):
            continue
        records.extend({'kind': segment.kind.value, 'minutes': segment.duration} for segment in segments)
    return pd.DataFrame(records, columns=['kind', 'minutes']).astype({'minutes': int})


def minute_buckets(days: list[DayRecord], settings: ViewerConfig = DEFAULT_CONFIG) -> tuple[list[MinuteBucket], int]:
    """
    Sums clipped segment minutes per kind (office, sick, partial leave,
    remote) and each kind's share of their total. Shares are 0 when nothing
    was tracked.
    """
    segments = segments_frame(days, settings)
    kinds = [kind.value for _, kind in BUCKETS]
    minutes: pd.Series = segments.groupby('kind')['minutes'].sum().reindex(kinds, fill_value=0)
    total = int(minutes.sum())
    buckets = [MinuteBucket(label=label, minutes=int(minutes[kind.value]), proportion=share(float(minutes[kind.value]), total))
               for label, kind in BUCKETS]
    return buckets, total


def is_segment_eligible(day: DayRecord, settings: ViewerConfig = DEFAULT_CONFIG) -> bool:
    """Segment rule: the day's segments are all remote work or partial leave, with some remote work."""
    kinds = {segment.kind for segment in build_segments(day.entries, settings)}
    return SegmentKind.HOME in kinds and kinds <= {SegmentKind.HOME, SegmentKind.PARTIAL}


def calculate_stats(days: list[DayRecord],
                    settings: ViewerConfig = DEFAULT_CONFIG,
                    has_timeline: bool = True) -> AggregateStats:
    """
    Computes the aggregate statistics of a selected slice of days.

    Args:
        days: The selected days, calendar gaps included.
        settings: Window, tolerance, tax and break settings.
        has_timeline: False when the file lacks arrival, departure or absence
                      columns; segment buckets and mismatch flags are then empty.

    Returns:
        The AggregateStats of the slice.
    """
    entries = entries_frame(days, settings)
    ist_by_code: pd.Series = entries.groupby('code')['ist'].sum()

    def ist_for(code: str) -> float:
        return float(ist_by_code.get(code, 0.0))

    recorded = RecordedHours(
        unpaid_break=float(entries['unpaid_break'].sum()),
        paid_break=float(entries['paid_break'].sum()),
        office=ist_for(''),
        home=ist_for(config.HOME_CODE),
        sick=ist_for(config.SICK_CODE),
        vacation=ist_for(config.VACATION_CODE),
    )
    paid_break_on_partial = float(entries.loc[entries['code'] == config.PARTIAL_LEAVE_CODE, 'paid_break'].sum())

    if has_timeline:
        buckets, total_minutes = minute_buckets(days, settings)
    else:
        buckets, total_minutes = [MinuteBucket(label, 0, 0.0) for label, _ in BUCKETS], 0

    classifications: list[Classification] = [classify_day(day) for day in days]
    categories = [item.category for item in classifications]
    diagnostics = [item.diagnostic for item in classifications if item.diagnostic is not None]

    mismatches = [has_timeline and ist_mismatch(day, settings) for day in days]
    diagnostics.extend(Diagnostic(day=day.date, kind='ist_mismatch')
                       for day, mismatch in zip(days, mismatches) if mismatch)

    home_days = categories.count(DayCategory.HOME)
    if settings.eligibility_rule is EligibilityRule.SEGMENTS:
        eligible_days = sum(1 for day in days if day.numeric_entries and is_segment_eligible(day, settings))
    else:
        eligible_days = home_days

    strict_total = recorded.home + recorded.office
    optimistic_total = strict_total + paid_break_on_partial + recorded.sick + recorded.vacation

    stats = AggregateStats(
        dates_with_entries=len(days),
        days_with_ist_entries=sum(1 for category in categories if category.is_counted),
        total_soll=sum(day.target_hours for day in days if day.target_hours is not None),
        total_ist=float(entries['ist'].sum()) + recorded.paid_break,
        total_p_entries=int((entries['code'] == config.PARTIAL_LEAVE_CODE).sum()),
        buckets=buckets,
        total_tracked_minutes=total_minutes,
        office_days=categories.count(DayCategory.OFFICE),
        home_office_days=home_days,
        sick_days=categories.count(DayCategory.KRANKENSTAND),
        vacation_days=categories.count(DayCategory.URLAUB),
        other_days=categories.count(DayCategory.OTHER),
        tax_eligible_days=eligible_days,
        tax_deduction=tax_deduction(eligible_days, settings),
        home_office_share_strict=share(recorded.home, strict_total),
        home_office_share_optimistic=share(recorded.home, optimistic_total),
        recorded_hours=recorded,
        categories=categories,
        mismatches=mismatches,
        diagnostics=diagnostics,
    )
    logger.debug('Stats for %d day(s): %d office, %d home, %d sick, %d vacation.', len(days),
                 stats.office_days, stats.home_office_days, stats.sick_days, stats.vacation_days)
    return stats


def hours_column(table: ParsedTable, idx: int | None) -> pd.Series:
    """Numeric cells of a column, 0 for anything else or for a missing column."""
    if idx is None:
        return pd.Series(0.0, index=table.frame.index, dtype=float)
    return table.frame[idx].map(lambda cell: cell if isinstance(cell, float) else 0.0).astype(float)


def calculate_flat_stats(table: ParsedTable, settings: ViewerConfig = DEFAULT_CONFIG) -> AggregateStats:
    """
    Computes the statistics of a table that could not be grouped by date.

    Every row stands for one day with a single absence code. Soll, Ist and the
    paid break are summed over the columns, and rows with a numeric Ist are
    classified by their code. There are no sub-entries, so minute buckets,
    Ist per code, home shares and mismatch flags stay empty. The tax count is
    the number of Home rows under either eligibility rule.

    Args:
        table: The normalized, day-filtered table.
        settings: Tax and break settings.

    Returns:
        The AggregateStats of the table, one category per row.
    """
    index = table.index
    rows = table.rows

    def cell(row: list, idx: int | None):
        return None if idx is None else row[idx]

    codes: list[str] = [cell_to_string(cell(row, index.absence)).strip() for row in rows]
    classifications: list[Classification] = [
        classify_row(pos + 1, cell(row, index.actual), code, not is_cell_empty(cell(row, index.target)))
        for pos, (row, code) in enumerate(zip(rows, codes))
    ]
    categories = [item.category for item in classifications]
    diagnostics = [item.diagnostic for item in classifications if item.diagnostic is not None]

    paid_break = settings.break_to_hours(float(hours_column(table, index.paid_break).sum()))
    unpaid_break = settings.break_to_hours(float(hours_column(table, index.unpaid_break).sum()))
    home_days = categories.count(DayCategory.HOME)

    stats = AggregateStats(
        dates_with_entries=len(rows),
        days_with_ist_entries=sum(1 for category in categories if category.is_counted),
        total_soll=float(hours_column(table, index.target).sum()),
        total_ist=float(hours_column(table, index.actual).sum()) + paid_break,
        total_p_entries=codes.count(config.PARTIAL_LEAVE_CODE),
        buckets=[MinuteBucket(label, 0, 0.0) for label, _ in BUCKETS],
        office_days=categories.count(DayCategory.OFFICE),
        home_office_days=home_days,
        sick_days=categories.count(DayCategory.KRANKENSTAND),
        vacation_days=categories.count(DayCategory.URLAUB),
        other_days=categories.count(DayCategory.OTHER),
        tax_eligible_days=home_days,
        tax_deduction=tax_deduction(home_days, settings),
        recorded_hours=RecordedHours(unpaid_break=unpaid_break, paid_break=paid_break),
        categories=categories,
        mismatches=[False] * len(rows),
        diagnostics=diagnostics,
    )
    logger.debug('Flat stats for %d row(s): %d office, %d home.', len(rows), stats.office_days, stats.home_office_days)
    return stats
