import logging
from dataclasses import dataclass

from timesheet_viewer.classifier import DayCategory
from timesheet_viewer.config import DEFAULT_CONFIG, ViewerConfig
from timesheet_viewer.grouping import DayRecord, group_by_date
from timesheet_viewer.normalizer import ParsedTable, filter_day_rows, normalize_rows
from timesheet_viewer.reader import MalformedFileError, parse_csv_text
from timesheet_viewer.stats import AggregateStats, Selection, calculate_flat_stats, calculate_stats, date_range_label
from timesheet_viewer.view import (ConstantColumn, DailyRecords, TableView, build_daily_records, build_table_view,
                                   period_constant_columns)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class TimesheetData:
    """Everything derived from one uploaded file. A new upload replaces it as a whole."""
    source_name: str
    table: ParsedTable
    grouped: list[DayRecord] | None
    view: TableView

    @property
    def days(self) -> list[DayRecord]:
        """The gap-filled days, empty when the file could not be grouped by date."""
        return self.view.days

    @property
    def has_timeline(self) -> bool:
        index = self.table.index
        return None not in (index.arrival, index.departure, index.absence)


@dataclass(frozen=True, eq=False)
class Summary:
    """The result for one selection of a loaded file."""
    selection: Selection
    period: TableView
    stats: AggregateStats
    records: DailyRecords
    constant_columns: list[ConstantColumn]
    date_range: str

    @property
    def categories(self) -> list[DayCategory]:
        return self.stats.categories


def load_csv_text(text: str, source_name: str = '', settings: ViewerConfig = DEFAULT_CONFIG) -> TimesheetData:
    """
    Runs the loading half of the pipeline on one complete file buffer.

    Raises:
        MalformedFileError: If the buffer cannot be tokenized or is empty.
    """
    return load_rows(parse_csv_text(text), source_name, settings)


def load_rows(raw_rows: list[list[str]], source_name: str = '',
              settings: ViewerConfig = DEFAULT_CONFIG) -> TimesheetData:
    """
    Normalizes and types the rows, keeps day rows, groups them by date and
    builds the visible (gap-filled) table.

    Raises:
        MalformedFileError: If there are no rows at all.
    """
    parsed = normalize_rows(raw_rows)
    if parsed is None:
        raise MalformedFileError('The uploaded CSV appears empty.')

    # Step 1: Keep whole-day rows only
    table = filter_day_rows(parsed)

    # Step 2: One record per date
    grouped = group_by_date(table)

    # Step 3: Visible table with calendar gaps filled
    view = build_table_view(table, grouped, settings)

    logger.info('Loaded %s: %d day row(s), %d calendar day(s).', source_name or 'input',
                len(table.frame), len(view.days))
    return TimesheetData(source_name=source_name, table=table, grouped=grouped, view=view)


def summarize(data: TimesheetData, selection: Selection = Selection(),
              settings: ViewerConfig = DEFAULT_CONFIG) -> Summary:
    """
    Recomputes everything that depends on the selection; a pure function of its arguments.

    Files that could not be grouped by date are summarized row by row and
    always shown whole.
    """
    period = data.view.select(selection)
    if data.grouped is None:
        stats = calculate_flat_stats(data.table, settings)
    else:
        stats = calculate_stats(period.days, settings, has_timeline=data.has_timeline)
    records = build_daily_records(period, stats.categories)
    return Summary(
        selection=selection,
        period=period,
        stats=stats,
        records=records,
        constant_columns=period_constant_columns(data.view, period, settings),
        date_range=date_range_label(period.days) if data.grouped is not None else 'No date column found',
    )
