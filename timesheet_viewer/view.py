import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Union

from timesheet_viewer import config
from timesheet_viewer.cells import TypedScalar, cell_to_string, format_number
from timesheet_viewer.classifier import DayCategory
from timesheet_viewer.columns import normalize_header
from timesheet_viewer.config import DEFAULT_CONFIG, ViewerConfig
from timesheet_viewer.grouping import DayRecord, SubEntry, fill_calendar_gaps
from timesheet_viewer.normalizer import ParsedTable
from timesheet_viewer.stats import Selection, home_office_hours, select_days
from timesheet_viewer.timeline import build_segments, should_omit_timeline, timeline_to_text

logger = logging.getLogger(__name__)

# A view cell is a typed scalar, or the sub-entries of a day for multi-value columns.
ViewCell = Union[TypedScalar, tuple[SubEntry, ...]]

# Sub-entry field shown by each multi-value column.
ENTRY_FIELDS: dict[str, str] = {
    config.ARRIVAL_HEADER: 'arrival',
    config.DEPARTURE_HEADER: 'departure',
    config.ABSENCE_HEADER: 'absence',
    config.PAID_BREAK_HEADER: 'paid_break',
    config.UNPAID_BREAK_HEADER: 'unpaid_break',
}

HIDDEN_HEADERS: frozenset[str] = frozenset({config.WEEKDAY_HEADER, config.HOLIDAY_MARKER_HEADER})


@dataclass(frozen=True)
class ConstantColumn:
    header: str
    value: str


@dataclass(frozen=True)
class ViewColumn:
    header: str
    source: int


@dataclass(frozen=True, eq=False)
class TableView:
    """
    The visible table: one row per day (or per source row when the file
    could not be grouped by date) with per-row flags.
    """
    columns: list[ViewColumn]
    rows: list[list[ViewCell]]
    row_has_target: list[bool]
    row_timeline_omitted: list[bool]
    days: list[DayRecord] = field(default_factory=list)
    constant_columns: list[ConstantColumn] = field(default_factory=list)

    @property
    def headers(self) -> list[str]:
        return [column.header for column in self.columns]

    def column_index(self, name: str) -> int | None:
        for idx, column in enumerate(self.columns):
            if normalize_header(column.header) == name:
                return idx
        return None

    def select(self, selection: Selection) -> 'TableView':
        """The rows of the days inside the selection. Ungrouped views are returned whole."""
        if not self.days:
            return self
        selected = {day.date for day in select_days(self.days, selection)}
        keep = [idx for idx, day in enumerate(self.days) if day.date in selected]
        return replace(
            self,
            rows=[self.rows[idx] for idx in keep],
            row_has_target=[self.row_has_target[idx] for idx in keep],
            row_timeline_omitted=[self.row_timeline_omitted[idx] for idx in keep],
            days=[self.days[idx] for idx in keep],
        )


def cell_to_display_string(header: str, cell: ViewCell, settings: ViewerConfig = DEFAULT_CONFIG) -> str:
    """
    Display text of one view cell.

    - Totals ('gesamt*') carry an explicit sign.
    - The Timeline column renders its clipped segments.
    - Other multi-value columns join their non-empty values with ' | '.
    """
    normalized = normalize_header(header)
    if isinstance(cell, tuple):
        if normalized == normalize_header(config.TIMELINE_HEADER):
            return timeline_to_text(build_segments(cell, settings))
        entry_field = ENTRY_FIELDS.get(normalized)
        if entry_field is None:
            return ''
        values = [cell_to_string(getattr(entry, entry_field)) for entry in cell]
        return ' | '.join(value for value in values if value.strip())

    if normalized.startswith(config.TOTAL_HEADER_PREFIX) and isinstance(cell, float):
        sign = '-' if cell < 0 else '+'
        return f'{sign}{format_number(abs(cell))}'
    return cell_to_string(cell)


def day_source_row(table: ParsedTable, day: DayRecord) -> list[ViewCell]:
    """A day laid out over the table's columns."""
    row: list[ViewCell] = []
    for idx, header in enumerate(table.headers):
        if idx == table.index.date:
            row.append(day.date)
        elif normalize_header(header) in config.MULTI_VALUE_HEADERS:
            row.append(day.entries)
        else:
            row.append(day.values.get(idx))
    return row


def find_constant_columns(headers: list[str], rows: list[list[ViewCell]],
                          settings: ViewerConfig = DEFAULT_CONFIG) -> tuple[list[int], list[ConstantColumn]]:
    """
    Columns showing the same text on every row.

    Returns:
        A tuple containing:
        - The indexes of all constant columns, empty ones included.
        - The non-empty constant columns with their value.
    """
    indexes: list[int] = []
    constants: list[ConstantColumn] = []
    for idx, header in enumerate(headers):
        first = cell_to_display_string(header, rows[0][idx] if rows else None, settings)
        if all(cell_to_display_string(header, row[idx], settings) == first for row in rows):
            indexes.append(idx)
            if first.strip():
                constants.append(ConstantColumn(header, first))
    return indexes, constants


def visible_columns(headers: list[str], hidden: set[int]) -> list[ViewColumn]:
    """
    Picks and names the columns to show.

    Arrival, departure and absence fold into a single Timeline column at the
    arrival position when all three are visible. Weekday and holiday-marker
    columns are never shown.
    """
    columns = [ViewColumn(header, idx) for idx, header in enumerate(headers) if idx not in hidden]

    def position(name: str) -> int | None:
        for pos, column in enumerate(columns):
            if normalize_header(column.header) == name:
                return pos
        return None

    arrival = position(config.ARRIVAL_HEADER)
    departure = position(config.DEPARTURE_HEADER)
    absence = position(config.ABSENCE_HEADER)
    if arrival is not None and departure is not None and absence is not None:
        columns[arrival] = ViewColumn(config.TIMELINE_HEADER, columns[arrival].source)
        columns = [column for pos, column in enumerate(columns) if pos not in (departure, absence)]

    return [column for column in columns if normalize_header(column.header) not in HIDDEN_HEADERS]


def timeline_omitted(cell: ViewCell, has_target: bool, settings: ViewerConfig = DEFAULT_CONFIG) -> bool:
    if isinstance(cell, tuple):
        return should_omit_timeline(has_target, build_segments(cell, settings))
    return not has_target and not cell_to_string(cell).strip()


def build_table_view(table: ParsedTable, days: list[DayRecord] | None,
                     settings: ViewerConfig = DEFAULT_CONFIG) -> TableView:
    """
    Builds the visible table from the normalized table and its grouped days.

    1.  Lays every day out over the source columns (or takes the source rows
        as they are when the file could not be grouped).
    2.  Hides constant columns and repeated date columns; non-empty constants
        are reported separately.
    3.  Folds arrival/departure/absence into the Timeline column and hides
        weekday and holiday-marker columns.
    4.  Fills calendar gaps with empty days and flags, per row, whether the
        day has target hours and whether its timeline is omitted.

    Args:
        table: The normalized, day-filtered table.
        days: The grouped days, or None if grouping did not apply.
        settings: Display window settings.

    Returns:
        The TableView.
    """
    headers = table.headers
    if days is None:
        source_rows: list[list[ViewCell]] = table.rows
    else:
        source_rows = [day_source_row(table, day) for day in days]

    hidden: set[int] = set()
    constants: list[ConstantColumn] = []
    if source_rows:
        constant_indexes, constants = find_constant_columns(headers, source_rows, settings)
        hidden.update(constant_indexes)
    date_positions = [idx for idx, header in enumerate(headers) if normalize_header(header) == config.DATE_HEADER]
    hidden.update(date_positions[1:])

    columns = visible_columns(headers, hidden)
    target = table.index.target

    if days is None:
        rows = [[row[column.source] for column in columns] for row in source_rows]
        has_target = [target is not None and bool(cell_to_string(row[target]).strip()) for row in source_rows]
        filled: list[DayRecord] = []
    else:
        filled = fill_calendar_gaps(days)
        rows = []
        for day in filled:
            source_row = day_source_row(table, day)
            rows.append([source_row[column.source] for column in columns])
        has_target = [day.has_target for day in filled]

    timeline = next((pos for pos, column in enumerate(columns) if column.header == config.TIMELINE_HEADER), None)
    omitted = [timeline is not None and timeline_omitted(row[timeline], row_has_target, settings)
               for row, row_has_target in zip(rows, has_target)]

    logger.debug('Table view: %d visible column(s), %d row(s), %d constant column(s).',
                 len(columns), len(rows), len(constants))
    return TableView(columns=columns, rows=rows, row_has_target=has_target, row_timeline_omitted=omitted,
                     days=filled, constant_columns=constants)


def period_constant_columns(view: TableView, period: TableView,
                            settings: ViewerConfig = DEFAULT_CONFIG) -> list[ConstantColumn]:
    """File-wide constants, plus the visible columns that are constant within the selected period."""
    by_header: dict[str, str] = {column.header: column.value for column in view.constant_columns}
    _, period_constants = find_constant_columns(period.headers, period.rows, settings)
    by_header.update({column.header: column.value for column in period_constants})
    return [ConstantColumn(header, value) for header, value in by_header.items()]


@dataclass(frozen=True)
class DailyRecords:
    """Headers and rows of the daily-records table. `keys` identify each row: its date, or its 1-based row number."""
    headers: list[str]
    rows: list[list]
    keys: list[date | int] = field(default_factory=list)


def move_after(order: list[int], headers: list[str], name: str, anchor: str) -> list[int]:
    """Moves the column named `name` right after the column named `anchor`, if both exist."""
    names = [normalize_header(headers[idx]) for idx in order]
    if name not in names or anchor not in names:
        return order
    moved = list(order)
    item = moved.pop(names.index(name))
    anchor_pos = [normalize_header(headers[idx]) for idx in moved].index(anchor)
    moved.insert(anchor_pos + 1, item)
    return moved


def build_daily_records(period: TableView, categories: list[DayCategory]) -> DailyRecords:
    """
    The daily-records table of a period.

    Adds a 'Type' column with the day category after the first column, moves
    Ist after the unpaid-break column and Soll after Ist, and inserts 'home'
    and 'office' hour sums after Soll (or after Ist, or at the end).

    Args:
        period: The selected slice of the table view.
        categories: The day category of each row of the slice.

    Returns:
        DailyRecords with headers and rows; cells are view cells, labels or floats.
    """
    source_headers = period.headers
    with_type = source_headers[:1] + ['Type'] + source_headers[1:]
    order = list(range(len(with_type)))
    order = move_after(order, with_type, config.ACTUAL_HEADER, config.UNPAID_BREAK_HEADER)
    order = move_after(order, with_type, config.TARGET_HEADER, config.ACTUAL_HEADER)
    headers = [with_type[idx] for idx in order]

    names = [normalize_header(header) for header in headers]
    if config.TARGET_HEADER in names:
        insert_at = names.index(config.TARGET_HEADER) + 1
    elif config.ACTUAL_HEADER in names:
        insert_at = names.index(config.ACTUAL_HEADER) + 1
    else:
        insert_at = len(headers)

    rows: list[list] = []
    for pos, row in enumerate(period.rows):
        category = categories[pos] if pos < len(categories) else DayCategory.UNCLASSIFIED
        home, office = home_office_hours(period.days[pos]) if period.days else (0.0, 0.0)
        with_type_row = row[:1] + [category.label] + row[1:]
        reordered = [with_type_row[idx] for idx in order]
        rows.append(reordered[:insert_at] + [home or None, office or None] + reordered[insert_at:])

    if period.days:
        keys: list[date | int] = [day.date for day in period.days]
    else:
        keys = list(range(1, len(rows) + 1))
    return DailyRecords(headers=headers[:insert_at] + ['home', 'office'] + headers[insert_at:], rows=rows, keys=keys)
