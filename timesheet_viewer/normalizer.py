import logging
from dataclasses import dataclass, field, replace

import pandas as pd

from timesheet_viewer import config
from timesheet_viewer.cells import TypedScalar, cell_to_string, parse_typed_cell
from timesheet_viewer.columns import ColumnRole, HeaderIndex, resolve_roles

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class ParsedTable:
    """
    A normalized table: display headers, the role of every column and a frame
    of typed cells. Frame columns are positional (0..n-1) so that repeated
    header names stay addressable.
    """
    headers: list[str]
    roles: dict[int, ColumnRole]
    frame: pd.DataFrame
    index: HeaderIndex = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, 'index', HeaderIndex.from_headers(self.headers))

    @property
    def rows(self) -> list[list[TypedScalar]]:
        return [list(row) for row in self.frame.itertuples(index=False, name=None)]


def typed_column(values: pd.Series, role: ColumnRole) -> pd.Series:
    # Built explicitly as object dtype; Series.map would coerce None to NaN in numeric columns
    return pd.Series([parse_typed_cell(value, role) for value in values], index=values.index, dtype=object)


def normalize_rows(raw_rows: list[list[str]]) -> ParsedTable | None:
    """
    Pads ragged rows, names the columns and types every cell.

    The first row is the header row. Blank header cells become 'Column <n>'
    (1-based). Every other row is typed column by column using the role
    inferred from its header.

    Args:
        raw_rows: Rows of raw cell text, header row first.

    Returns:
        The normalized table, or None if there are no rows at all.
    """
    if not raw_rows:
        return None

    column_count: int = max(len(row) for row in raw_rows)
    padded: list[list[str]] = [row + [''] * (column_count - len(row)) for row in raw_rows]

    headers: list[str] = [header.strip() or f'Column {idx + 1}' for idx, header in enumerate(padded[0])]
    roles: dict[int, ColumnRole] = resolve_roles(headers)

    frame = pd.DataFrame(padded[1:], columns=range(column_count), dtype=object)
    for idx, role in roles.items():
        frame[idx] = typed_column(frame[idx], role)

    logger.debug('Normalized %d data row(s) across %d column(s).', len(frame), column_count)
    return ParsedTable(headers=headers, roles=roles, frame=frame)


def filter_day_rows(table: ParsedTable) -> ParsedTable:
    """
    Keeps only the rows that describe a whole day.

    Sub-total and weekly summary rows carry a different marker in the row-kind
    column. Without a row-kind column no row qualifies and the result is empty.
    """
    row_kind = table.index.row_kind
    if row_kind is None:
        logger.warning('No %r column found; no day rows selected.', config.ROW_KIND_HEADER)
        return replace(table, frame=table.frame.iloc[0:0])

    is_day_row: pd.Series = table.frame[row_kind].map(
        lambda cell: cell_to_string(cell).strip() == config.DAY_ROW_MARKER).astype(bool)
    frame = table.frame[is_day_row].reset_index(drop=True)
    logger.debug('Kept %d of %d row(s) marked %r.', len(frame), len(table.frame), config.DAY_ROW_MARKER)
    return replace(table, frame=frame)
