import logging
import sys
from datetime import date
from pathlib import Path

import pandas as pd
from openpyxl.comments import Comment
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from timesheet_viewer import config
from timesheet_viewer.classifier import Diagnostic
from timesheet_viewer.columns import normalize_header
from timesheet_viewer.config import DEFAULT_CONFIG, ViewerConfig
from timesheet_viewer.view import DailyRecords, TableView, cell_to_display_string

logger = logging.getLogger(__name__)

MAX_FILENAME_ATTEMPTS: int = 100


class ExportError(Exception):
    """An export could not be produced or written. The message is user-facing; loaded data stays valid."""


def to_tsv(view: TableView, columns: tuple[int, ...] = (0, 1), settings: ViewerConfig = DEFAULT_CONFIG) -> str:
    """
    Renders a column subset of a table view as tab-separated text.

    Omitted timelines render empty and tabs inside cells become spaces.

    Args:
        view: The (selected) table view.
        columns: Visible column positions to export, by default the first two.
        settings: Display window settings.

    Returns:
        One line per row, without a header line.

    Raises:
        ExportError: If the view has fewer than two visible columns or a
                     requested column does not exist.
    """
    headers = view.headers
    if len(headers) < 2:
        raise ExportError('Need at least two visible columns to copy.')
    missing = [idx for idx in columns if not 0 <= idx < len(headers)]
    if missing:
        raise ExportError(f'Column(s) {missing} not found; the table has {len(headers)} visible column(s).')

    lines: list[str] = []
    for row, omitted in zip(view.rows, view.row_timeline_omitted):
        cells: list[str] = []
        for idx in columns:
            if headers[idx] == config.TIMELINE_HEADER and omitted:
                cells.append('')
                continue
            cells.append(cell_to_display_string(headers[idx], row[idx], settings).replace('\t', ' '))
        lines.append('\t'.join(cells))
    return '\n'.join(lines)


def write_tsv(text: str, destination: str | Path) -> None:
    """Writes exported text to a file, or to stdout for '-'."""
    if str(destination) == '-':
        sys.stdout.write(text + '\n')
        return
    try:
        Path(destination).write_text(text + '\n', encoding='utf-8')
    except OSError as e:
        raise ExportError(f'Could not write {destination}. You can still copy from the printed table. Details: {e}') from e


def find_writable_filename(output_path: str | Path) -> Path:
    """
    Checks if a file is writable. If not, finds a unique alternative.

    If the target file is locked (e.g., open in Excel), it will append a
    counter to the filename (e.g., 'file (1).xlsx') until it finds an
    available path, trying at most MAX_FILENAME_ATTEMPTS names.

    Raises:
        ExportError: If no candidate is writable, or an unexpected error
                     other than PermissionError occurs.
    """
    path: Path = Path(output_path)
    counter: int = 0
    candidate: Path = path
    while counter < MAX_FILENAME_ATTEMPTS:
        try:
            with open(candidate, 'a'):
                pass
            if candidate != path:
                logger.warning('%s is open or not writable; saving as %s instead.', path, candidate)
            return candidate
        except PermissionError:
            counter += 1
            candidate = path.with_name(f'{path.stem} ({counter}){path.suffix}')
        except OSError as e:
            raise ExportError(f'Could not secure a writable output file {path}. Details: {e}') from e
    raise ExportError(f'Could not secure a writable output file {path}: '
                      f'{MAX_FILENAME_ATTEMPTS} candidate names were not writable.')


def records_frame(records: DailyRecords, settings: ViewerConfig = DEFAULT_CONFIG) -> pd.DataFrame:
    """Daily records as a frame of display values; floats stay numeric."""
    data: list[list] = []
    for row in records.rows:
        data.append([cell if isinstance(cell, float) else cell_to_display_string(header, cell, settings)
                     for header, cell in zip(records.headers, row)])
    # Column labels may repeat; keep them positional until writing
    return pd.DataFrame(data, columns=range(len(records.headers)))


def create_sheet(records: DailyRecords,
                 mismatches: list[bool],
                 diagnostics: list[Diagnostic],
                 output_filename: str | Path = 'timesheet_days.xlsx',
                 settings: ViewerConfig = DEFAULT_CONFIG) -> Path:
    """
    Writes the daily records to a formatted Excel sheet.

    - Header styles (color, font), cell borders and alignment.
    - Ist cells of mismatching days are highlighted red.
    - Days with diagnostics get a comment on their first cell, matched by
      date (or row number for files without dates).
    - Column widths are adjusted and the header row is frozen.

    Args:
        records: The daily records of the selected period.
        mismatches: Per row, whether the day's Ist mismatches its intervals.
        diagnostics: Diagnostics of the period, attached as comments.
        output_filename: The name of the output Excel file.
        settings: Display window settings.

    Returns:
        The path the workbook was written to.

    Raises:
        ExportError: If the workbook cannot be written.
    """
    final_output_path: Path = find_writable_filename(output_filename)

    header_fill = PatternFill(start_color='3A3838', end_color='3A3838', fill_type='solid')
    header_font = Font(color='FFFFFF', bold=True)
    flag_fill = PatternFill(start_color='FFC7CE', end_color='FFC7CE', fill_type='solid')
    flag_font = Font(color='9C0006')
    thin_border_side = Side(style='thin', color='A6A6A6')
    cell_border = Border(left=thin_border_side, right=thin_border_side, top=thin_border_side, bottom=thin_border_side)
    center_align = Alignment(horizontal='center', vertical='center')

    df = records_frame(records, settings)
    names = [normalize_header(header) for header in records.headers]
    ist_col = names.index(config.ACTUAL_HEADER) + 1 if config.ACTUAL_HEADER in names else None

    notes: dict[date | int, list[str]] = {}
    for diagnostic in diagnostics:
        notes.setdefault(diagnostic.key, []).append(diagnostic.message)

    try:
        with pd.ExcelWriter(final_output_path, engine='openpyxl') as writer:
            sheet_name = 'Days'
            df.to_excel(writer, sheet_name=sheet_name, index=False, header=records.headers)
            worksheet = writer.sheets[sheet_name]

            for row_idx in range(1, worksheet.max_row + 1):
                is_header = (row_idx == 1)
                for col_idx in range(1, worksheet.max_column + 1):
                    cell = worksheet.cell(row=row_idx, column=col_idx)
                    cell.border = cell_border
                    if is_header:
                        cell.fill = header_fill
                        cell.font = header_font
                        cell.alignment = center_align
                    elif isinstance(cell.value, float):
                        cell.number_format = '0.00'
                        cell.alignment = center_align

            # Mismatch flags override the base formatting
            if ist_col is not None:
                for row_pos, mismatch in enumerate(mismatches):
                    if mismatch:
                        cell = worksheet.cell(row=row_pos + 2, column=ist_col)
                        cell.fill = flag_fill
                        cell.font = flag_font

            for row_pos, key in enumerate(records.keys):
                if key in notes:
                    comment_text = '\n'.join(notes[key])
                    n_lines = len(comment_text.splitlines())
                    worksheet.cell(row=row_pos + 2, column=1).comment = Comment(
                        comment_text, 'timesheet-viewer', height=n_lines * 20 + 20, width=260)

            for i, header in enumerate(records.headers, 1):
                column_letter = get_column_letter(i)
                max_length = max([len(header)] + [len(str(value)) for value in df[i - 1]])
                worksheet.column_dimensions[column_letter].width = min(max_length + 4, 60)

            worksheet.freeze_panes = 'B2'
    except OSError as e:
        raise ExportError(f'Could not write {final_output_path}. Details: {e}') from e

    logger.info('Daily records written to %s.', final_output_path)
    return final_output_path
