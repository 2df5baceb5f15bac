import csv
import io
import logging
import re
from pathlib import Path

import pandas as pd

logger = logging.getLogger(__name__)

CANDIDATE_DELIMITERS: str = ',;\t|'
DEFAULT_DELIMITER: str = ','
SNIFF_SAMPLE_SIZE: int = 64 * 1024

_QUOTED_RE = re.compile(r'"[^"]*"')


class MalformedFileError(ValueError):
    """The input could not be read as a delimited table. The message is user-facing."""


def detect_delimiter(text: str) -> str:
    """
    Guesses the delimiter of a delimited text buffer.

    Falls back to a comma when no candidate can be detected (e.g. a file with
    a single column); an undetectable delimiter is not an error.
    """
    try:
        dialect = csv.Sniffer().sniff(text[:SNIFF_SAMPLE_SIZE], delimiters=CANDIDATE_DELIMITERS)
    except csv.Error:
        logger.debug('Delimiter undetectable, falling back to %r.', DEFAULT_DELIMITER)
        return DEFAULT_DELIMITER
    return dialect.delimiter


def count_columns(text: str, delimiter: str) -> int:
    """Widest row of the buffer, not counting delimiters inside quoted cells."""
    return max((_QUOTED_RE.sub('', line).count(delimiter) + 1 for line in text.splitlines() if line), default=0)


def parse_csv_text(text: str) -> list[list[str]]:
    """
    Splits a delimited text buffer into rows of raw cell text.

    Rows whose cells are all blank are skipped. Ragged rows are read at the
    width of the widest row; missing cells are empty strings.

    Args:
        text: The complete file contents.

    Returns:
        A list of rows, each a list of cell strings.

    Raises:
        MalformedFileError: If the buffer cannot be tokenized.
    """
    delimiter = detect_delimiter(text)
    width = count_columns(text, delimiter)
    if width == 0:
        return []

    try:
        df_raw: pd.DataFrame = pd.read_csv(io.StringIO(text), sep=delimiter, header=None,
                                           names=list(range(width)), dtype=str, keep_default_na=False,
                                           skip_blank_lines=True, index_col=False)
    except pd.errors.EmptyDataError:
        return []
    except (pd.errors.ParserError, csv.Error) as e:
        raise MalformedFileError(f'Unable to parse CSV. Details: {e}') from e

    rows: list[list[str]] = df_raw.fillna('').values.tolist()
    return [row for row in rows if any(cell.strip() for cell in row)]


def read_text(path: Path) -> str:
    raw: bytes = path.read_bytes()
    try:
        return raw.decode('utf-8-sig')
    except UnicodeDecodeError:
        # Spreadsheet exports on Windows are often cp1252
        return raw.decode('cp1252', errors='replace')


def read_input_file(file_path: str | Path) -> tuple[list[list[str]], list[str]]:
    """
    Reads a delimited attendance export from disk.

    Args:
        file_path: The path to the input file (.csv or .txt).

    Returns:
        A tuple containing:
        - The raw rows of the file.
        - A list of log messages generated during reading.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file format is unsupported.
        MalformedFileError: If the file cannot be tokenized.
    """
    path: Path = Path(file_path)
    file_suffix: str = path.suffix.lower()
    logs: list[str] = []

    if file_suffix not in ['.csv', '.txt']:
        raise ValueError(f'Unsupported file format: {file_suffix=}. Please use a .csv file.')

    text = read_text(path)
    rows = parse_csv_text(text)
    logs.append(f'Read {len(rows)} non-empty row(s) from {path.name}.')
    return rows, logs
