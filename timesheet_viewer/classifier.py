import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum

from timesheet_viewer import config
from timesheet_viewer.cells import TypedScalar
from timesheet_viewer.grouping import DayRecord

logger = logging.getLogger(__name__)


class DayCategory(Enum):
    KRANKENSTAND = 'Krankenstand'
    URLAUB = 'Urlaub'
    NON_WORK_DAY = 'Non-work day'
    OFFICE = 'Office'
    HOME = 'Home'
    OTHER = 'Other'
    UNCLASSIFIED = ''

    @property
    def label(self) -> str:
        return self.value

    @property
    def is_counted(self) -> bool:
        """Whether days of this category count as days with Ist entries."""
        return self not in (DayCategory.NON_WORK_DAY, DayCategory.UNCLASSIFIED)


@dataclass(frozen=True)
class Diagnostic:
    """
    A data-quality note about one day, keyed into DIAGNOSTIC_CONFIG. Rows of a
    file that could not be grouped by date carry their 1-based row number
    instead of a date.
    """
    day: date | None
    kind: str
    codes: tuple[str, ...] = ()
    row: int | None = None

    @property
    def key(self) -> date | int | None:
        return self.day if self.day is not None else self.row

    @property
    def label(self) -> str:
        return self.day.isoformat() if self.day is not None else f'row-{self.row}'

    @property
    def crucial(self) -> bool:
        return config.DIAGNOSTIC_CONFIG[self.kind]['crucial']

    @property
    def message(self) -> str:
        text = config.DIAGNOSTIC_CONFIG[self.kind]['text']
        if not self.codes:
            return f'{self.label}: {text}'
        codes = ', '.join(code or 'empty' for code in self.codes)
        return f'{self.label}: {text} (ABW codes: {codes})'


@dataclass(frozen=True)
class Classification:
    category: DayCategory
    diagnostic: Diagnostic | None = None


def classify_day(day: DayRecord) -> Classification:
    """
    Assigns a day exactly one category. The first matching rule wins:

    1.  Target hours present and every numeric entry coded sick leave -> Krankenstand.
    2.  Every numeric entry coded vacation -> Urlaub.
    3.  A single numeric entry without code on a holiday-marked day -> Non-work day.
    4.  Any entry (numeric or not) without code -> Office.
    5.  Only remote-work and partial-leave codes, at least one remote -> Home.
    6.  Anything else -> Other, with a diagnostic naming the codes.

    Days without any numeric Ist entry are unclassified.

    Args:
        day: The grouped day to classify.

    Returns:
        The category, plus a Diagnostic when the category is Other.
    """
    numeric_codes: list[str] = [entry.absence_code for entry in day.numeric_entries]
    if not numeric_codes:
        return Classification(DayCategory.UNCLASSIFIED)

    all_codes: list[str] = day.absence_codes

    if day.has_target and all(code == config.SICK_CODE for code in numeric_codes):
        return Classification(DayCategory.KRANKENSTAND)

    if all(code == config.VACATION_CODE for code in numeric_codes):
        return Classification(DayCategory.URLAUB)

    if len(numeric_codes) == 1 and numeric_codes[0] == '' and day.has_holiday_marker:
        return Classification(DayCategory.NON_WORK_DAY)

    if '' in numeric_codes or '' in all_codes:
        return Classification(DayCategory.OFFICE)

    if is_remote_only(all_codes):
        return Classification(DayCategory.HOME)

    diagnostic = Diagnostic(day=day.date, kind='unclassified_codes', codes=tuple(numeric_codes))
    logger.warning('[Timesheets] %s', diagnostic.message)
    return Classification(DayCategory.OTHER, diagnostic)


def is_remote_only(codes: list[str]) -> bool:
    """Remote work on the day and nothing but remote work or partial leave."""
    return (config.HOME_CODE in codes and
            all(code in (config.HOME_CODE, config.PARTIAL_LEAVE_CODE) for code in codes))


def classify_row(row_number: int, actual: TypedScalar, code: str, has_target: bool) -> Classification:
    """
    Classifies one row of a file that could not be grouped by date.

    Such a row has a single absence code instead of sub-entries: no code is
    Office, remote work is Home, sick leave with target hours is Krankenstand
    and vacation is Urlaub. Anything else with a numeric Ist is Other; rows
    without a numeric Ist are unclassified.
    """
    if not isinstance(actual, float):
        return Classification(DayCategory.UNCLASSIFIED)
    if code == '':
        return Classification(DayCategory.OFFICE)
    if code == config.HOME_CODE:
        return Classification(DayCategory.HOME)
    if code == config.SICK_CODE and has_target:
        return Classification(DayCategory.KRANKENSTAND)
    if code == config.VACATION_CODE:
        return Classification(DayCategory.URLAUB)

    diagnostic = Diagnostic(day=None, kind='unclassified_codes', codes=(code,), row=row_number)
    logger.warning('[Timesheets] %s', diagnostic.message)
    return Classification(DayCategory.OTHER, diagnostic)
