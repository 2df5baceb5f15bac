from dataclasses import dataclass
from enum import Enum

# ==============================================================================
# HEADER VOCABULARY
# Normalized (trimmed, lower-case) header names of the attendance export.
# ==============================================================================
DATE_HEADER: str = 'datum'
ARRIVAL_HEADER: str = 'kommt'
DEPARTURE_HEADER: str = 'geht'
ABSENCE_HEADER: str = 'abw'
TARGET_HEADER: str = 'soll'
ACTUAL_HEADER: str = 'ist'
PAID_BREAK_HEADER: str = 'pause bez.'
UNPAID_BREAK_HEADER: str = 'pause nicht bez.'
TOTAL_HEADER_PREFIX: str = 'gesamt'
ROW_KIND_HEADER: str = 'zeile'
WEEKDAY_HEADER: str = 'wt'
# The export leaves the holiday-marker column unnamed; it is the 18th column.
HOLIDAY_MARKER_HEADER: str = 'column 18'
TIMELINE_HEADER: str = 'Timeline'

# Literal value of the row-kind column on whole-day rows.
DAY_ROW_MARKER: str = 'Tag'

# Columns whose values are collected per sub-entry instead of once per day.
MULTI_VALUE_HEADERS: frozenset[str] = frozenset({
    ARRIVAL_HEADER, DEPARTURE_HEADER, ABSENCE_HEADER, PAID_BREAK_HEADER, UNPAID_BREAK_HEADER,
})

# ==============================================================================
# ABSENCE CODES
# ==============================================================================
HOME_CODE: str = 'home_hrs'
PARTIAL_LEAVE_CODE: str = 'p'
SICK_CODE: str = 'KB'
VACATION_CODE: str = 'U'

# ==============================================================================
# DIAGNOSTIC CONFIGURATION
#
# Properties:
#   - text: The user-facing message attached to the diagnostic.
#   - crucial: (bool) If True, the day needs manual review.
# ==============================================================================
DIAGNOSTIC_CONFIG: dict[str, dict] = {
    'unclassified_codes': {
        'text': 'REVIEW: Day classified as Other.',
        'crucial': True
    },
    'ist_mismatch': {
        'text': 'REVIEW: Ist differs from recorded intervals.',
        'crucial': True
    },
}


class BreakUnit(str, Enum):
    """Unit the export uses for the paid/unpaid break columns."""
    HOURS = 'hours'
    MINUTES = 'minutes'


class EligibilityRule(str, Enum):
    """
    Which days count towards the home-office tax deduction.

    - CATEGORY: days classified as Home.
    - SEGMENTS: days whose sub-entries are all remote work or partial leave,
      with at least one remote-work entry.
    """
    CATEGORY = 'category'
    SEGMENTS = 'segments'


@dataclass(frozen=True)
class ViewerConfig:
    """
    Settings threaded explicitly through the timeline, statistics and view
    functions. Times are minutes since midnight.
    """
    window_start: int = 8 * 60
    window_end: int = 18 * 60
    mismatch_tolerance: float = 0.01
    tax_rate_per_day: float = 3.0
    tax_max_days: int = 100
    break_unit: BreakUnit = BreakUnit.HOURS
    eligibility_rule: EligibilityRule = EligibilityRule.CATEGORY

    def break_to_hours(self, value: float) -> float:
        if self.break_unit is BreakUnit.MINUTES:
            return value / 60.0
        return value


DEFAULT_CONFIG = ViewerConfig()
