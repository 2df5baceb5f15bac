"""
Builders for attendance exports and grouped days used across the tests.
"""
from datetime import date

from timesheet_viewer.cells import TimeOfDay
from timesheet_viewer.grouping import DayRecord, SubEntry

# 18 columns; the last one is unnamed and carries the holiday marker
HEADERS = ['Zeile', 'Datum', 'WT', 'Kommt', 'Geht', 'Abw', 'Pause bez.', 'Pause nicht bez.',
           'Soll', 'Ist', 'Gesamt', 'Name', '', '', '', '', '', '']


def make_row(datum='', kommt='', geht='', abw='', pause_bez='', pause_nicht_bez='', soll='', ist='',
             gesamt='', wt='Mo', zeile='Tag', name='Muster', feiertag=''):
    return [zeile, datum, wt, kommt, geht, abw, pause_bez, pause_nicht_bez,
            soll, ist, gesamt, name, '', '', '', '', '', feiertag]


def make_csv(rows, delimiter=';'):
    lines = [delimiter.join(HEADERS)] + [delimiter.join(row) for row in rows]
    return '\n'.join(lines) + '\n'


def t(hhmm: str) -> TimeOfDay:
    hours, minutes = hhmm.split(':')
    return TimeOfDay(int(hours) * 60 + int(minutes))


def entry(start=None, end=None, code='', ist=None, paid_break=None, unpaid_break=None, holiday=None) -> SubEntry:
    return SubEntry(
        arrival=t(start) if start else None,
        departure=t(end) if end else None,
        absence=code or None,
        actual=ist,
        paid_break=paid_break,
        unpaid_break=unpaid_break,
        holiday_marker=holiday,
    )


def day(entries, on=date(2024, 3, 4), target=None, actual=None) -> DayRecord:
    entries = tuple(entries)
    if actual is None:
        numeric = [item.actual for item in entries if isinstance(item.actual, float)]
        actual = numeric[0] if numeric else None
    return DayRecord(date=on, has_target=target is not None, entries=entries, target=target, actual=actual)
