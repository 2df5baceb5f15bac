import argparse
import logging
import sys
from pathlib import Path

from timesheet_viewer.cells import format_number
from timesheet_viewer.config import BreakUnit, EligibilityRule, ViewerConfig
from timesheet_viewer.export import ExportError, create_sheet, to_tsv, write_tsv
from timesheet_viewer.pipeline import Summary, TimesheetData, load_rows, summarize
from timesheet_viewer.reader import read_input_file
from timesheet_viewer.stats import Selection, ViewMode, default_selection

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='timesheet-viewer',
        description='Summarize a daily attendance export: hours, home-office share, tax deduction, data-quality flags.')
    parser.add_argument('file', type=Path, help='Delimited attendance export (.csv)')
    parser.add_argument('--view', choices=[mode.value for mode in ViewMode], default=ViewMode.COMPLETE.value,
                        help='Slice to summarize (default: complete)')
    parser.add_argument('--year', type=int, help='Year for --view year (default: latest)')
    parser.add_argument('--month', help="Month for --view month as 'YYYY-MM' (default: latest)")
    parser.add_argument('--rule', choices=[rule.value for rule in EligibilityRule],
                        default=EligibilityRule.CATEGORY.value, help='Home-office tax eligibility rule')
    parser.add_argument('--break-unit', choices=[unit.value for unit in BreakUnit], default=BreakUnit.HOURS.value,
                        help='Unit of the break columns in the export')
    parser.add_argument('--tsv', metavar='PATH', help="Export the first two visible columns as TSV ('-' for stdout)")
    parser.add_argument('--xlsx', metavar='PATH', help='Export the daily records as a formatted Excel sheet')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    return parser


def resolve_selection(data: TimesheetData, args: argparse.Namespace) -> Selection:
    mode = ViewMode(args.view)
    selection = default_selection(data.days, mode)
    if mode is ViewMode.YEAR and args.year is not None:
        return Selection(mode, year=args.year)
    if mode is ViewMode.MONTH and args.month:
        return Selection(mode, month=args.month)
    return selection


def print_summary(summary: Summary) -> None:
    stats = summary.stats
    print(f'Date range: {summary.date_range}')
    print(f'Days: {stats.days_with_ist_entries}  Office: {stats.office_days}  Home: {stats.home_office_days}  '
          f'Krankenstand: {stats.sick_days}  Urlaub: {stats.vacation_days}')
    print(f'Soll: {format_number(stats.total_soll)} h  Ist: {format_number(stats.total_ist)} h')
    print(f'% Home Hours (strict): {stats.home_office_share_strict * 100:.1f}%  '
          f'(optimistic): {stats.home_office_share_optimistic * 100:.1f}%')
    print(f'Tax: {stats.tax_eligible_days} eligible day(s), {format_number(stats.tax_deduction)} EUR')
    for bucket in stats.buckets:
        print(f'  {bucket.label:<9} {bucket.minutes // 60}:{bucket.minutes % 60:02d}  {bucket.proportion * 100:5.1f}%')
    for column in summary.constant_columns:
        print(f'  {column.header}: {column.value}')
    for diagnostic in stats.diagnostics:
        print(f'  {diagnostic.message}')


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')
    settings = ViewerConfig(break_unit=BreakUnit(args.break_unit), eligibility_rule=EligibilityRule(args.rule))

    try:
        raw_rows, logs = read_input_file(args.file)
        for log_message in logs:
            print(log_message)
        data = load_rows(raw_rows, args.file.name, settings)
    except (ValueError, FileNotFoundError) as e:
        # MalformedFileError is a ValueError
        print(f'Error: Could not read input file. Details: {e}', file=sys.stderr)
        return 1

    summary = summarize(data, resolve_selection(data, args), settings)
    print_summary(summary)

    try:
        if args.tsv:
            write_tsv(to_tsv(summary.period, settings=settings), args.tsv)
        if args.xlsx:
            path = create_sheet(summary.records, summary.stats.mismatches, summary.stats.diagnostics,
                                args.xlsx, settings)
            print(f'Daily records saved to {path}')
    except ExportError as e:
        print(f'Export failed: {e}', file=sys.stderr)
    return 0


if __name__ == '__main__':
    sys.exit(main())
