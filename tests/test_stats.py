"""
Unit tests for aggregate statistics
"""
import unittest
from datetime import date

from timesheet_viewer.classifier import DayCategory
from timesheet_viewer.config import BreakUnit, EligibilityRule, ViewerConfig
from timesheet_viewer.grouping import DayRecord
from timesheet_viewer.stats import (Selection, ViewMode, available_months, available_years, calculate_stats,
                                    date_range_label, default_selection, expected_ist, home_office_hours,
                                    ist_mismatch, select_days, tax_deduction)

from tests.fixtures import day, entry


def week():
    """Office, home, sick, vacation, home with partial leave, then an empty gap day."""
    return [
        day([entry('08:00', '16:00', ist=8.0)], on=date(2024, 3, 4), target=8.0),
        day([entry('08:00', '16:00', 'home_hrs', ist=8.5, paid_break=0.5)], on=date(2024, 3, 5), target=8.0),
        day([entry('08:00', '16:00', 'KB', ist=8.0)], on=date(2024, 3, 6), target=8.0),
        day([entry('08:00', '16:00', 'U', ist=8.0)], on=date(2024, 3, 7), target=8.0),
        day([entry('08:00', '12:00', 'home_hrs', ist=4.0), entry('12:00', '16:00', 'p', ist=4.0, paid_break=0.25)],
            on=date(2024, 3, 8), target=8.0),
        DayRecord(date=date(2024, 3, 9)),
    ]


class TestIstMismatch(unittest.TestCase):
    """Test cases for the Ist plausibility check"""

    def test_declared_more_than_recorded(self):
        """Test that 8.5 declared against 8.0 recorded is flagged"""
        self.assertTrue(ist_mismatch(day([entry('08:00', '16:00', ist=8.5)], target=8.0)))

    def test_matching_day(self):
        """Test that a day whose Ist equals its interval is not flagged"""
        self.assertFalse(ist_mismatch(day([entry('08:00', '16:00', ist=8.0)], target=8.0)))

    def test_within_tolerance(self):
        """Test that differences up to 0.01 h are accepted"""
        self.assertFalse(ist_mismatch(day([entry('08:00', '16:00', ist=8.005)], target=8.0)))

    def test_paid_break_is_added(self):
        """Test that the paid break counts towards the recorded hours"""
        self.assertFalse(ist_mismatch(day([entry('08:00', '16:00', ist=8.5, paid_break=0.5)], target=8.0)))

    def test_break_in_minutes(self):
        """Test the break unit setting"""
        sample = day([entry('08:00', '16:00', ist=8.5, paid_break=30.0)], target=8.0)
        self.assertFalse(ist_mismatch(sample, ViewerConfig(break_unit=BreakUnit.MINUTES)))
        self.assertTrue(ist_mismatch(sample))

    def test_durations_are_not_clipped(self):
        """Test that intervals outside the display window count in full"""
        self.assertFalse(ist_mismatch(day([entry('06:00', '19:00', ist=13.0)], target=8.0)))

    def test_holiday_uses_credited_hours(self):
        """Test that on holidays only the marked entries count"""
        sample = day([entry(ist=8.0, holiday='Feiertag'), entry('08:00', '10:00')])
        self.assertEqual(expected_ist(sample), 8.0)
        self.assertFalse(ist_mismatch(sample))

    def test_day_without_ist(self):
        """Test that days without a declared Ist are never flagged"""
        self.assertFalse(ist_mismatch(day([entry('08:00', '16:00')], target=8.0)))
        self.assertFalse(ist_mismatch(DayRecord(date=date(2024, 3, 9))))


class TestCalculateStats(unittest.TestCase):
    """Test cases for calculate_stats"""

    def setUp(self):
        self.days = week()
        self.stats = calculate_stats(self.days)

    def test_day_counts(self):
        """Test the per-category day counts"""
        self.assertEqual(self.stats.dates_with_entries, 6)
        self.assertEqual(self.stats.days_with_ist_entries, 5)
        self.assertEqual(self.stats.office_days, 1)
        self.assertEqual(self.stats.home_office_days, 2)
        self.assertEqual(self.stats.sick_days, 1)
        self.assertEqual(self.stats.vacation_days, 1)
        self.assertEqual(self.stats.other_days, 0)
        self.assertEqual(self.stats.categories[-1], DayCategory.UNCLASSIFIED)

    def test_totals(self):
        """Test Soll and Ist totals; Ist includes paid breaks"""
        self.assertAlmostEqual(self.stats.total_soll, 40.0)
        self.assertAlmostEqual(self.stats.total_ist, 40.5 + 0.75)
        self.assertEqual(self.stats.total_p_entries, 1)
        self.assertAlmostEqual(self.stats.recorded_hours.home, 12.5)
        self.assertAlmostEqual(self.stats.recorded_hours.office, 8.0)
        self.assertAlmostEqual(self.stats.recorded_hours.paid_break, 0.75)

    def test_minute_buckets(self):
        """Test clipped minutes per segment kind and their shares"""
        minutes = {bucket.label: bucket.minutes for bucket in self.stats.buckets}
        self.assertEqual(minutes, {'empty': 480, 'KB': 480, 'p': 240, 'home_hrs': 720})
        self.assertEqual(self.stats.total_tracked_minutes, 1920)
        self.assertAlmostEqual(sum(bucket.proportion for bucket in self.stats.buckets), 1.0)

    def test_home_office_shares(self):
        """Test strict and optimistic home-office shares"""
        self.assertAlmostEqual(self.stats.home_office_share_strict, 12.5 / 20.5)
        self.assertAlmostEqual(self.stats.home_office_share_optimistic, 12.5 / 36.75)
        self.assertLessEqual(self.stats.home_office_share_optimistic, self.stats.home_office_share_strict)

    def test_tax(self):
        """Test the deduction for the eligible days"""
        self.assertEqual(self.stats.tax_eligible_days, 2)
        self.assertAlmostEqual(self.stats.tax_deduction, 6.0)

    def test_mismatch_flags(self):
        """Test that only the day with an unexplained paid break is flagged"""
        self.assertEqual(self.stats.mismatches, [False, False, False, False, True, False])
        self.assertEqual([item.kind for item in self.stats.diagnostics], ['ist_mismatch'])
        self.assertEqual(self.stats.diagnostics[0].day, date(2024, 3, 8))

    def test_without_timeline_columns(self):
        """Test that files without a timeline report no minutes and no mismatches"""
        stats = calculate_stats(self.days, has_timeline=False)
        self.assertEqual(stats.total_tracked_minutes, 0)
        self.assertTrue(all(bucket.proportion == 0.0 for bucket in stats.buckets))
        self.assertFalse(any(stats.mismatches))
        self.assertEqual(stats.home_office_days, 2)

    def test_no_days(self):
        """Test that an empty selection yields zeros"""
        stats = calculate_stats([])
        self.assertEqual(stats.dates_with_entries, 0)
        self.assertEqual(stats.total_tracked_minutes, 0)
        self.assertEqual(stats.tax_deduction, 0.0)
        self.assertEqual(stats.home_office_share_strict, 0.0)
        self.assertEqual([bucket.proportion for bucket in stats.buckets], [0.0, 0.0, 0.0, 0.0])

    def test_segment_eligibility_rule(self):
        """Test that the segment rule counts remote intervals on office-classified days"""
        days = [day([entry('08:00', '12:00', 'home_hrs', ist=4.0), entry(unpaid_break=0.5)], target=8.0)]
        self.assertEqual(calculate_stats(days).tax_eligible_days, 0)
        settings = ViewerConfig(eligibility_rule=EligibilityRule.SEGMENTS)
        self.assertEqual(calculate_stats(days, settings).tax_eligible_days, 1)

    def test_home_office_hours(self):
        """Test unclipped home and office hours of a day"""
        sample = day([entry('07:00', '12:00', 'home_hrs', ist=9.0), entry('13:00', '17:00')])
        self.assertEqual(home_office_hours(sample), (5.0, 4.0))


class TestTaxDeduction(unittest.TestCase):
    """Test cases for tax_deduction"""

    def test_rate_per_day(self):
        """Test the flat rate per eligible day"""
        self.assertEqual(tax_deduction(0), 0.0)
        self.assertEqual(tax_deduction(10), 30.0)

    def test_capped(self):
        """Test that the deduction stops growing at 100 days"""
        self.assertEqual(tax_deduction(100), 300.0)
        self.assertEqual(tax_deduction(150), 300.0)

    def test_monotonic(self):
        """Test that more eligible days never lower the deduction"""
        values = [tax_deduction(days) for days in range(0, 130)]
        self.assertEqual(values, sorted(values))


class TestSelection(unittest.TestCase):
    """Test cases for period selection"""

    def setUp(self):
        self.days = [DayRecord(date=date(2023, 12, 31)), DayRecord(date=date(2024, 1, 1)),
                     DayRecord(date=date(2024, 2, 1))]

    def test_available_periods(self):
        """Test the years and months present in the data"""
        self.assertEqual(available_years(self.days), [2023, 2024])
        self.assertEqual(available_months(self.days), ['2023-12', '2024-01', '2024-02'])

    def test_default_is_latest(self):
        """Test that year and month views open on the latest period"""
        self.assertEqual(default_selection(self.days, ViewMode.YEAR), Selection(ViewMode.YEAR, year=2024))
        self.assertEqual(default_selection(self.days, ViewMode.MONTH), Selection(ViewMode.MONTH, month='2024-02'))
        self.assertEqual(default_selection([], ViewMode.MONTH), Selection(ViewMode.MONTH))

    def test_select_year(self):
        """Test that a year view keeps only that year"""
        selected = select_days(self.days, Selection(ViewMode.YEAR, year=2023))
        self.assertEqual([item.date for item in selected], [date(2023, 12, 31)])

    def test_select_month(self):
        """Test that a month view keeps only that month"""
        self.assertEqual(len(select_days(self.days, Selection(ViewMode.MONTH, month='2024-01'))), 1)

    def test_complete_and_unset_periods(self):
        """Test that complete views and views without a period keep everything"""
        self.assertEqual(len(select_days(self.days, Selection())), 3)
        self.assertEqual(len(select_days(self.days, Selection(ViewMode.MONTH))), 3)

    def test_date_range_label(self):
        """Test the range shown above the summary"""
        self.assertEqual(date_range_label(self.days), 'Dec 31, 2023 - Feb 01, 2024')
        self.assertEqual(date_range_label(self.days[:1]), 'Dec 31, 2023')
        self.assertEqual(date_range_label([]), 'No valid dates found')


if __name__ == '__main__':
    unittest.main()
