__version__ = "20261018"

from timesheet_viewer.pipeline import Summary, TimesheetData, load_csv_text, load_rows, summarize
from timesheet_viewer.stats import Selection, ViewMode

__all__ = ['Summary', 'TimesheetData', 'Selection', 'ViewMode', 'load_csv_text', 'load_rows', 'summarize']
