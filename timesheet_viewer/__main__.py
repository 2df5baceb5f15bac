import sys

from timesheet_viewer.cli import main

sys.exit(main())
