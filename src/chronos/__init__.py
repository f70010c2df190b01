"""chronos — Convert decimal-hour columns in CSV and XLSX tables to HH:MM."""

__version__ = "0.3.0"

SAMPLE_ROWS: int = 10
"""Data rows inspected per column when suggesting decimal-hour columns."""

HEADER_SEARCH_LIMIT: int = 20
"""Leading spreadsheet rows searched for the header row."""

MAX_DECIMAL_HOURS: float = 10000
CLOCK_HEADER_SUFFIX: str = " (HH:MM)"
OUTPUT_SUFFIX: str = "_converted"
PROGRESS_CAPACITY: int = 100
MAX_BATCH_FILES: int = 3
