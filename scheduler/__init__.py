"""Background jobs: the overdue-order scanner that raises admin alerts."""

from scheduler.overdue_scanner import OverdueScanner, ScanReport

__all__ = ["OverdueScanner", "ScanReport"]
