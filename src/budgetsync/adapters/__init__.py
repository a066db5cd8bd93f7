"""Adapters connecting the pipeline ports to files and external systems."""

from budgetsync.adapters.csv_export import CSVExportSubmissionPort
from budgetsync.adapters.csv_source import CSVTransactionSource

__all__ = ["CSVExportSubmissionPort", "CSVTransactionSource"]
