"""CSV and PDF exports of transaction records."""

from finance_tracker.export.csv_export import (
    CSV_HEADER,
    csv_filename,
    csv_row,
    export_csv,
    format_amount,
)
from finance_tracker.export.pdf_export import export_pdf, pdf_filename

__all__ = [
    "CSV_HEADER",
    "csv_filename",
    "csv_row",
    "export_csv",
    "export_pdf",
    "format_amount",
    "pdf_filename",
]
