"""
CSV Export

One file covering all three transaction kinds, tagged by type:

    Type,Date,Description,Category/Source/Type,Amount
    Expense,2025-01-01,"lunch",Food,10

The description column is always quoted (it is free text); the other
columns are quoted only when they contain a delimiter or a quote.
Rows are expenses, then income, then investments, each in the order given.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Sequence

from finance_tracker.models.records import (
    Expense,
    Income,
    Investment,
    TransactionRecord,
)


CSV_HEADER = "Type,Date,Description,Category/Source/Type,Amount"


def _quoted(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def _field(value: str) -> str:
    if any(ch in value for ch in (',', '"', '\n', '\r')):
        return _quoted(value)
    return value


def format_amount(amount: Decimal) -> str:
    """Plain decimal without exponent or trailing zeros: 10, 10.5, 0.25."""
    return format(amount.normalize(), "f")


def csv_row(record: TransactionRecord) -> str:
    return ",".join([
        record.kind.display_name,
        record.date.isoformat(),
        _quoted(record.description or ""),
        _field(record.group_label),
        format_amount(record.amount),
    ])


def export_csv(
    expenses: Sequence[Expense],
    income: Sequence[Income],
    investments: Sequence[Investment],
) -> str:
    """Render all records as CSV text, header first, one line per record."""
    records: Iterable[TransactionRecord] = [*expenses, *income, *investments]
    lines = [CSV_HEADER]
    lines.extend(csv_row(record) for record in records)
    return "\n".join(lines) + "\n"


def csv_filename(today: date) -> str:
    return f"financial-data-{today.isoformat()}.csv"
