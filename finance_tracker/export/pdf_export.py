"""
PDF Report Export

A "Financial Report" with the generation date and one table per
transaction kind that has records. Kinds without records are skipped.
"""

from datetime import date
from io import BytesIO
from typing import Sequence

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from finance_tracker.models.records import (
    Expense,
    Income,
    Investment,
    TransactionRecord,
)


# (section title, label column header, header colour)
SECTIONS = [
    ("Expenses", "Category", colors.Color(66 / 255, 133 / 255, 244 / 255)),
    ("Income", "Source", colors.Color(52 / 255, 168 / 255, 83 / 255)),
    ("Investments", "Type", colors.Color(156 / 255, 39 / 255, 176 / 255)),
]


def _table_rows(
    records: Sequence[TransactionRecord],
    label_header: str,
    currency_symbol: str,
) -> list[list[str]]:
    rows = [["Date", "Description", label_header, "Amount"]]
    for record in records:
        rows.append([
            record.date.strftime("%b %d, %Y"),
            record.description or "-",
            record.group_label,
            f"{currency_symbol}{record.amount:.2f}",
        ])
    return rows


def _section_table(rows: list[list[str]], header_color) -> Table:
    table = Table(rows, repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), header_color),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("ALIGN", (-1, 1), (-1, -1), "RIGHT"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
    ]))
    return table


def export_pdf(
    expenses: Sequence[Expense],
    income: Sequence[Income],
    investments: Sequence[Investment],
    generated_on: date,
    currency_symbol: str = "Rs. ",
) -> bytes:
    """Render the report and return the PDF bytes."""
    styles = getSampleStyleSheet()
    story = [
        Paragraph("Financial Report", styles["Title"]),
        Paragraph(f"Generated on {generated_on.strftime('%b %d, %Y')}", styles["Normal"]),
        Spacer(1, 12),
    ]

    for (title, label_header, color), records in zip(SECTIONS, (expenses, income, investments)):
        if not records:
            continue
        story.append(Paragraph(title, styles["Heading2"]))
        story.append(_section_table(_table_rows(records, label_header, currency_symbol), color))
        story.append(Spacer(1, 15))

    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, title="Financial Report")
    doc.build(story)
    return buffer.getvalue()


def pdf_filename(today: date) -> str:
    return f"financial-report-{today.isoformat()}.pdf"
