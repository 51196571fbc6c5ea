"""CSV score report: one header line and one row per pupil.

The file starts with a UTF-8 byte-order mark so that spreadsheet software
opens the accented headers correctly, and uses LF line endings.
"""

import csv
import io

from comprehension.schemas import ReportData

BOM = "\ufeff"
CSV_MEDIA_TYPE = "text/csv; charset=utf-8"

HEADERS = (
    "Student_First_Name",
    "Student_Last_Name",
    "Score littéral",
    "Score inférentiel",
    "Score évaluatif",
    "Score total",
)


def build_csv(report: ReportData) -> str:
    """Renders the report as CSV text, BOM included."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(HEADERS)
    writer.writerow(
        (
            report.first_name,
            report.last_name,
            report.literal,
            report.inferential,
            report.evaluative,
            report.total,
        )
    )
    # No trailing newline after the single data row.
    return BOM + buffer.getvalue().rstrip("\n")


def report_filename(report: ReportData) -> str:
    """Returns ``Rapport_<lastName>_<firstName>.csv``."""
    return f"Rapport_{report.last_name}_{report.first_name}.csv"
