"""Excel export of surgical records."""

from collections.abc import Sequence
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from app.models.record import SurgicalRecord

RECORD_COLUMNS: list[tuple[str, str]] = [
    ("id", "ID"),
    ("date", "Date"),
    ("status", "Status"),
    ("patient_id", "Patient ID"),
    ("resident_id", "Resident"),
    ("residents_year", "Resident Year"),
    ("teacher_id", "Teacher"),
    ("surgery_name", "Surgery"),
    ("resident_judgment", "Resident Judgment"),
    ("teacher_judgment", "Teacher Judgment"),
    ("summary_scale", "Summary Scale"),
    ("percent_completed", "Completed (%)"),
    ("resident_comment", "Resident Comment"),
    ("feedback", "Teacher Feedback"),
]


class RecordExportService:
    """Builds a flat workbook: one row per record, steps and OSATs as extra columns."""

    def export_records(self, records: Sequence[SurgicalRecord]) -> bytes:
        wb = Workbook()
        ws = wb.active
        ws.title = "Records"

        # Styles
        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
        thin_border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )
        center_align = Alignment(horizontal='center', vertical='center')

        max_steps = max((len(r.steps) for r in records), default=0)
        max_osats = max((len(r.osats) for r in records), default=0)
        headers = self.build_headers(max_steps, max_osats)
        for col_idx, header in enumerate(headers, start=1):
            cell = ws.cell(row=1, column=col_idx, value=header)
            cell.font = header_font
            cell.fill = header_fill
            cell.border = thin_border
            cell.alignment = center_align
            ws.column_dimensions[get_column_letter(col_idx)].width = 20

        for row_idx, record in enumerate(records, start=2):
            values = self._row_values(record, max_steps, max_osats)
            for col_idx, value in enumerate(values, start=1):
                ws.cell(row=row_idx, column=col_idx, value=value).border = thin_border

        output = BytesIO()
        wb.save(output)
        output.seek(0)
        return output.getvalue()

    @staticmethod
    def build_headers(max_steps: int, max_osats: int) -> list[str]:
        headers = [label for _, label in RECORD_COLUMNS]
        for i in range(1, max_steps + 1):
            headers.extend([
                f"Step {i} Name",
                f"Step {i} Done (Resident)",
                f"Step {i} Done (Teacher)",
                f"Step {i} Score",
            ])
        for i in range(1, max_osats + 1):
            headers.extend([f"OSAT {i} Item", f"OSAT {i} Obtained"])
        return headers

    @staticmethod
    def _row_values(record: SurgicalRecord, max_steps: int, max_osats: int) -> list:
        values = []
        for key, _ in RECORD_COLUMNS:
            value = getattr(record, key)
            if key == "date" and value is not None:
                # openpyxl rejects tz-aware datetimes
                value = value.replace(tzinfo=None)
            elif hasattr(value, "value"):
                value = value.value
            values.append(value)

        for i in range(max_steps):
            if i < len(record.steps):
                step = record.steps[i]
                values.extend([step.name, step.resident_done, step.teacher_done, step.score.value])
            else:
                values.extend([None, None, None, None])
        for i in range(max_osats):
            if i < len(record.osats):
                osat = record.osats[i]
                values.extend([osat.item, osat.obtained])
            else:
                values.extend([None, None])
        return values
