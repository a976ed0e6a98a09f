"""Excel and PDF rendering

Workbooks are built with openpyxl (styled header row, merged title, column
widths), PDFs with reportlab platypus tables whose header repeats on every
page.
"""

from io import BytesIO
from typing import Any, Iterable, Sequence
from fastapi import Response
from openpyxl import Workbook, load_workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_MEDIA_TYPE = "application/pdf"

HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True, size=11)
TOTAL_FONT = Font(bold=True)
THIN_BORDER = Border(
    left=Side(style="thin"), right=Side(style="thin"),
    top=Side(style="thin"), bottom=Side(style="thin")
)
MONEY_FORMAT = "#,##0.00"


def build_workbook(
    title: str,
    headers: Sequence[str],
    rows: Iterable[Sequence[Any]],
    widths: Sequence[int] | None = None,
    totals: Sequence[Any] | None = None,
    sheet_name: str = "Report",
    money_columns: Sequence[int] = (),
) -> bytes:
    """Render a single-sheet report; ``money_columns`` are 1-based"""
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name[:31]

    ws.cell(row=1, column=1, value=title).font = Font(bold=True, size=14)
    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=max(len(headers), 1))

    header_row = 3
    for c, h in enumerate(headers, 1):
        cell = ws.cell(row=header_row, column=c, value=h)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        cell.border = THIN_BORDER

    r = header_row
    for r, values in enumerate(rows, header_row + 1):
        for c, v in enumerate(values, 1):
            cell = ws.cell(row=r, column=c, value=v)
            cell.border = THIN_BORDER
            if c in money_columns:
                cell.number_format = MONEY_FORMAT

    if totals is not None:
        r += 1
        for c, v in enumerate(totals, 1):
            cell = ws.cell(row=r, column=c, value=v)
            cell.font = TOTAL_FONT
            cell.border = THIN_BORDER
            if c in money_columns:
                cell.number_format = MONEY_FORMAT

    for i, w in enumerate(widths or [18] * len(headers), 1):
        ws.column_dimensions[get_column_letter(i)].width = w
    ws.freeze_panes = ws.cell(row=header_row + 1, column=1)

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def build_template(headers: Sequence[str], sample: Sequence[Any] | None = None) -> bytes:
    """Blank upload template with a header row and an optional sample row"""
    wb = Workbook()
    ws = wb.active
    ws.title = "Template"
    for c, h in enumerate(headers, 1):
        cell = ws.cell(row=1, column=c, value=h)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        ws.column_dimensions[get_column_letter(c)].width = max(len(h) + 4, 14)
    if sample:
        for c, v in enumerate(sample, 1):
            ws.cell(row=2, column=c, value=v)

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def read_workbook_rows(content: bytes) -> list[dict[str, Any]]:
    """Rows of the first sheet keyed by the header row; blank rows skipped"""
    wb = load_workbook(BytesIO(content), read_only=True, data_only=True)
    ws = wb.worksheets[0]
    rows = ws.iter_rows(values_only=True)
    try:
        header = next(rows)
    except StopIteration:
        return []
    keys = [str(h).strip() if h is not None else "" for h in header]

    records = []
    for values in rows:
        if values is None or all(v is None or str(v).strip() == "" for v in values):
            continue
        records.append({k: v for k, v in zip(keys, values) if k})
    wb.close()
    return records


def build_pdf(
    title: str,
    info_lines: Sequence[str],
    headers: Sequence[str],
    rows: Sequence[Sequence[Any]],
    col_widths: Sequence[int] | None = None,
    totals: Sequence[Any] | None = None,
    wide: bool = False,
) -> bytes:
    buffer = BytesIO()
    pagesize = landscape(A4) if wide else A4
    doc = SimpleDocTemplate(
        buffer, pagesize=pagesize, leftMargin=30, rightMargin=30, topMargin=30, bottomMargin=30
    )
    styles = getSampleStyleSheet()
    elements = [Paragraph(title, styles["Title"])]
    for line in info_lines:
        elements.append(Paragraph(line, styles["Normal"]))
    elements.append(Spacer(1, 12))

    data = [list(headers)] + [["" if v is None else str(v) for v in row] for row in rows]
    if totals is not None:
        data.append(["" if v is None else str(v) for v in totals])

    table = Table(data, colWidths=col_widths, repeatRows=1)
    style = [
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#4472C4")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("ALIGN", (0, 0), (-1, 0), "CENTER"),
        ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#9ca3af")),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f3f4f6")]),
    ]
    if totals is not None:
        style.append(("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"))
    table.setStyle(TableStyle(style))
    elements.append(table)

    doc.build(elements)
    return buffer.getvalue()


def attachment(content: bytes, filename: str, media_type: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def xlsx_response(content: bytes, filename: str) -> Response:
    return attachment(content, filename, XLSX_MEDIA_TYPE)


def pdf_response(content: bytes, filename: str) -> Response:
    return attachment(content, filename, PDF_MEDIA_TYPE)
