# utils/kpi_tracking/export.py
"""
Formatted Excel Export for Plan Summaries

Two steps:
- build_table(): filtered plans -> row-oriented table model
  (title/info rows, two-level grouped header, one row per plan,
  signature footer, merged cells, column widths)
- PlanExport.create_workbook(): table model -> xlsx bytes via openpyxl

Money columns (CNTT revenue) are stored in VND and only scaled to millions
here, at format time.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from io import BytesIO
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from .constants import (
    EXCEL_STYLES,
    EXPORT_FILE_PREFIX,
    EXPORT_SHEET_NAME,
    EXPORT_TITLE,
    MONEY_DIVISOR,
    STATUS_LABELS,
)
from .filters import ExportFilter
from .models import to_number

logger = logging.getLogger(__name__)

# (plan column, header, width)
LEADING_COLUMNS = [
    (None, 'STT', 6),
    ('week_number', 'Tuần', 10),
    ('date', 'Ngày', 12),
    ('employee_name', 'Nhân viên', 22),
    ('area', 'Địa bàn', 16),
    ('collaborators', 'Phối hợp', 18),
    ('work_content', 'Nội dung', 40),
]

# (service key, group header)
SERVICE_GROUPS = [
    ('sim', 'SIM'),
    ('fiber', 'Fiber'),
    ('mytv', 'MyTV'),
    ('mesh_camera', 'Mesh/Camera'),
    ('cntt', 'CNTT'),
    ('revenue_cntt', 'DT CNTT (Tr)'),
    ('other_services', 'DV khác'),
]
SUB_HEADERS = ('Chỉ tiêu', 'Thực hiện')
SERVICE_COLUMN_WIDTH = 9
MONEY_KEYS = {'revenue_cntt'}

TRAILING_COLUMNS = [
    ('customers_contacted', 'KH Tiếp cận', 11),
    ('contracts_signed', 'HĐ Ký', 8),
    ('status', 'Trạng thái', 13),
    ('bonus_score', 'Điểm Cộng', 10),
    ('penalty_score', 'Điểm Trừ', 10),
    ('manager_comment', 'Nhận Xét Quản Lý', 36),
]

FOOTER_SIGNATURES = ('NGƯỜI LẬP BIỂU', 'TRƯỞNG ĐƠN VỊ')
FOOTER_NOTE = '(Ký, ghi rõ họ tên)'


def status_label(status: Any) -> Any:
    """Vietnamese label for a status code; unknown codes pass through."""
    return STATUS_LABELS.get(status, status)


def _text(value: Any) -> Any:
    if value is None or (isinstance(value, float) and value != value):
        return ''
    return value


def money_millions(value: Any) -> float:
    return round(to_number(value) / MONEY_DIVISOR, 1)


def sort_for_export(df: pd.DataFrame) -> pd.DataFrame:
    """Date ascending, then employee name ignoring case."""
    if df.empty:
        return df
    keyed = df.assign(
        _date_key=df['date'].fillna('').astype(str),
        _name_key=df['employee_name'].fillna('').astype(str).str.lower(),
    )
    keyed = keyed.sort_values(['_date_key', '_name_key'], kind='mergesort')
    return keyed.drop(columns=['_date_key', '_name_key'])


def day_boundaries(dates: List[Any]) -> List[bool]:
    """True where a row starts a new day compared with the previous row."""
    flags = []
    previous = object()
    for value in dates:
        flags.append(value != previous)
        previous = value
    return flags


def export_filename(flt: ExportFilter, prefix: str = EXPORT_FILE_PREFIX, today: date = None) -> str:
    return f"{prefix}_{flt.file_suffix(today)}.xlsx"


def _format_vi_date(d: date) -> str:
    return f"{d.day}/{d.month}/{d.year}"


@dataclass
class ExportTable:
    """
    Row-oriented sheet model; row/column numbers are 1-based.

    merges holds (start_row, start_col, end_row, end_col).
    """
    rows: List[List[Any]]
    merges: List[Tuple[int, int, int, int]]
    column_widths: List[int]
    header_rows: Tuple[int, int]
    data_start_row: int
    data_row_count: int
    day_start_rows: List[int] = field(default_factory=list)
    number_columns: List[int] = field(default_factory=list)
    money_columns: List[int] = field(default_factory=list)

    @property
    def column_count(self) -> int:
        return len(self.column_widths)

    @property
    def data_rows(self) -> List[List[Any]]:
        start = self.data_start_row - 1
        return self.rows[start:start + self.data_row_count]

    @property
    def footer_start_row(self) -> int:
        return self.data_start_row + self.data_row_count


def preview_headers() -> List[str]:
    """Single-row column labels for on-screen previews."""
    labels = [header for _, header, _ in LEADING_COLUMNS]
    for _, group in SERVICE_GROUPS:
        labels.extend([f"{group} CT", f"{group} KQ"])
    labels.extend(header for _, header, _ in TRAILING_COLUMNS)
    return labels


def _build_headers() -> Tuple[List[str], List[str], List[Tuple[int, int, int, int]], List[int], List[int], List[int]]:
    """Two header rows, their merges and per-column metadata."""
    top, bottom, widths = [], [], []
    merges = []
    number_cols, money_cols = [], []
    header_row = 4

    col = 1
    for _, header, width in LEADING_COLUMNS:
        top.append(header)
        bottom.append(None)
        widths.append(width)
        merges.append((header_row, col, header_row + 1, col))
        col += 1

    for key, group in SERVICE_GROUPS:
        top.extend([group, None])
        bottom.extend(SUB_HEADERS)
        widths.extend([SERVICE_COLUMN_WIDTH, SERVICE_COLUMN_WIDTH])
        merges.append((header_row, col, header_row, col + 1))
        if key in MONEY_KEYS:
            money_cols.extend([col, col + 1])
        else:
            number_cols.extend([col, col + 1])
        col += 2

    for column, header, width in TRAILING_COLUMNS:
        top.append(header)
        bottom.append(None)
        widths.append(width)
        merges.append((header_row, col, header_row + 1, col))
        if column in ('customers_contacted', 'contracts_signed', 'bonus_score', 'penalty_score'):
            number_cols.append(col)
        col += 1

    return top, bottom, merges, widths, number_cols, money_cols


def _plan_row(index: int, record: Dict[str, Any]) -> List[Any]:
    row = [index]
    for column, _, _ in LEADING_COLUMNS[1:]:
        row.append(_text(record.get(column)))
    for key, _ in SERVICE_GROUPS:
        target = record.get(f"{key}_target")
        result = record.get(f"{key}_result")
        if key in MONEY_KEYS:
            row.extend([money_millions(target), money_millions(result)])
        else:
            row.extend([to_number(target), to_number(result)])
    for column, _, _ in TRAILING_COLUMNS:
        value = record.get(column)
        if column == 'status':
            row.append(status_label(value))
        elif column in ('customers_contacted', 'contracts_signed', 'bonus_score', 'penalty_score'):
            row.append(to_number(value))
        else:
            row.append(_text(value))
    return row


def build_table(
    plans_df: pd.DataFrame,
    flt: Optional[ExportFilter] = None,
    sort: bool = True,
    today: date = None,
) -> ExportTable:
    """
    Build the export table for the plans matching the filter.

    Args:
        plans_df: All plans (see SystemData.plans_df)
        flt: Export filter; None exports everything
        sort: Order by date then case-insensitive employee name
        today: Export date printed in the info row

    Returns:
        ExportTable with exactly one data row per filtered plan
    """
    df = flt.apply(plans_df) if flt is not None else plans_df
    if sort:
        df = sort_for_export(df)
    records = df.to_dict('records')
    today = today or date.today()

    top, bottom, merges, widths, number_cols, money_cols = _build_headers()
    width = len(widths)

    rows: List[List[Any]] = [
        [EXPORT_TITLE] + [None] * (width - 1),
        [f"Ngày xuất: {_format_vi_date(today)} | Số lượng: {len(records)} bản ghi"] + [None] * (width - 1),
        [None] * width,
        top,
        bottom,
    ]
    merges = [(1, 1, 1, width), (2, 1, 2, width)] + merges
    data_start = len(rows) + 1

    boundaries = day_boundaries([r.get('date') for r in records])
    day_starts = []
    for i, record in enumerate(records):
        rows.append(_plan_row(i + 1, record))
        if sort and boundaries[i]:
            day_starts.append(data_start + i)

    # Signature footer: blank row, titles, note
    half = width // 2
    rows.append([None] * width)
    signature_row = [None] * width
    signature_row[0] = FOOTER_SIGNATURES[0]
    signature_row[half] = FOOTER_SIGNATURES[1]
    rows.append(signature_row)
    note_row = [None] * width
    note_row[0] = FOOTER_NOTE
    note_row[half] = FOOTER_NOTE
    rows.append(note_row)
    for row_number in (len(rows) - 1, len(rows)):
        merges.append((row_number, 1, row_number, half))
        merges.append((row_number, half + 1, row_number, width))

    logger.info(f"Export table built: {len(records)} plans, {width} columns")

    return ExportTable(
        rows=rows,
        merges=merges,
        column_widths=widths,
        header_rows=(4, 5),
        data_start_row=data_start,
        data_row_count=len(records),
        day_start_rows=day_starts,
        number_columns=number_cols,
        money_columns=money_cols,
    )


class PlanExport:
    """
    Excel writer for the plan summary table.

    Usage:
        table = build_table(data.plans_df(), flt)
        excel_bytes = PlanExport().create_workbook(table)

        st.download_button(
            label="Xuất Excel",
            data=excel_bytes,
            file_name=export_filename(flt),
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
    """

    def __init__(self):
        self._init_styles()

    def _init_styles(self):
        self.header_fill = PatternFill(
            start_color=EXCEL_STYLES['header_fill_color'],
            end_color=EXCEL_STYLES['header_fill_color'],
            fill_type='solid'
        )
        self.day_fill = PatternFill(
            start_color=EXCEL_STYLES['day_fill_color'],
            end_color=EXCEL_STYLES['day_fill_color'],
            fill_type='solid'
        )
        self.header_font = Font(bold=True, color=EXCEL_STYLES['header_font_color'], size=11)
        self.title_font = Font(bold=True, size=14)
        self.info_font = Font(italic=True, size=10)
        self.bold_font = Font(bold=True, size=11)

        thin = Side(style='thin', color='000000')
        medium = Side(style='medium', color='000000')
        self.cell_border = Border(left=thin, right=thin, top=thin, bottom=thin)
        self.day_border = Border(left=thin, right=thin, top=medium, bottom=thin)

        self.center_align = Alignment(horizontal='center', vertical='center', wrap_text=True)
        self.right_align = Alignment(horizontal='right', vertical='center')
        self.left_align = Alignment(horizontal='left', vertical='top', wrap_text=True)

    def create_workbook(self, table: ExportTable, sheet_name: str = EXPORT_SHEET_NAME) -> BytesIO:
        """Render the table model to an in-memory xlsx file."""
        wb = Workbook()
        ws = wb.active
        ws.title = sheet_name

        for row_idx, row in enumerate(table.rows, 1):
            for col_idx, value in enumerate(row, 1):
                if value is None:
                    continue
                ws.cell(row=row_idx, column=col_idx, value=value)

        self._style_title(ws, table)
        self._style_headers(ws, table)
        self._style_data(ws, table)
        self._style_footer(ws, table)

        for start_row, start_col, end_row, end_col in table.merges:
            ws.merge_cells(
                start_row=start_row, start_column=start_col,
                end_row=end_row, end_column=end_col
            )

        for col_idx, width in enumerate(table.column_widths, 1):
            ws.column_dimensions[get_column_letter(col_idx)].width = width

        ws.freeze_panes = ws.cell(row=table.data_start_row, column=1)

        output = BytesIO()
        wb.save(output)
        output.seek(0)

        logger.info(f"Excel export created ({table.data_row_count} rows)")
        return output

    def _style_title(self, ws, table: ExportTable):
        ws.cell(row=1, column=1).font = self.title_font
        ws.cell(row=1, column=1).alignment = self.center_align
        ws.cell(row=2, column=1).font = self.info_font

    def _style_headers(self, ws, table: ExportTable):
        for row_idx in table.header_rows:
            for col_idx in range(1, table.column_count + 1):
                cell = ws.cell(row=row_idx, column=col_idx)
                cell.fill = self.header_fill
                cell.font = self.header_font
                cell.alignment = self.center_align
                cell.border = self.cell_border

    def _style_data(self, ws, table: ExportTable):
        day_starts = set(table.day_start_rows)
        money = set(table.money_columns)
        numbers = set(table.number_columns)

        for row_idx in range(table.data_start_row, table.footer_start_row):
            border = self.day_border if row_idx in day_starts else self.cell_border
            for col_idx in range(1, table.column_count + 1):
                cell = ws.cell(row=row_idx, column=col_idx)
                cell.border = border
                if col_idx in money:
                    cell.number_format = EXCEL_STYLES['money_format']
                    cell.alignment = self.right_align
                elif col_idx in numbers:
                    cell.number_format = EXCEL_STYLES['number_format']
                    cell.alignment = self.right_align
                else:
                    cell.alignment = self.left_align
            if row_idx in day_starts:
                ws.cell(row=row_idx, column=3).fill = self.day_fill

    def _style_footer(self, ws, table: ExportTable):
        for row_idx in range(table.footer_start_row, len(table.rows) + 1):
            for col_idx in range(1, table.column_count + 1):
                cell = ws.cell(row=row_idx, column=col_idx)
                if cell.value is None:
                    continue
                cell.alignment = self.center_align
                if cell.value in FOOTER_SIGNATURES:
                    cell.font = self.bold_font
