"""
Text extraction for uploaded business documents.

Converts a stored file into plain text by extension. Tabular formats (XLSX,
XLS, CSV) are linearized sheet by sheet and followed by a machine-readable
structured-data block that the business field extractor consumes:

    Sheet: Sheet1
    name,amount
    Widget,10

    --- Structured Data ---
    {"Sheet1": {"headers": [...], "rows": [...], "summary": {...}}}
"""

import csv
import json
import logging
import os
import re
from datetime import date, datetime, time
from io import StringIO
from typing import Any, Dict, List, Optional

import openpyxl
import pdfplumber
import xlrd
from docx import Document as DocxDocument

from ..enums import ColumnDataType
from ..exceptions import ExtractionError, UnsupportedFormatError

logger = logging.getLogger(__name__)

STRUCTURED_DATA_MARKER = "--- Structured Data ---"

SUPPORTED_EXTENSIONS = (".pdf", ".docx", ".txt", ".xlsx", ".xls", ".csv")

# A first row with more numeric cells than this is treated as data, not a header
HEADER_NUMERIC_RATIO = 0.7
MAX_TYPE_EXAMPLES = 3

DATE_PATTERNS = [
    re.compile(r"^\d{4}-\d{2}-\d{2}$"),
    re.compile(r"^\d{2}/\d{2}/\d{4}$"),
    re.compile(r"^\d{2}-\d{2}-\d{4}$"),
    re.compile(r"^\d{1,2}/\d{1,2}/\d{2,4}$"),
]
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\+?[0-9\-()]{10,}$")
URL_PATTERN = re.compile(r"^https?://\S+$")


def is_numeric(value: Any) -> bool:
    """True for finite numbers and strings that parse entirely as one"""
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return value == value and value not in (float("inf"), float("-inf"))
    if value is None:
        return False
    try:
        number = float(str(value).strip())
    except ValueError:
        return False
    return number == number and number not in (float("inf"), float("-inf"))


def detect_data_type(value: Any) -> ColumnDataType:
    """Classify a single cell value"""
    if value is None or value == "":
        return ColumnDataType.EMPTY

    text = str(value).strip()
    if not text:
        return ColumnDataType.EMPTY

    if any(pattern.match(text) for pattern in DATE_PATTERNS):
        return ColumnDataType.DATE

    if is_numeric(text):
        return ColumnDataType.INTEGER if float(text) % 1 == 0 else ColumnDataType.DECIMAL

    if EMAIL_PATTERN.match(text):
        return ColumnDataType.EMAIL

    if PHONE_PATTERN.match(re.sub(r"\s", "", text)):
        return ColumnDataType.PHONE

    if URL_PATTERN.match(text):
        return ColumnDataType.URL

    return ColumnDataType.TEXT


def is_data_row(row: List[Any]) -> bool:
    """Heuristic: a row is data (not a header) when mostly numeric"""
    values = [cell for cell in row if cell not in (None, "")]
    if not values:
        return False
    numeric_count = sum(1 for cell in values if is_numeric(cell))
    return numeric_count / len(values) > HEADER_NUMERIC_RATIO


def build_structured_data(rows: List[List[Any]], headers: Optional[List[str]] = None) -> Dict[str, Any]:
    """
    Summarize one sheet of tabular data.

    Args:
        rows: Sheet rows as lists of cell values
        headers: Explicit header row (CSV); when omitted the first row is
            used as the header unless it looks like data

    Returns:
        Dictionary with headers, data rows and a summary of row/column counts
        and per-column type distribution
    """
    if not rows and not headers:
        return {}

    if headers is None:
        if rows and not is_data_row(rows[0]):
            headers = [_cell_to_str(cell) for cell in rows[0]]
            data_rows = rows[1:]
        else:
            headers = []
            data_rows = rows
    else:
        data_rows = rows

    total_columns = len(headers) if headers else max((len(row) for row in data_rows), default=0)

    data_types: List[Dict[str, Any]] = []
    for row in data_rows:
        for col_index, cell in enumerate(row):
            while len(data_types) <= col_index:
                data_types.append(None)
            if data_types[col_index] is None:
                data_types[col_index] = {
                    "type": detect_data_type(cell).value,
                    "count": 0,
                    "examples": []
                }
            type_info = data_types[col_index]
            type_info["count"] += 1
            if len(type_info["examples"]) < MAX_TYPE_EXAMPLES:
                type_info["examples"].append(cell)

    # Columns with no data at all still get an entry so indexes line up with headers
    data_types = [
        info if info is not None else {"type": ColumnDataType.EMPTY.value, "count": 0, "examples": []}
        for info in data_types
    ]

    return {
        "headers": headers,
        "rows": data_rows,
        "summary": {
            "totalRows": len(data_rows),
            "totalColumns": total_columns,
            "dataTypes": data_types
        }
    }


def _cell_to_str(cell: Any) -> str:
    if cell is None:
        return ""
    if isinstance(cell, float) and cell.is_integer():
        return str(int(cell))
    return str(cell)


def _json_cell(cell: Any) -> Any:
    """Convert spreadsheet cell values into JSON-safe values"""
    if cell is None:
        return ""
    if isinstance(cell, (str, int, float, bool)):
        return cell
    # Date-only cells come back from openpyxl as midnight datetimes
    if isinstance(cell, datetime):
        if cell.time() == time.min:
            return cell.date().isoformat()
        return cell.isoformat(sep=" ")
    if isinstance(cell, date):
        return cell.isoformat()
    return str(cell)


def _rows_to_csv(rows: List[List[Any]]) -> str:
    buffer = StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    for row in rows:
        writer.writerow([_cell_to_str(cell) for cell in row])
    return buffer.getvalue()


class TextExtractionService:
    """Extract plain text from stored documents by file extension"""

    @staticmethod
    def can_extract(filename: str) -> bool:
        """True when the file extension is one we can extract text from"""
        return os.path.splitext(filename or "")[1].lower() in SUPPORTED_EXTENSIONS

    @staticmethod
    def extract(file_path: str) -> str:
        """
        Extract text from a stored file.

        Args:
            file_path: Path to the stored upload

        Returns:
            Extracted text; spreadsheets carry a trailing structured-data block

        Raises:
            UnsupportedFormatError: Extension outside the supported set (including .doc)
            ExtractionError: File missing or the parser could not read it
        """
        extension = os.path.splitext(file_path)[1].lower()
        extractor = _EXTRACTORS.get(extension)
        if extractor is None:
            raise UnsupportedFormatError(extension)

        if not os.path.isfile(file_path):
            raise ExtractionError(f"File not found: {file_path}")

        try:
            text = extractor(file_path)
        except ExtractionError:
            raise
        except Exception as e:
            logger.error(f"Text extraction failed for {file_path}: {e}")
            raise ExtractionError(f"Failed to parse {extension.lstrip('.').upper()} file: {e}") from e

        logger.info(f"Extracted {len(text)} characters from {os.path.basename(file_path)}")
        return text

    @staticmethod
    def _extract_pdf(file_path: str) -> str:
        with pdfplumber.open(file_path) as pdf:
            pages = [page.extract_text() or "" for page in pdf.pages]
        return "\n".join(pages)

    @staticmethod
    def _extract_docx(file_path: str) -> str:
        doc = DocxDocument(file_path)
        lines = [p.text for p in doc.paragraphs]

        # Tables are not part of doc.paragraphs
        for table in doc.tables:
            for row in table.rows:
                lines.append("\t".join(cell.text for cell in row.cells))

        return "\n".join(lines)

    @staticmethod
    def _read_text(file_path: str, encoding: str = "utf-8") -> str:
        with open(file_path, "rb") as f:
            raw = f.read()
        try:
            return raw.decode(encoding)
        except UnicodeDecodeError:
            logger.warning(f"{file_path} is not valid UTF-8, decoding as latin-1")
            return raw.decode("latin-1")

    @staticmethod
    def _extract_text(file_path: str) -> str:
        return TextExtractionService._read_text(file_path)

    @staticmethod
    def _extract_xlsx(file_path: str) -> str:
        workbook = openpyxl.load_workbook(file_path, read_only=True, data_only=True)
        try:
            sheets = {}
            for sheet in workbook.worksheets:
                sheets[sheet.title] = [
                    [_json_cell(cell) for cell in row]
                    for row in sheet.iter_rows(values_only=True)
                ]
        finally:
            workbook.close()
        return TextExtractionService._render_sheets(sheets)

    @staticmethod
    def _extract_xls(file_path: str) -> str:
        workbook = xlrd.open_workbook(file_path)
        sheets = {}
        for sheet in workbook.sheets():
            sheets[sheet.name] = [
                [_json_cell(cell) for cell in sheet.row_values(row_index)]
                for row_index in range(sheet.nrows)
            ]
        return TextExtractionService._render_sheets(sheets)

    @staticmethod
    def _extract_csv(file_path: str) -> str:
        # Spreadsheet exports are often cp1252 rather than UTF-8
        content = TextExtractionService._read_text(file_path, encoding="utf-8-sig")
        reader = csv.reader(StringIO(content, newline=""))
        rows = [row for row in reader if any(cell.strip() for cell in row)]

        if not rows:
            return ""

        headers, data_rows = rows[0], rows[1:]
        text = f"Sheet: Sheet1\n{_rows_to_csv(rows)}\n"
        if data_rows:
            structured = {"Sheet1": build_structured_data(data_rows, headers=headers)}
            text += f"\n{STRUCTURED_DATA_MARKER}\n"
            text += json.dumps(structured, indent=2)
        return text

    @staticmethod
    def _render_sheets(sheets: Dict[str, List[List[Any]]]) -> str:
        """Linearize sheets as CSV blocks followed by the structured-data block"""
        text = ""
        structured = {}

        for sheet_name, rows in sheets.items():
            # Trailing empty rows are common in saved workbooks
            rows = [row for row in rows if any(cell not in (None, "") for cell in row)]
            text += f"Sheet: {sheet_name}\n{_rows_to_csv(rows)}\n"
            if rows:
                structured[sheet_name] = build_structured_data(rows)

        if structured:
            text += f"\n{STRUCTURED_DATA_MARKER}\n"
            text += json.dumps(structured, indent=2)

        return text


_EXTRACTORS = {
    ".pdf": TextExtractionService._extract_pdf,
    ".docx": TextExtractionService._extract_docx,
    ".txt": TextExtractionService._extract_text,
    ".xlsx": TextExtractionService._extract_xlsx,
    ".xls": TextExtractionService._extract_xls,
    ".csv": TextExtractionService._extract_csv,
}
