"""
Business field extraction from document text.

Text carrying a structured-data block (spreadsheets, CSV) is summarized per
sheet regardless of document type. Everything else is matched against a
regex rule set chosen by document type, with a generic key/value fallback.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from ..enums import ColumnDataType, DocumentType
from ..exceptions import StructuredDataParseError
from .document_classifier import DocumentClassifier
from .structure_analyzer import StructureAnalyzer
from .text_extractor import STRUCTURED_DATA_MARKER, is_numeric

logger = logging.getLogger(__name__)

IMPORTANT_FIELDS = ("product_description", "quantity", "unit_price", "total_amount")
SAMPLE_ROW_COUNT = 3


@dataclass(frozen=True)
class FieldRule:
    """A labeled pattern; group 1 is the field value"""
    field_name: str
    pattern: re.Pattern
    convert: Callable[[str], Any] = str.strip


def _rule(field_name: str, pattern: str, convert: Callable[[str], Any] = str.strip) -> FieldRule:
    return FieldRule(field_name, re.compile(pattern, re.IGNORECASE), convert)


# Rules are applied in order; a later match for the same field overwrites an earlier one
INVOICE_RULES = [
    _rule("invoice_number", r"invoice\s+number:\s*([^:\n]+)"),
    _rule("total_amount", r"total\s+amount:\s*\$?(\d+(?:\.\d+)?)", float),
]

PURCHASE_ORDER_RULES = [
    _rule("supplier", r"supplier:\s*([^:\n]+)"),
    _rule("order_number", r"order\s+number:\s*([^:\n]+)"),
    _rule("order_number", r"po\s+number:\s*([^:\n]+)"),
]

SALES_CONTRACT_RULES = [
    _rule("product_description", r"products?:\s*([^:\n]+)"),
    _rule("product_description", r"items?:\s*([^:\n]+)"),
    _rule("product_description", r"description:\s*([^:\n]+)"),
    _rule("quantity", r"quantity:\s*(\d+(?:\.\d+)?)", float),
    _rule("unit_price", r"price:\s*\$?(\d+(?:\.\d+)?)", float),
    _rule("delivery_date", r"delivery\s+date:\s*([^:\n]+)"),
    _rule("delivery_date", r"due\s+date:\s*([^:\n]+)"),
    _rule("delivery_date", r"date:\s*([^:\n]+)"),
    _rule("payment_terms", r"payment\s+terms?:\s*([^:\n]+)"),
]

SPREADSHEET_RULES = [
    _rule("total", r"total[:\s]*\$?([\d,]+\.?\d*)"),
    _rule("invoice", r"invoice[:\s]*#?([^\s]+)"),
    _rule("order", r"order[:\s]*#?([^\s]+)"),
    _rule("date", r"date[:\s]*([^\s]+)"),
    _rule("customer", r"customer[:\s]*([^\s]+)"),
    _rule("supplier", r"supplier[:\s]*([^\s]+)"),
]


def apply_rules(text: str, rules: List[FieldRule]) -> Dict[str, Any]:
    """Run each rule's first match against the text; unmatched rules yield nothing"""
    data: Dict[str, Any] = {}
    for rule in rules:
        match = rule.pattern.search(text)
        if not match:
            continue
        try:
            data[rule.field_name] = rule.convert(match.group(1))
        except ValueError as e:
            logger.warning(f"Could not convert {rule.field_name} value '{match.group(1)}': {e}")
    return data


def calculate_confidence(extracted_data: Dict[str, Any]) -> float:
    """
    Confidence for a whole extraction batch.

    Each important field found adds 0.3 and every field adds 0.1, capped at 1.0.
    """
    total_fields = len(extracted_data)
    if total_fields == 0:
        return 0.0

    important_found = sum(1 for name in IMPORTANT_FIELDS if extracted_data.get(name))
    return min(1.0, important_found * 0.3 + total_fields * 0.1)


def _column_key(header: Any) -> str:
    return re.sub(r"\s+", "_", str(header)).lower()


def _row_value(row: Any, col_index: int) -> Any:
    if isinstance(row, dict):
        row = list(row.values())
    if isinstance(row, list) and col_index < len(row):
        return row[col_index]
    return None


def _validate_sheet(sheet_name: str, sheet: Dict[str, Any]) -> None:
    """Reject sheet summaries whose parts are not the expected containers"""
    for key in ("headers", "rows"):
        if sheet.get(key) is not None and not isinstance(sheet[key], list):
            raise StructuredDataParseError(f"Sheet '{sheet_name}' {key} must be a list")

    summary = sheet.get("summary")
    if summary is None:
        return
    if not isinstance(summary, dict):
        raise StructuredDataParseError(f"Sheet '{sheet_name}' summary must be an object")

    data_types = summary.get("dataTypes")
    if data_types is None:
        return
    if not isinstance(data_types, list):
        raise StructuredDataParseError(f"Sheet '{sheet_name}' dataTypes must be a list")
    for type_info in data_types:
        if type_info is not None and not isinstance(type_info, dict):
            raise StructuredDataParseError(f"Sheet '{sheet_name}' has a malformed column type entry")
        if type_info and type_info.get("examples") is not None and not isinstance(type_info["examples"], list):
            raise StructuredDataParseError(f"Sheet '{sheet_name}' column examples must be a list")


class BusinessFieldExtractor:
    """Pull named business fields out of extracted document text."""

    def __init__(
        self,
        classifier: Optional[DocumentClassifier] = None,
        analyzer: Optional[StructureAnalyzer] = None,
    ):
        self.classifier = classifier or DocumentClassifier()
        self.analyzer = analyzer or StructureAnalyzer()
        self._dispatch: Dict[DocumentType, Callable[[str], Dict[str, Any]]] = {
            DocumentType.INVOICE: self.extract_invoice_fields,
            DocumentType.PURCHASE_ORDER: self.extract_purchase_order_fields,
            DocumentType.SALES_CONTRACT: self.extract_sales_contract_fields,
            DocumentType.SPREADSHEET: self.extract_spreadsheet_fields,
            DocumentType.GENERIC: self.extract_generic_fields,
        }

    def extract(
        self,
        text: str,
        document_type: Optional[Union[DocumentType, str]] = None
    ) -> Dict[str, Any]:
        """
        Extract business fields from text.

        Args:
            text: Extracted document text
            document_type: Known document type; detected from the text when omitted

        Returns:
            Mapping of field name to extracted value
        """
        text = text or ""
        doc_type = self._coerce_type(document_type) if document_type else self.classifier.classify(text)

        if STRUCTURED_DATA_MARKER in text:
            try:
                structured = self.parse_structured_data(text)
                return self.extract_from_structured_data(structured)
            except StructuredDataParseError as e:
                logger.warning(f"Failed to parse structured data, falling back to {doc_type.value} rules: {e}")

        extractor = self._dispatch.get(doc_type, self.extract_generic_fields)
        return extractor(text)

    @staticmethod
    def _coerce_type(document_type: Union[DocumentType, str]) -> DocumentType:
        if isinstance(document_type, DocumentType):
            return document_type
        try:
            return DocumentType(str(document_type).lower())
        except ValueError:
            return DocumentType.GENERIC

    @staticmethod
    def parse_structured_data(text: str) -> Dict[str, Any]:
        section = text.split(STRUCTURED_DATA_MARKER, 1)[1].strip()
        try:
            data = json.loads(section)
        except json.JSONDecodeError as e:
            raise StructuredDataParseError(str(e)) from e

        if not isinstance(data, dict) or not all(isinstance(sheet, dict) for sheet in data.values()):
            raise StructuredDataParseError("Structured data must map sheet names to sheet summaries")
        for sheet_name, sheet in data.items():
            if sheet_name != "summary":
                _validate_sheet(sheet_name, sheet)
        return data

    @staticmethod
    def extract_from_structured_data(structured_data: Dict[str, Any]) -> Dict[str, Any]:
        """Summarize every sheet into fields namespaced by sheet name"""
        data: Dict[str, Any] = {}

        for sheet_name, sheet in structured_data.items():
            if sheet_name == "summary" or not sheet:
                continue

            headers = sheet.get("headers") or []
            rows = sheet.get("rows") or []
            summary = sheet.get("summary") or {}

            data[f"{sheet_name}_headers"] = headers
            data[f"{sheet_name}_row_count"] = summary.get("totalRows", len(rows))
            data[f"{sheet_name}_column_count"] = summary.get("totalColumns", len(headers))

            for col_index, type_info in enumerate(summary.get("dataTypes") or []):
                if not type_info or not type_info.get("count"):
                    continue

                header = headers[col_index] if col_index < len(headers) and headers[col_index] else f"Column_{col_index + 1}"
                key = f"{sheet_name}_{_column_key(header)}"
                column_type = type_info.get("type")
                examples = type_info.get("examples") or []

                if column_type == ColumnDataType.EMAIL.value:
                    data[key] = ", ".join(str(example) for example in examples)
                elif column_type == ColumnDataType.DATE.value:
                    data[f"{key}_dates"] = ", ".join(str(example) for example in examples)
                elif column_type in (ColumnDataType.INTEGER.value, ColumnDataType.DECIMAL.value):
                    values = [_row_value(row, col_index) for row in rows]
                    numbers = [float(value) for value in values if is_numeric(value)]
                    if numbers:
                        total = sum(numbers)
                        if column_type == ColumnDataType.INTEGER.value and total.is_integer():
                            total = int(total)
                        data[f"{key}_total"] = total
                        data[f"{key}_count"] = len(numbers)

            if rows:
                data[f"{sheet_name}_sample_data"] = rows[:SAMPLE_ROW_COUNT]

        return data

    @staticmethod
    def extract_invoice_fields(text: str) -> Dict[str, Any]:
        return apply_rules(text, INVOICE_RULES)

    @staticmethod
    def extract_purchase_order_fields(text: str) -> Dict[str, Any]:
        return apply_rules(text, PURCHASE_ORDER_RULES)

    @staticmethod
    def extract_sales_contract_fields(text: str) -> Dict[str, Any]:
        return apply_rules(text, SALES_CONTRACT_RULES)

    @staticmethod
    def extract_spreadsheet_fields(text: str) -> Dict[str, Any]:
        return apply_rules(text, SPREADSHEET_RULES)

    def extract_generic_fields(self, text: str) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for pair in self.analyzer.extract_key_value_pairs(text):
            data[pair.key.lower()] = pair.value
        return data
