"""
Keyword-based document type classification.

Rules are data: an ordered table of (type, keywords) checked top to bottom,
so adding a document type means adding a row rather than a branch.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..enums import DocumentType
from .text_extractor import STRUCTURED_DATA_MARKER


@dataclass(frozen=True)
class ClassificationRule:
    document_type: DocumentType
    keywords: Sequence[str]
    # Matched against the raw text instead of the lower-cased text
    case_sensitive_keywords: Sequence[str] = field(default_factory=tuple)

    def match(self, text: str, normalized: str) -> Optional[str]:
        for keyword in self.case_sensitive_keywords:
            if keyword in text:
                return keyword
        for keyword in self.keywords:
            if keyword in normalized:
                return keyword
        return None


@dataclass
class ClassificationResult:
    document_type: DocumentType = DocumentType.GENERIC
    matched_keyword: Optional[str] = None
    rationale: Optional[str] = None


# First match wins
CLASSIFICATION_RULES: List[ClassificationRule] = [
    ClassificationRule(
        DocumentType.SPREADSHEET,
        keywords=("worksheet", "spreadsheet"),
        case_sensitive_keywords=(STRUCTURED_DATA_MARKER, "Sheet:"),
    ),
    ClassificationRule(
        DocumentType.INVOICE,
        keywords=("invoice", "factuur", "total amount", "btw", "tax"),
    ),
    ClassificationRule(
        DocumentType.PURCHASE_ORDER,
        keywords=("purchase order", "po number", "bestelbon", "order number"),
    ),
    ClassificationRule(
        DocumentType.SALES_CONTRACT,
        keywords=("sales contract", "agreement", "contract", "terms and conditions"),
    ),
]

EXTENSION_DEFAULT_TYPES: Dict[str, DocumentType] = {
    ".pdf": DocumentType.INVOICE,
    ".docx": DocumentType.SALES_CONTRACT,
    ".doc": DocumentType.SALES_CONTRACT,
    ".xlsx": DocumentType.SPREADSHEET,
    ".xls": DocumentType.SPREADSHEET,
    ".csv": DocumentType.SPREADSHEET,
}


class DocumentClassifier:
    """Keyword classifier assigning a business document type to extracted text."""

    def __init__(self, rules: Optional[Sequence[ClassificationRule]] = None):
        self.rules = list(rules) if rules is not None else CLASSIFICATION_RULES

    def classify(self, text: Optional[str]) -> DocumentType:
        return self.classify_with_rationale(text).document_type

    def classify_with_rationale(self, text: Optional[str]) -> ClassificationResult:
        """
        Classify text and explain which keyword decided it.

        Args:
            text: Extracted document text

        Returns:
            ClassificationResult; generic when the text is empty or no rule matches
        """
        if not text:
            return ClassificationResult(rationale="No text available.")

        normalized = text.lower()
        for rule in self.rules:
            keyword = rule.match(text, normalized)
            if keyword is not None:
                return ClassificationResult(
                    document_type=rule.document_type,
                    matched_keyword=keyword,
                    rationale=f"Matched keyword '{keyword}'.",
                )

        return ClassificationResult(rationale="No matching keyword rule.")

    @staticmethod
    def default_type_for_extension(filename: str) -> DocumentType:
        """Type assumed from the file name alone, before any text is extracted"""
        extension = os.path.splitext(filename or "")[1].lower()
        return EXTENSION_DEFAULT_TYPES.get(extension, DocumentType.GENERIC)
