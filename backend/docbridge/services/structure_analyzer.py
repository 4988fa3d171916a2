"""
Layout analysis of extracted document text.

Finds header and footer lines, titled sections, key/value pairs and
table-like regions. The result is stored with every processed document as
its document_structure field.
"""

import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

HEADER_LOOKAHEAD = 5
FOOTER_LOOKBEHIND = 5
MAX_SECTION_TITLE_LENGTH = 100
KEY_VALUE_CONFIDENCE = 0.8
TABLE_CONFIDENCE = 0.6
MIN_TABLE_LINES = 3

HEADER_PATTERNS = [
    re.compile(r"^[\w\s]+$"),
    re.compile(r"^\d+\.\s+[\w\s]+$"),
    re.compile(r"^[\w\s]+:\s*$"),
]

FOOTER_PATTERNS = [
    re.compile(r"page\s+\d+", re.IGNORECASE),
    re.compile(r"confidential", re.IGNORECASE),
    re.compile(r"copyright", re.IGNORECASE),
    re.compile(r"\d{4}$"),
]

KEY_VALUE_PATTERNS = [
    re.compile(r"(\w+):\s*([^:\n]+)"),
    re.compile(r"(\w+)\s*=\s*([^=\n]+)"),
    re.compile(r"(\w+)\s*-\s*([^-\n]+)"),
]

NUMBERED_HEADING = re.compile(r"^\d+\.\s+")
CAPITALIZED_WORD = re.compile(r"^[A-Z][a-z]+")
TABLE_COLUMN_GAP = re.compile(r"\s{2,}")


@dataclass
class Section:
    title: str
    start_line: int
    end_line: int
    content: List[str] = field(default_factory=list)


@dataclass
class KeyValuePair:
    key: str
    value: str
    confidence: float = KEY_VALUE_CONFIDENCE


@dataclass
class TableRegion:
    start_line: int
    end_line: int
    content: List[str] = field(default_factory=list)
    confidence: float = TABLE_CONFIDENCE


@dataclass
class DocumentStructure:
    total_lines: int = 0
    total_words: int = 0
    has_header: bool = False
    has_footer: bool = False
    sections: List[Section] = field(default_factory=list)
    key_value_pairs: List[KeyValuePair] = field(default_factory=list)
    tables: List[TableRegion] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class StructureAnalyzer:
    """Heuristic layout analysis of extracted document text."""

    def analyze(self, text: Optional[str]) -> DocumentStructure:
        """
        Analyze the layout of a document's text.

        Args:
            text: Extracted document text; None is treated as empty

        Returns:
            DocumentStructure; line indexes count non-blank lines only
        """
        text = text or ""
        lines = [line.strip() for line in text.split("\n")]
        lines = [line for line in lines if line]

        return DocumentStructure(
            total_lines=len(lines),
            total_words=len(text.split()),
            has_header=self.detect_header(lines),
            has_footer=self.detect_footer(lines),
            sections=self.identify_sections(lines),
            key_value_pairs=self.extract_key_value_pairs(text),
            tables=self.detect_tables(text),
        )

    @staticmethod
    def detect_header(lines: List[str]) -> bool:
        return any(
            pattern.search(line)
            for line in lines[:HEADER_LOOKAHEAD]
            for pattern in HEADER_PATTERNS
        )

    @staticmethod
    def detect_footer(lines: List[str]) -> bool:
        return any(
            pattern.search(line)
            for line in lines[-FOOTER_LOOKBEHIND:]
            for pattern in FOOTER_PATTERNS
        )

    @staticmethod
    def is_section_header(line: str) -> bool:
        """Short line without a period that is upper case, numbered or capitalized"""
        return (
            0 < len(line) < MAX_SECTION_TITLE_LENGTH
            and "." not in line
            and (
                line == line.upper()
                or NUMBERED_HEADING.search(line) is not None
                or CAPITALIZED_WORD.search(line) is not None
            )
        )

    def identify_sections(self, lines: List[str]) -> List[Section]:
        sections: List[Section] = []
        current: Optional[Section] = None

        for index, line in enumerate(lines):
            if self.is_section_header(line):
                if current is not None:
                    sections.append(current)
                current = Section(title=line, start_line=index, end_line=index)
            elif current is not None:
                current.content.append(line)
                current.end_line = index

        if current is not None:
            sections.append(current)

        return sections

    @staticmethod
    def extract_key_value_pairs(text: str) -> List[KeyValuePair]:
        """
        Find "key: value", "key = value" and "key - value" pairs.

        Args:
            text: Raw document text

        Returns:
            Every match of every pattern, in pattern order
        """
        # Every pattern runs over the full text; overlapping matches are kept
        pairs: List[KeyValuePair] = []
        for pattern in KEY_VALUE_PATTERNS:
            for match in pattern.finditer(text):
                pairs.append(KeyValuePair(key=match.group(1).strip(), value=match.group(2).strip()))
        return pairs

    @staticmethod
    def detect_tables(text: str) -> List[TableRegion]:
        lines = text.split("\n")
        table_indexes = [
            index for index, line in enumerate(lines)
            if "|" in line or "\t" in line or TABLE_COLUMN_GAP.search(line)
        ]

        if len(table_indexes) < MIN_TABLE_LINES:
            return []

        return [
            TableRegion(
                start_line=table_indexes[0],
                end_line=table_indexes[-1],
                content=[lines[index] for index in table_indexes],
            )
        ]
