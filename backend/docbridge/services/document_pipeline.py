import json
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from .. import models
from ..core.settings import get_settings
from ..enums import DocumentType
from .business_field_extractor import BusinessFieldExtractor, calculate_confidence
from .document_classifier import DocumentClassifier
from .document_service import DocumentContentService
from .structure_analyzer import StructureAnalyzer
from .text_extractor import TextExtractionService

logger = logging.getLogger(__name__)

STRUCTURE_FIELD = "document_structure"
TEXT_FIELD = "extracted_text"


@dataclass
class PipelineResult:
    document_id: int
    status: str
    document_type: Optional[str] = None
    fields_extracted: int = 0
    confidence: float = 0.0
    error: Optional[str] = None
    field_names: list = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class DocumentPipeline:
    """
    Extract, analyze, classify and persist the business fields of one document.

    Stages run strictly in order. Fields and the resolved type commit together;
    any stage error propagates to the caller and the document is left
    delivered and unprocessed. Reprocessing never overwrites a field a
    reviewer has verified.
    """

    def __init__(
        self,
        classifier: Optional[DocumentClassifier] = None,
        analyzer: Optional[StructureAnalyzer] = None,
        field_extractor: Optional[BusinessFieldExtractor] = None,
    ):
        self.classifier = classifier or DocumentClassifier()
        self.analyzer = analyzer or StructureAnalyzer()
        self.field_extractor = field_extractor or BusinessFieldExtractor(self.classifier, self.analyzer)
        self.settings = get_settings()

    def run(self, db: Session, document: models.Document) -> PipelineResult:
        document_id = document.id
        logger.info(f"Processing document {document_id}: {document.original_filename}")

        DocumentContentService.mark_as_delivered(db, document_id)

        text = TextExtractionService.extract(document.file_path)
        logger.info(f"Extracted {len(text)} characters from document {document_id}")

        structure = self.analyzer.analyze(text)

        document_type = self._resolve_type(document, text)
        extracted = self.field_extractor.extract(text, document_type)
        confidence = calculate_confidence(extracted)

        for field_name, value in extracted.items():
            DocumentContentService.upsert_document_field(
                db, document_id, field_name, value, confidence,
                commit=False, overwrite_verified=False,
            )

        DocumentContentService.upsert_document_field(
            db,
            document_id,
            STRUCTURE_FIELD,
            json.dumps(structure.to_dict()),
            self.settings.structure_field_confidence,
            commit=False,
            overwrite_verified=False,
        )
        DocumentContentService.upsert_document_field(
            db,
            document_id,
            TEXT_FIELD,
            text[:self.settings.extracted_text_limit],
            1.0,
            commit=False,
            overwrite_verified=False,
        )

        document.document_type = document_type
        document.confidence_score = confidence
        db.commit()

        DocumentContentService.mark_as_processed(db, document_id)

        logger.info(
            f"Document {document_id} processed as {document_type.value}: "
            f"{len(extracted)} fields, confidence {confidence:.2f}"
        )
        return PipelineResult(
            document_id=document_id,
            status="processed",
            document_type=document_type.value,
            fields_extracted=len(extracted),
            confidence=confidence,
            field_names=sorted(extracted),
        )

    def _resolve_type(self, document: models.Document, text: str) -> DocumentType:
        """Keep an explicit type; replace a missing or extension-derived one with the text classification"""
        current = document.document_type
        extension_default = self.classifier.default_type_for_extension(document.original_filename)
        if current is not None and current != extension_default:
            return current

        detected = self.classifier.classify(text)
        logger.info(f"Detected type {detected.value} for document {document.id}")
        return detected
