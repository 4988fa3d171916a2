"""
Human review of processed documents.

Reviewers see the extracted fields with mapping suggestions for product
identifiers, then submit (field_name, original_value, mapped_value) tuples.
Each submission is logged as a FieldCorrection, stored as a verified field,
and for product identifiers fed back into the mapping store.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from .. import models
from ..enums import DocumentStatus
from ..exceptions import DocumentNotReadyError
from .document_service import DocumentContentService, serialize_field_value
from .mapping_store import MappingStore

logger = logging.getLogger(__name__)

PRODUCT_FIELDS = ("product_description", "product_code")


def is_product_field(field_name: str) -> bool:
    return field_name in PRODUCT_FIELDS


class ReviewService:

    @staticmethod
    def get_processing_queue(
        db: Session,
        recipient_company_id: int,
        limit: int = 20,
        offset: int = 0
    ) -> List[models.Document]:
        """
        Processed documents delivered to a company, waiting for review.

        Args:
            recipient_company_id: Company whose inbox is listed
            limit: Maximum number of documents
            offset: Number of documents to skip

        Returns:
            Documents, most recently processed first
        """
        stmt = (
            select(models.Document)
            .options(selectinload(models.Document.sender_company))
            .where(
                models.Document.recipient_company_id == recipient_company_id,
                models.Document.status == DocumentStatus.PROCESSED,
            )
            .order_by(models.Document.processed_at.desc(), models.Document.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(db.scalars(stmt))

    @staticmethod
    def get_document_for_review(db: Session, document_id: int) -> Dict[str, Any]:
        """
        Processed document with its fields, annotated with mapping suggestions.

        Raises:
            DocumentNotFoundError: Unknown document id
            DocumentNotReadyError: Document has not reached the processed status
        """
        document = DocumentContentService.get_document(db, document_id)
        if document.status != DocumentStatus.PROCESSED:
            raise DocumentNotReadyError(document_id, document.status.value)

        store = MappingStore(db)
        content = []
        for field in DocumentContentService.get_document_content(db, document_id):
            suggestion = None
            if is_product_field(field.field_name) and field.field_value:
                suggestion = store.find_best_match(
                    document.sender_company_id,
                    document.recipient_company_id,
                    field.field_value,
                )

            content.append({
                "field_name": field.field_name,
                "field_value": field.field_value,
                "confidence_score": field.confidence_score,
                "is_verified": field.is_verified,
                "suggested_mapping": suggestion.to_product_code if suggestion else None,
                "mapping_confidence": suggestion.confidence_score if suggestion else 0.0,
                "mapping_id": suggestion.id if suggestion else None,
            })

        return {
            "id": document.id,
            "document_type": document.document_type.value if document.document_type else None,
            "original_filename": document.original_filename,
            "sender_company_id": document.sender_company_id,
            "recipient_company_id": document.recipient_company_id,
            "status": document.status.value,
            "processed_at": document.processed_at,
            "content": content,
        }

    @staticmethod
    def submit_review(
        db: Session,
        document_id: int,
        mappings: List[Dict[str, Any]],
        user_id: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Apply reviewer-confirmed values to a document.

        Each item is applied independently; a failing item is rolled back and
        reported in its result entry while the rest still go through.

        Returns:
            One result per submitted item, in submission order
        """
        document = DocumentContentService.get_document(db, document_id)
        store = MappingStore(db)
        results: List[Dict[str, Any]] = []

        for item in mappings:
            field_name = item["field_name"]
            original_value = item.get("original_value")
            mapped_value = item["mapped_value"]
            confidence = item.get("confidence_score")
            if confidence is None:
                confidence = 1.0

            result: Dict[str, Any] = {
                "field_name": field_name,
                "original_value": original_value,
                "mapped_value": mapped_value,
                "success": True,
            }

            try:
                db.add(models.FieldCorrection(
                    document_id=document.id,
                    field_name=field_name,
                    original_value=serialize_field_value(original_value),
                    mapped_value=serialize_field_value(mapped_value),
                    confidence_score=confidence,
                    corrected_by=user_id,
                ))
                DocumentContentService.upsert_document_field(
                    db,
                    document.id,
                    field_name,
                    mapped_value,
                    confidence=confidence,
                    is_verified=True,
                    commit=False,
                )

                if is_product_field(field_name) and original_value:
                    mapping = store.create_or_update({
                        "from_company_id": document.sender_company_id,
                        "to_company_id": document.recipient_company_id,
                        "from_product_code": str(original_value),
                        "to_product_code": str(mapped_value),
                        "confidence_score": confidence,
                        "is_manual": True,
                        "created_by": user_id,
                    }, commit=False)
                    result["product_mapping_id"] = mapping.id

                db.commit()

            except Exception as e:
                db.rollback()
                logger.error(f"Failed to apply review of {field_name} on document {document_id}: {e}")
                result["success"] = False
                result["error"] = str(e)

            results.append(result)

        applied = sum(1 for result in results if result["success"])
        logger.info(f"Applied {applied}/{len(results)} reviewed fields for document {document_id}")
        return results
