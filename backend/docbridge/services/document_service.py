from typing import Any, List, Optional
from datetime import datetime, timezone
import json
import logging

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from .. import models
from ..db import dialect_insert
from ..enums import DocumentStatus
from ..exceptions import DocumentNotFoundError

logger = logging.getLogger(__name__)


def serialize_field_value(value: Any) -> Optional[str]:
    """Store lists and dicts as JSON, everything else as text"""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    return str(value)


class DocumentContentService:
    """Persistence of extracted document fields and processing status."""

    @staticmethod
    def get_document(db: Session, document_id: int) -> models.Document:
        document = db.get(models.Document, document_id)
        if not document:
            raise DocumentNotFoundError(document_id)
        return document

    @staticmethod
    def upsert_document_field(
        db: Session,
        document_id: int,
        field_name: str,
        field_value: Any,
        confidence: Optional[float] = 1.0,
        is_verified: bool = False,
        commit: bool = True,
        overwrite_verified: bool = True
    ) -> models.ExtractedField:
        """
        Create or overwrite the field row for (document_id, field_name).

        Calling this twice for the same key leaves one row holding the
        latest value. With overwrite_verified=False a row a reviewer has
        verified is left untouched and returned as stored.
        """
        value = serialize_field_value(field_value)
        stmt = dialect_insert(db, models.ExtractedField).values(
            document_id=document_id,
            field_name=field_name,
            field_value=value,
            confidence_score=confidence,
            is_verified=is_verified,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["document_id", "field_name"],
            set_={
                "field_value": stmt.excluded.field_value,
                "confidence_score": stmt.excluded.confidence_score,
                "is_verified": stmt.excluded.is_verified,
                "updated_at": func.now(),
            },
            where=None if overwrite_verified else models.ExtractedField.is_verified.is_(False),
        ).returning(models.ExtractedField)

        field = db.scalars(stmt, execution_options={"populate_existing": True}).one_or_none()
        if field is None:
            # Conflict with a verified row that was not overwritten
            field = db.scalars(
                select(models.ExtractedField).where(
                    models.ExtractedField.document_id == document_id,
                    models.ExtractedField.field_name == field_name,
                )
            ).one()
            logger.info(f"Kept verified field {field_name} for document {document_id}")
        if commit:
            db.commit()

        logger.debug(f"Stored field {field_name} for document {document_id} (confidence: {confidence})")
        return field

    @staticmethod
    def get_document_content(db: Session, document_id: int) -> List[models.ExtractedField]:
        return list(db.scalars(
            select(models.ExtractedField)
            .where(models.ExtractedField.document_id == document_id)
            .order_by(models.ExtractedField.field_name)
        ))

    @staticmethod
    def mark_as_delivered(db: Session, document_id: int) -> bool:
        """Move a sent document to delivered; no-op for any other status"""
        result = db.execute(
            update(models.Document)
            .where(models.Document.id == document_id, models.Document.status == DocumentStatus.SENT)
            .values(status=DocumentStatus.DELIVERED, delivered_at=datetime.now(timezone.utc))
        )
        db.commit()
        return result.rowcount > 0

    @staticmethod
    def mark_as_processed(db: Session, document_id: int) -> bool:
        """Move a delivered document to processed; no-op for any other status"""
        result = db.execute(
            update(models.Document)
            .where(models.Document.id == document_id, models.Document.status == DocumentStatus.DELIVERED)
            .values(status=DocumentStatus.PROCESSED, processed_at=datetime.now(timezone.utc))
        )
        db.commit()
        return result.rowcount > 0
