from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
import logging

from ..dependencies import get_db
from .. import models
from ..schemas import (
    DocumentResponse,
    ProcessDocumentResponse,
    ExtractedFieldResponse,
    DocumentFieldsResponse
)
from ..services.document_classifier import DocumentClassifier
from ..services.document_service import DocumentContentService
from ..services.text_extractor import TextExtractionService
from ..tasks.document_tasks import dispatch_processing_task

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


def get_document_or_404(db: Session, document_id: int) -> models.Document:
    document = db.get(models.Document, document_id)
    if not document:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Document not found"
        )
    return document


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: int,
    db: Session = Depends(get_db)
):
    return get_document_or_404(db, document_id)


@router.post("/{document_id}/process", response_model=ProcessDocumentResponse, status_code=status.HTTP_202_ACCEPTED)
async def process_document(
    document_id: int,
    db: Session = Depends(get_db)
):
    """
    Queue extraction and field learning for an uploaded document.

    Responds immediately; processing runs in a background worker. A document
    without a type gets the default for its file extension until the text
    classification replaces it.
    """
    document = get_document_or_404(db, document_id)

    if not TextExtractionService.can_extract(document.original_filename):
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=f"Unsupported file type: {document.original_filename}"
        )

    if document.document_type is None:
        document.document_type = DocumentClassifier.default_type_for_extension(document.original_filename)
        db.commit()

    task_id = dispatch_processing_task(document.id)
    logger.info(f"Accepted document {document.id} for processing (task {task_id})")

    return ProcessDocumentResponse(
        document_id=document.id,
        task_id=task_id,
        document_type=document.document_type
    )


@router.get("/{document_id}/fields", response_model=DocumentFieldsResponse)
async def get_document_fields(
    document_id: int,
    db: Session = Depends(get_db)
):
    """
    Get all stored fields for a document, ordered by field name.

    Documents that have not been processed yet return an empty list.
    """
    document = get_document_or_404(db, document_id)
    fields = DocumentContentService.get_document_content(db, document_id)

    return DocumentFieldsResponse(
        document_id=document.id,
        status=document.status,
        document_type=document.document_type,
        fields=[ExtractedFieldResponse.model_validate(field) for field in fields]
    )
