import logging

from docbridge.core.celery import celery_app
from docbridge.db import SessionLocal
from docbridge.exceptions import DocumentNotFoundError
from docbridge.services.document_pipeline import DocumentPipeline, PipelineResult
from docbridge.services.document_service import DocumentContentService

logger = logging.getLogger(__name__)


def run_pipeline(db, document_id: int) -> dict:
    """
    Run the processing pipeline for one document and summarize the outcome.

    Failures are logged and reported in the summary instead of raised; the
    document stays unprocessed and nothing is retried.
    """
    try:
        document = DocumentContentService.get_document(db, document_id)
        result = DocumentPipeline().run(db, document)
        return result.to_dict()

    except DocumentNotFoundError as exc:
        logger.error(f"Cannot process document {document_id}: {exc}")
        return PipelineResult(document_id=document_id, status="failed", error=str(exc)).to_dict()

    except Exception as exc:
        logger.exception(f"Processing failed for document {document_id}: {exc}")
        db.rollback()
        return PipelineResult(document_id=document_id, status="failed", error=str(exc)).to_dict()


@celery_app.task(bind=True)
def process_document(self, document_id: int) -> dict:
    """
    Process an acknowledged document in the background.

    Args:
        document_id: Id of the document to process

    Returns:
        Dictionary with processing results
    """
    logger.info(f"Starting processing task {self.request.id} for document {document_id}")
    db = SessionLocal()
    try:
        return run_pipeline(db, document_id)
    finally:
        db.close()


def dispatch_processing_task(document_id: int) -> str:
    """
    Queue background processing for a document

    Returns:
        Task ID for tracking
    """
    task = process_document.delay(document_id)
    logger.info(f"Dispatched processing task {task.id} for document {document_id}")
    return task.id
