import pytest
from unittest.mock import patch

from docbridge import models
from docbridge.enums import DocumentStatus
from docbridge.exceptions import DocumentNotReadyError
from docbridge.services.document_service import DocumentContentService
from docbridge.services.mapping_store import MappingStore
from docbridge.services.review_service import ReviewService


@pytest.fixture
def processed_document(db_session, make_document):
    document = make_document(status=DocumentStatus.PROCESSED)
    DocumentContentService.upsert_document_field(db_session, document.id, "product_description", "Steel Bolt", 0.7)
    DocumentContentService.upsert_document_field(db_session, document.id, "quantity", "100", 0.7)
    return document


class TestGetDocumentForReview:

    def test_requires_processed_document(self, db_session, make_document):
        document = make_document(status=DocumentStatus.DELIVERED)

        with pytest.raises(DocumentNotReadyError):
            ReviewService.get_document_for_review(db_session, document.id)

    def test_product_fields_get_suggestions(self, db_session, processed_document):
        mapping = MappingStore(db_session).create_or_update({
            "from_company_id": processed_document.sender_company_id,
            "to_company_id": processed_document.recipient_company_id,
            "from_product_code": "Steel Bolt",
            "to_product_code": "SB-100",
            "confidence_score": 0.85,
        })

        review = ReviewService.get_document_for_review(db_session, processed_document.id)

        content = {item["field_name"]: item for item in review["content"]}
        assert content["product_description"]["suggested_mapping"] == "SB-100"
        assert content["product_description"]["mapping_confidence"] == 0.85
        assert content["product_description"]["mapping_id"] == mapping.id
        assert content["quantity"]["suggested_mapping"] is None
        assert review["status"] == "processed"


class TestSubmitReview:
    """Test applying reviewer-confirmed values."""

    def test_product_field_creates_manual_mapping(self, db_session, processed_document):
        results = ReviewService.submit_review(
            db_session,
            processed_document.id,
            [{"field_name": "product_description", "original_value": "Steel Bolt", "mapped_value": "SB-100"}],
            user_id=3,
        )

        assert results[0]["success"] is True
        mapping = MappingStore(db_session).find_by_id(results[0]["product_mapping_id"])
        assert mapping.from_product_code == "Steel Bolt"
        assert mapping.to_product_code == "SB-100"
        assert mapping.confidence_score == 1.0
        assert mapping.is_manual is True
        assert mapping.created_by == 3

    def test_field_stored_verified_and_correction_logged(self, db_session, processed_document):
        ReviewService.submit_review(
            db_session,
            processed_document.id,
            [{"field_name": "quantity", "original_value": "100", "mapped_value": "120", "confidence_score": 0.95}],
        )

        fields = {f.field_name: f for f in DocumentContentService.get_document_content(db_session, processed_document.id)}
        assert fields["quantity"].field_value == "120"
        assert fields["quantity"].is_verified is True
        assert fields["quantity"].confidence_score == 0.95

        corrections = db_session.query(models.FieldCorrection).all()
        assert len(corrections) == 1
        assert corrections[0].original_value == "100"
        assert corrections[0].mapped_value == "120"
        assert db_session.query(models.ProductMapping).count() == 0

    def test_repeat_review_reinforces_mapping(self, db_session, processed_document):
        item = {"field_name": "product_code", "original_value": "SB", "mapped_value": "SB-100"}

        ReviewService.submit_review(db_session, processed_document.id, [item])
        results = ReviewService.submit_review(db_session, processed_document.id, [item])

        mapping = MappingStore(db_session).find_by_id(results[0]["product_mapping_id"])
        assert mapping.usage_count == 1
        assert db_session.query(models.ProductMapping).count() == 1

    def test_item_failure_is_reported(self, db_session, processed_document):
        with patch(
            "docbridge.services.review_service.MappingStore.create_or_update",
            side_effect=RuntimeError("constraint violated"),
        ):
            results = ReviewService.submit_review(
                db_session,
                processed_document.id,
                [{"field_name": "product_code", "original_value": "SB", "mapped_value": "SB-100"}],
            )

        assert results[0]["success"] is False
        assert results[0]["error"] == "constraint violated"
        # The failed item leaves no partial writes behind
        assert db_session.query(models.FieldCorrection).count() == 0
        fields = {f.field_name for f in DocumentContentService.get_document_content(db_session, processed_document.id)}
        assert "product_code" not in fields
