import logging

import pytest

from docbridge.exceptions import MappingNotFoundError
from docbridge.services.feedback_service import FeedbackService
from docbridge.services.mapping_store import MappingStore


@pytest.fixture
def mapping(db_session, companies):
    sender, recipient = companies

    def _make(confidence):
        return MappingStore(db_session).create_or_update({
            "from_company_id": sender.id,
            "to_company_id": recipient.id,
            "from_product_code": "WIDGET-1",
            "to_product_code": "ITEM-1",
            "confidence_score": confidence,
        })

    return _make


class TestApplyFeedback:
    """Test confidence adjustment from reviewer feedback."""

    def test_accept_raises_confidence(self, db_session, mapping):
        target = mapping(0.5)

        result = FeedbackService.apply_feedback(db_session, target.id, accepted=True)

        assert result.success is True
        assert result.previous_confidence == 0.5
        assert result.new_confidence == pytest.approx(0.6)
        assert result.retraining_recommended is False

    def test_reject_lowers_confidence(self, db_session, mapping):
        target = mapping(0.5)

        result = FeedbackService.apply_feedback(db_session, target.id, accepted=False)

        assert result.new_confidence == pytest.approx(0.4)

    def test_accept_clamped_at_one(self, db_session, mapping):
        target = mapping(0.95)

        result = FeedbackService.apply_feedback(db_session, target.id, accepted=True)

        assert result.new_confidence == 1.0

    def test_reject_clamped_at_zero(self, db_session, mapping):
        target = mapping(0.05)

        result = FeedbackService.apply_feedback(db_session, target.id, accepted=False)

        assert result.new_confidence == 0.0

    def test_feedback_counts_as_usage(self, db_session, mapping):
        target = mapping(0.5)

        FeedbackService.apply_feedback(db_session, target.id, accepted=True)

        assert MappingStore(db_session).find_by_id(target.id).usage_count == 1

    def test_large_change_recommends_retraining(self, db_session, mapping, caplog):
        target = mapping(0.5)

        with caplog.at_level(logging.WARNING, logger="docbridge.services.feedback_service"):
            result = FeedbackService.apply_feedback(db_session, target.id, accepted=True, adjustment=0.3)

        assert result.new_confidence == pytest.approx(0.8)
        assert result.retraining_recommended is True
        assert "should be retrained" in caplog.text

    def test_unknown_mapping(self, db_session):
        with pytest.raises(MappingNotFoundError):
            FeedbackService.apply_feedback(db_session, 12345, accepted=True)
