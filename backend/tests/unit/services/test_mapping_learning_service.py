import threading

import pytest
from unittest.mock import patch
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from docbridge import models
from docbridge.db import Base
from docbridge.enums import SuggestionMethod
from docbridge.services.mapping_learning_service import (
    MappingLearningService,
    PatternModel,
    create_model,
    extract_features,
)
from docbridge.services.mapping_store import MappingStore


@pytest.fixture
def pair(companies):
    sender, recipient = companies
    return sender.id, recipient.id


@pytest.fixture
def service(db_session):
    return MappingLearningService(db_session)


def _add(db_session, pair, code, target, confidence, usage_count=0):
    from_id, to_id = pair
    return MappingStore(db_session).create_or_update({
        "from_company_id": from_id,
        "to_company_id": to_id,
        "from_product_code": code,
        "to_product_code": target,
        "confidence_score": confidence,
        "usage_count": usage_count,
    })


class TestFeatures:

    def test_extract_features(self):
        features = extract_features("  Steel Bolt M8 ")

        assert features.length == 13
        assert features.word_count == 3
        assert features.has_numbers is True
        assert features.has_special_chars is False
        assert features.first_word == "steel"
        assert features.last_word == "m8"
        assert features.alphanumeric_ratio == pytest.approx(11 / 13)

    def test_special_characters(self):
        assert extract_features("WIDGET-9").has_special_chars is True

    def test_empty_code(self):
        features = extract_features("")

        assert features.word_count == 1
        assert features.first_word == ""
        assert features.alphanumeric_ratio == 0.0


class TestPatternModel:

    def test_predict_highest_confidence(self):
        model = PatternModel(patterns={"steel": [
            {"output": "ITEM-LOW", "confidence": 0.3},
            {"output": "ITEM-HIGH", "confidence": 0.9},
        ]})

        prediction = model.predict(extract_features("steel nut"))

        assert prediction.output == "ITEM-HIGH"
        assert prediction.confidence == 0.9

    def test_predict_unknown_first_word(self):
        assert PatternModel().predict(extract_features("copper pipe")) is None

    def test_create_model_groups_by_first_word(self, db_session, pair):
        mappings = [
            _add(db_session, pair, "steel bolt", "SB-1", 0.7),
            _add(db_session, pair, "steel nut", "SN-1", 0.9),
            _add(db_session, pair, "copper pipe", "CP-1", 0.6),
        ]

        model = create_model(mappings)

        assert set(model.patterns) == {"steel", "copper"}
        assert [p["output"] for p in model.patterns["steel"]] == ["SN-1", "SB-1"]
        assert model.training_samples == 3


class TestTraining:

    def test_not_enough_data(self, service, db_session, pair):
        _add(db_session, pair, "steel bolt", "SB-1", 0.7)

        result = service.train_mappings(*pair)

        assert result.trained is False
        assert result.message == "Not enough data for training"
        assert result.mappings_count == 1
        assert service.load_model(*pair) is None

    def test_train_persists_model(self, service, db_session, pair):
        _add(db_session, pair, "steel bolt", "SB-1", 0.7)
        _add(db_session, pair, "steel nut", "SN-1", 0.9)
        _add(db_session, pair, "copper pipe", "CP-1", 0.6)

        result = service.train_mappings(*pair)

        assert result.trained is True
        assert result.training_samples == 3
        # "steel bolt" predicts SN-1, the other two predict themselves
        assert result.model_accuracy == pytest.approx(2 / 3)
        loaded = service.load_model(*pair)
        assert loaded.patterns == result.model.patterns
        assert loaded.accuracy == pytest.approx(2 / 3)

    def test_retraining_replaces_model(self, service, db_session, pair):
        _add(db_session, pair, "steel bolt", "SB-1", 0.7)
        _add(db_session, pair, "steel nut", "SN-1", 0.9)
        service.train_mappings(*pair)
        _add(db_session, pair, "copper pipe", "CP-1", 0.6)

        service.train_mappings(*pair)

        assert db_session.query(models.MappingModel).count() == 1
        assert service.load_model(*pair).training_samples == 3

    def test_retraining_updates_model_row_in_place(self, service, db_session, pair):
        _add(db_session, pair, "steel bolt", "SB-1", 0.7)
        _add(db_session, pair, "steel nut", "SN-1", 0.9)
        first = service.save_model(*pair, PatternModel(patterns={"steel": []}, training_samples=2))

        second = service.save_model(*pair, PatternModel(patterns={"copper": []}, training_samples=5))

        assert second.id == first.id
        assert second.patterns == {"copper": []}
        assert second.training_samples == 5


class TestSuggest:
    """Test suggestion resolution order."""

    def test_exact_match(self, service, db_session, pair):
        mapping = _add(db_session, pair, "WIDGET-1", "ITEM-1", 0.9)

        suggestion = service.suggest(*pair, "WIDGET-1")

        assert suggestion.method == SuggestionMethod.EXACT_MATCH
        assert suggestion.suggestion == "ITEM-1"
        assert suggestion.confidence == 0.9
        assert suggestion.mapping_id == mapping.id

    def test_low_confidence_match_is_not_exact(self, service, db_session, pair):
        _add(db_session, pair, "WIDGET-1", "ITEM-1", 0.8)

        suggestion = service.suggest(*pair, "WIDGET-1")

        assert suggestion.method == SuggestionMethod.SIMILARITY_BASED
        assert suggestion.confidence == 1.0

    def test_pattern_based(self, service, db_session, pair):
        model = PatternModel(patterns={"steel": [{"output": "SB-1", "confidence": 0.7}]})

        suggestion = service.suggest(*pair, "steel washer", model=model)

        assert suggestion.method == SuggestionMethod.PATTERN_BASED
        assert suggestion.suggestion == "SB-1"
        assert suggestion.confidence == 0.7

    def test_stored_model_used_by_default(self, service, db_session, pair):
        _add(db_session, pair, "steel bolt", "SB-1", 0.7)
        _add(db_session, pair, "steel nut", "SN-1", 0.6)
        service.train_mappings(*pair)

        suggestion = service.suggest(*pair, "steel washer")

        assert suggestion.method == SuggestionMethod.PATTERN_BASED
        assert suggestion.suggestion == "SB-1"

    def test_weak_pattern_falls_through(self, service, db_session, pair):
        model = PatternModel(patterns={"steel": [{"output": "SB-1", "confidence": 0.5}]})

        suggestion = service.suggest(*pair, "steel washer", model=model)

        assert suggestion.method == SuggestionMethod.NONE

    def test_similarity_based(self, service, db_session, pair):
        _add(db_session, pair, "WIDGET-2", "ITEM-2", 0.5)

        suggestion = service.suggest(*pair, "WIDGET-9")

        assert suggestion.method == SuggestionMethod.SIMILARITY_BASED
        assert suggestion.suggestion == "ITEM-2"
        assert suggestion.based_on == "WIDGET-2"
        assert suggestion.confidence == pytest.approx(1 / 3)

    def test_no_suggestion(self, service, pair):
        suggestion = service.suggest(*pair, "GADGET-1")

        assert suggestion.method == SuggestionMethod.NONE
        assert suggestion.suggestion is None
        assert suggestion.confidence == 0.0

    def test_lookup_error_reported(self, service, pair):
        with patch.object(service.store, "find_best_match", side_effect=RuntimeError("db down")):
            suggestion = service.suggest(*pair, "WIDGET-1")

        assert suggestion.method == SuggestionMethod.ERROR
        assert suggestion.error == "db down"

    def test_lookup_error_rolls_back_session(self, service, db_session, pair):
        with patch.object(service.store, "find_best_match", side_effect=RuntimeError("db down")), \
                patch.object(db_session, "rollback", wraps=db_session.rollback) as rollback:
            service.suggest(*pair, "WIDGET-1")

        rollback.assert_called_once()
        assert service.suggest(*pair, "WIDGET-1").method == SuggestionMethod.NONE

    def test_blended_suggestion(self, service, db_session, pair):
        _add(db_session, pair, "WIDGET-2", "ITEM-2", 0.5)

        suggestion = service.blended_suggestion(*pair, "WIDGET-9")

        assert suggestion.suggestion == "ITEM-2"
        assert suggestion.confidence == pytest.approx((1 / 3 + 0.5) / 2)

    def test_blended_suggestion_none(self, service, pair):
        assert service.blended_suggestion(*pair, "GADGET-1") is None


class TestLearningStats:

    def test_stats(self, service, db_session, pair):
        _add(db_session, pair, "A", "1", 0.9, usage_count=10)
        _add(db_session, pair, "B", "2", 0.6, usage_count=4)
        _add(db_session, pair, "C", "3", 0.3, usage_count=1)

        stats = service.get_learning_stats(*pair)

        assert stats["total_mappings"] == 3
        assert stats["confidence_distribution"] == {"high": 1, "medium": 1, "low": 1}
        assert stats["average_usage_per_mapping"] == pytest.approx(5.0)
        assert stats["learning_progress"] == pytest.approx((0.6 + 0.5) / 2)

    def test_empty_stats(self, service, pair):
        stats = service.get_learning_stats(*pair)

        assert stats["total_mappings"] == 0
        assert stats["learning_progress"] == 0.0
        assert stats["average_usage_per_mapping"] == 0


class TestConcurrentTraining:
    """Several workers training the same pair at once."""

    def test_one_model_row_and_no_errors(self, tmp_path):
        engine = create_engine(
            f"sqlite+pysqlite:///{tmp_path / 'models.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        Base.metadata.create_all(bind=engine)
        Session = sessionmaker(bind=engine, autoflush=False, autocommit=False)
        with Session() as setup:
            sender = models.Company(name="Acme Supplies")
            recipient = models.Company(name="Globex Retail")
            setup.add_all([sender, recipient])
            setup.commit()
            pair = (sender.id, recipient.id)
            _add(setup, pair, "steel bolt", "SB-1", 0.7)
            _add(setup, pair, "steel nut", "SN-1", 0.9)

        workers = 4
        barrier = threading.Barrier(workers)
        errors = []

        def train():
            with Session() as session:
                service = MappingLearningService(session)
                barrier.wait()
                try:
                    for _ in range(3):
                        service.train_mappings(*pair)
                except Exception as e:
                    errors.append(e)

        threads = [threading.Thread(target=train) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        with Session() as check:
            assert check.query(models.MappingModel).count() == 1
        engine.dispose()
