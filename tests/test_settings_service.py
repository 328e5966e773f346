"""
Tests for the quota policy and short-answer questions.
"""
import pytest

from app.core.errors import CorruptSettingError, ValidationError
from app.db.postgres import get_db_session
from app.schemas.schemas import ShortAnswerQuestion
from app.services.settings_service import (
    SettingsStore, SETTINGS_KEY_REVIEWS_PER_APPLICATION, validate_reviews_per_application
)


def _quota():
    with get_db_session() as db:
        return SettingsStore(db).get_reviews_per_application()


def _store_raw(key: str, raw: str):
    with get_db_session() as db:
        SettingsStore(db).upsert(key, raw)


class TestQuotaPolicy:

    def test_default_is_three(self):
        assert _quota() == 3

    def test_set_and_get(self, set_quota):
        set_quota(5)
        assert _quota() == 5

    @pytest.mark.parametrize("raw,expected", [("0", 1), ("-4", 1), ("11", 10), ("250", 10), ("7", 7)])
    def test_stored_value_clamped_on_read(self, raw, expected):
        _store_raw(SETTINGS_KEY_REVIEWS_PER_APPLICATION, raw)
        assert _quota() == expected

    @pytest.mark.parametrize("value", [0, 11, -1])
    def test_out_of_range_rejected(self, value):
        with pytest.raises(ValidationError):
            validate_reviews_per_application(value)

    def test_rejected_value_is_not_stored(self, set_quota):
        set_quota(4)
        with pytest.raises(ValidationError):
            set_quota(11)
        assert _quota() == 4

    @pytest.mark.parametrize("raw", ['"three"', "3.5", "true", "{oops"])
    def test_non_integer_is_corrupt(self, raw):
        _store_raw(SETTINGS_KEY_REVIEWS_PER_APPLICATION, raw)
        with pytest.raises(CorruptSettingError):
            _quota()


class TestShortAnswerQuestions:

    def test_empty_when_unset(self):
        with get_db_session() as db:
            assert SettingsStore(db).get_short_answer_questions() == []

    def test_replace_and_sorted_by_display_order(self):
        questions = [
            ShortAnswerQuestion(id="why", question="Why attend?", required=True, display_order=2),
            ShortAnswerQuestion(id="build", question="What will you build?", display_order=1),
        ]
        with get_db_session() as db:
            SettingsStore(db).update_short_answer_questions(questions)

        with get_db_session() as db:
            stored = SettingsStore(db).get_short_answer_questions()
        assert [q.id for q in stored] == ["build", "why"]
        assert stored[1].required is True

    def test_duplicate_ids_rejected(self):
        questions = [
            ShortAnswerQuestion(id="why", question="Why attend?"),
            ShortAnswerQuestion(id="why", question="Why again?"),
        ]
        with pytest.raises(ValidationError, match="duplicate"):
            with get_db_session() as db:
                SettingsStore(db).update_short_answer_questions(questions)
