import threading
from datetime import date

import pytest

from translation_practice.models.base import Base
from translation_practice.practice.errors import StorageError
from translation_practice.practice.feedback import SuggestionFeedback, VocabularyFeedback
from translation_practice.practice.records import ExerciseAttempt, ReviewRecord, SentenceAttempt
from translation_practice.services.storage_service import SqlPracticeStorage


@pytest.fixture
def sql_storage(session_factory):
    return SqlPracticeStorage(session_factory)


def make_attempt(number, score):
    return ExerciseAttempt(
        exercise_id="cats", attempt_number=number, accuracy_score=score, base_score=score + 5,
        total_incorrect_attempts=1, total_penalty=5, points_earned=80, hints_used=2,
        user_input="I like cats.",
        sentence_attempts=[
            SentenceAttempt(
                sentence_index=0, user_input="I like cats.", accuracy_score=score + 5, incorrect_attempts=1,
                feedback=[
                    VocabularyFeedback(original_text="like", suggestion="love", explanation="语气更强",
                                       start_index=2, end_index=6, severity="minor"),
                    SuggestionFeedback(suggestion="Good job."),
                ],
            )
        ],
    )


@pytest.mark.asyncio
async def test_review_record_round_trip(sql_storage):
    record = ReviewRecord(exercise_id="cats", easiness_factor=2.36, interval=3,
                          next_review_date=date(2024, 3, 13), repetition_count=2,
                          last_review_date=date(2024, 3, 10), last_score=80,
                          incorrect_sentence_indices={2, 0})
    await sql_storage.save_review_record(record)

    loaded = await sql_storage.load_review_record("cats")
    assert loaded == record
    assert await sql_storage.load_review_record("dogs") is None


@pytest.mark.asyncio
async def test_review_record_overwritten(sql_storage):
    await sql_storage.save_review_record(ReviewRecord(exercise_id="cats", interval=1, repetition_count=1))
    await sql_storage.save_review_record(ReviewRecord(exercise_id="cats", interval=3, repetition_count=2))

    records = await sql_storage.load_all_review_records()
    assert len(records) == 1
    assert records[0].interval == 3

    assert await sql_storage.delete_review_record("cats")
    assert not await sql_storage.delete_review_record("cats")
    assert await sql_storage.load_all_review_records() == []


@pytest.mark.asyncio
async def test_only_latest_attempt_kept(sql_storage):
    await sql_storage.save_attempt(make_attempt(1, 70))
    await sql_storage.save_attempt(make_attempt(2, 85))

    loaded = await sql_storage.load_latest_attempt("cats")
    assert loaded.attempt_number == 2
    assert loaded.accuracy_score == 85
    assert loaded.hints_used == 2

    feedback = loaded.sentence_attempts[0].feedback
    assert [item.type for item in feedback] == ["vocabulary", "suggestion"]
    assert feedback[0].severity == "minor"
    assert feedback[0].start_index == 2


@pytest.mark.asyncio
async def test_session_state_lifecycle(sql_storage):
    assert await sql_storage.load_session_state("cats") is None

    await sql_storage.save_session_state("cats", {"current_index": 0, "sentences": []})
    await sql_storage.save_session_state("cats", {"current_index": 1, "sentences": []})
    state = await sql_storage.load_session_state("cats")
    assert state["current_index"] == 1

    await sql_storage.clear_session_state("cats")
    assert await sql_storage.load_session_state("cats") is None


@pytest.mark.asyncio
async def test_database_errors_become_storage_errors(sql_storage, db_engine):
    Base.metadata.drop_all(bind=db_engine)

    with pytest.raises(StorageError):
        await sql_storage.load_all_review_records()
    with pytest.raises(StorageError):
        await sql_storage.save_session_state("cats", {"current_index": 0})


@pytest.mark.asyncio
async def test_database_calls_run_off_event_loop_thread(session_factory):
    loop_thread = threading.get_ident()
    seen = []

    def tracking_factory():
        seen.append(threading.get_ident())
        return session_factory()

    storage = SqlPracticeStorage(tracking_factory)
    await storage.save_session_state("cats", {"current_index": 1})
    assert await storage.load_session_state("cats") == {"current_index": 1}

    assert len(seen) == 2
    assert loop_thread not in seen
