from unittest.mock import AsyncMock

import pytest

from conftest import FakeScorer
from translation_practice.practice.practice_session import PracticeSession, SessionMode
from translation_practice.practice.quick_review import QuickReviewSelector
from translation_practice.practice.records import ExerciseAttempt, SentenceAttempt, SentenceProgress

TEXT = "第一句。第二句。第三句。"


def prior_sentences():
    return [
        SentenceProgress(original="第一句。", translation="One.", is_completed=True, accuracy_score=100),
        SentenceProgress(original="第二句。", translation="Two.", is_completed=True,
                         accuracy_score=90, incorrect_attempts=1),
        SentenceProgress(original="第三句。", translation="Three.", is_completed=True,
                         accuracy_score=95, retry_count=2),
    ]


def new_session(handler=None, scores=None):
    session = PracticeSession("numbers", scorer=FakeScorer(scores), completion_handler=handler)
    session.initialize(TEXT)
    return session


def test_select_difficult_sentences():
    sentences = [
        SentenceProgress(original="a.", incorrect_attempts=0, retry_count=0),
        SentenceProgress(original="b.", incorrect_attempts=1, retry_count=0),
        SentenceProgress(original="c.", incorrect_attempts=2, retry_count=0),
    ]
    assert QuickReviewSelector().select_difficult(sentences) == [1, 2]

    sentences = [
        SentenceProgress(original="a.", retry_count=0),
        SentenceProgress(original="b.", retry_count=3),
        SentenceProgress(original="c.", retry_count=0),
    ]
    assert QuickReviewSelector().select_difficult(sentences) == [1]


def test_single_retry_is_not_difficult():
    sentences = [SentenceProgress(original="a.", retry_count=1)]
    assert QuickReviewSelector().select_difficult(sentences) == []


def test_select_from_attempt_is_sorted():
    attempt = ExerciseAttempt(
        exercise_id="numbers", attempt_number=1, accuracy_score=80, base_score=90,
        sentence_attempts=[
            SentenceAttempt(sentence_index=2, user_input="Three.", accuracy_score=90, retry_count=2),
            SentenceAttempt(sentence_index=0, user_input="One.", accuracy_score=90, incorrect_attempts=1),
            SentenceAttempt(sentence_index=1, user_input="Two.", accuracy_score=100),
        ],
    )
    assert QuickReviewSelector().select_from_attempt(attempt) == [0, 2]


def test_begin_without_difficult_sentences():
    session = new_session()
    easy = [SentenceProgress(original=s.original, is_completed=True, accuracy_score=100) for s in prior_sentences()]

    assert not QuickReviewSelector().begin(session, easy)
    assert session.mode == SessionMode.PRACTICE
    assert session.current_index == 0


def test_begin_prepares_session():
    session = new_session()
    selector = QuickReviewSelector()

    assert selector.begin(session, prior_sentences())

    assert session.is_quick_review
    assert session.quick_review_indices == [1, 2]
    assert session.current_index == 1
    assert session.sentences[0].is_completed
    assert session.sentences[0].show_translation
    assert session.sentences[0].translation == "One."
    assert not session.sentences[1].is_completed
    assert session.sentences[1].incorrect_attempts == 0

    progress = selector.progress(session)
    assert (progress.current, progress.total, progress.percentage) == (0, 2, 0)


@pytest.mark.asyncio
async def test_quick_review_walks_difficult_sentences_without_grading():
    handler = AsyncMock()
    session = new_session(handler=handler, scores=[100, 100])
    selector = QuickReviewSelector()
    selector.begin(session, prior_sentences())

    await session.submit("Two")
    assert session.current_index == 2
    assert selector.progress(session).percentage == 50

    result = await session.submit("Three")

    assert result.session_complete
    assert not result.completion.graded
    assert session.is_complete
    handler.assert_not_awaited()


def test_begin_from_attempt_restores_translations():
    session = new_session()
    attempt = ExerciseAttempt(
        exercise_id="numbers", attempt_number=1, accuracy_score=80, base_score=90,
        sentence_attempts=[
            SentenceAttempt(sentence_index=0, user_input="One.", accuracy_score=100),
            SentenceAttempt(sentence_index=1, user_input="Two.", accuracy_score=100),
            SentenceAttempt(sentence_index=2, user_input="Three.", accuracy_score=90, incorrect_attempts=2),
        ],
    )

    assert QuickReviewSelector().begin_from_attempt(session, attempt)
    assert session.current_index == 2
    assert session.sentences[1].translation == "Two."
