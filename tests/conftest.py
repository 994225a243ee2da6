import asyncio
from typing import Any, Dict, List, Optional

import pytest

from translation_practice.practice.errors import StorageError
from translation_practice.practice.feedback import GrammarFeedback, ScoreResult, SuggestionFeedback
from translation_practice.practice.records import DifficultyLevel, ExerciseAttempt, ExerciseSummary, ReviewRecord
from translation_practice.practice.scorer import HintProvider, SentenceScorer
from translation_practice.services.storage_service import PracticeStorage


class FakeScorer(SentenceScorer):
    """按顺序返回预设分数的评分服务，列表中的异常会被抛出"""

    def __init__(self, scores=None, gate: Optional[asyncio.Event] = None):
        self.scores = list(scores or [])
        self.gate = gate
        self.calls = []

    async def score_sentence(self, user_input, context):
        self.calls.append((user_input, context))
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)

        score = self.scores.pop(0) if self.scores else 100
        if isinstance(score, Exception):
            raise score

        feedback = []
        if score < 100:
            feedback = [
                GrammarFeedback(original_text=user_input, suggestion="Use the past tense.",
                                explanation="时态错误", start_index=0, end_index=len(user_input)),
                SuggestionFeedback(suggestion="Try a more natural phrase."),
            ]
        return ScoreResult(accuracy_score=score, feedback=feedback)


class FakeHintProvider(HintProvider):
    def __init__(self, gate: Optional[asyncio.Event] = None):
        self.gate = gate
        self.calls = []

    async def generate_hint(self, source_sentence, user_input, previous_hints, context):
        self.calls.append((source_sentence, user_input, list(previous_hints)))
        if self.gate is not None:
            await self.gate.wait()
        return f"提示{len(previous_hints) + 1}"


class InMemoryStorage(PracticeStorage):
    """内存存储，可以模拟延迟和存储故障"""

    def __init__(self, delay: float = 0):
        self.delay = delay
        self.fail = False
        self.review_records: Dict[str, ReviewRecord] = {}
        self.attempts: Dict[str, ExerciseAttempt] = {}
        self.states: Dict[str, Dict[str, Any]] = {}
        self.load_all_calls = 0
        self.save_record_calls = 0

    async def _tick(self):
        await asyncio.sleep(self.delay)
        if self.fail:
            raise StorageError("存储不可用")

    async def load_review_record(self, exercise_id):
        await self._tick()
        return self.review_records.get(exercise_id)

    async def save_review_record(self, record):
        await self._tick()
        self.save_record_calls += 1
        self.review_records[record.exercise_id] = record

    async def load_all_review_records(self) -> List[ReviewRecord]:
        await self._tick()
        self.load_all_calls += 1
        return list(self.review_records.values())

    async def delete_review_record(self, exercise_id):
        await self._tick()
        return self.review_records.pop(exercise_id, None) is not None

    async def load_latest_attempt(self, exercise_id):
        await self._tick()
        return self.attempts.get(exercise_id)

    async def save_attempt(self, attempt):
        await self._tick()
        self.attempts[attempt.exercise_id] = attempt

    async def load_session_state(self, exercise_id):
        await self._tick()
        return self.states.get(exercise_id)

    async def save_session_state(self, exercise_id, state):
        await self._tick()
        self.states[exercise_id] = state

    async def clear_session_state(self, exercise_id):
        await self._tick()
        self.states.pop(exercise_id, None)


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def three_sentence_text():
    return "我喜欢猫。你呢？今天天气很好！"


@pytest.fixture
def exercises(three_sentence_text):
    return {
        "cats": ExerciseSummary(id="cats", title="猫", source_text=three_sentence_text,
                                level=DifficultyLevel.INTERMEDIATE, sentence_count=3),
        "morning": ExerciseSummary(id="morning", title="早晨", source_text="我六点起床。我喝水。",
                                   level=DifficultyLevel.BEGINNER, sentence_count=2),
    }


@pytest.fixture
def db_engine():
    """内存SQLite数据库，所有连接共享同一个库"""
    from sqlalchemy import create_engine
    from sqlalchemy.pool import StaticPool

    from translation_practice.models.base import Base
    from translation_practice.models import exercise, exercise_attempt, practice_progress, review_record  # noqa: F401

    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    from sqlalchemy.orm import sessionmaker
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
