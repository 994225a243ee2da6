import asyncio
from datetime import date, timedelta

import pytest

from conftest import InMemoryStorage
from translation_practice.practice.records import DifficultyLevel, ExerciseSummary, ReviewRecord, UrgencyLevel
from translation_practice.services.review_service import QueueSortKey, ReviewQueueManager

TODAY = date(2024, 3, 10)


class FakeTimer:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def summary(exercise_id, level=DifficultyLevel.INTERMEDIATE, sentence_count=5):
    return ExerciseSummary(id=exercise_id, title=exercise_id, source_text="句子。",
                           level=level, sentence_count=sentence_count)


def record(exercise_id, days_from_today, last_score=80, **kwargs):
    return ReviewRecord(exercise_id=exercise_id, next_review_date=TODAY + timedelta(days=days_from_today),
                        last_score=last_score, **kwargs)


@pytest.fixture
def timer():
    return FakeTimer()


@pytest.fixture
def catalog():
    return {
        "overdue": summary("overdue", DifficultyLevel.ADVANCED),
        "today": summary("today", DifficultyLevel.BEGINNER),
        "tomorrow": summary("tomorrow", DifficultyLevel.INTERMEDIATE),
        "later": summary("later"),
    }


@pytest.fixture
def manager(storage, catalog, timer):
    def load(ids):
        return {i: catalog[i] for i in ids if i in catalog}
    return ReviewQueueManager(storage, load, clock=lambda: TODAY, timer=timer, cache_ttl_seconds=300)


class TestUrgency:

    @pytest.mark.parametrize("days, urgency", [
        (-1, UrgencyLevel.HIGH),
        (-10, UrgencyLevel.HIGH),
        (0, UrgencyLevel.MEDIUM),
        (1, UrgencyLevel.MEDIUM),
        (2, UrgencyLevel.LOW),
    ])
    def test_calculate_urgency(self, days, urgency):
        assert ReviewQueueManager.calculate_urgency(TODAY + timedelta(days=days), TODAY) == urgency

    def test_estimate_review_time(self):
        assert ReviewQueueManager.estimate_review_time(summary("a", sentence_count=5), record("a", 0, 80)) == 10
        assert ReviewQueueManager.estimate_review_time(
            summary("a", DifficultyLevel.ADVANCED, 5), record("a", 0, 50)) == 20
        assert ReviewQueueManager.estimate_review_time(
            summary("a", DifficultyLevel.BEGINNER, 4), record("a", 0, 90)) == 6


class TestQueue:

    def test_queue_sorted_by_urgency_then_date(self, manager, catalog):
        records = [
            record("later", 5),
            record("tomorrow", 1),
            record("overdue", -3),
            record("today", 0),
            record("missing", -5),
        ]
        queue = manager.build_queue(records, catalog, today=TODAY)

        assert [item.exercise_id for item in queue] == ["overdue", "today", "tomorrow", "later"]
        assert queue[0].urgency == UrgencyLevel.HIGH
        assert queue[-1].urgency == UrgencyLevel.LOW

    def test_queue_secondary_sort_by_difficulty(self, manager, catalog):
        records = [record("tomorrow", 0), record("today", 1)]
        by_date = manager.build_queue(records, catalog, QueueSortKey.NEXT_REVIEW_DATE, TODAY)
        by_difficulty = manager.build_queue(records, list(catalog.values()), QueueSortKey.DIFFICULTY, TODAY)

        assert [item.exercise_id for item in by_date] == ["tomorrow", "today"]
        assert [item.exercise_id for item in by_difficulty] == ["today", "tomorrow"]

    def test_queue_item_counts_incorrect_sentences(self, manager, catalog):
        queue = manager.build_queue([record("today", 0, incorrect_sentence_indices={0, 3})], catalog, today=TODAY)
        assert queue[0].incorrect_question_count == 2


class TestScheduling:

    @pytest.mark.asyncio
    async def test_first_schedule_creates_record(self, manager, storage):
        saved = await manager.schedule_next_review("today", 100, [1, 2])

        assert saved.repetition_count == 1
        assert saved.interval == 1
        assert saved.next_review_date == TODAY + timedelta(days=1)
        assert saved.last_review_date == TODAY
        assert saved.incorrect_sentence_indices == {1, 2}
        assert storage.review_records["today"] == saved

    @pytest.mark.asyncio
    async def test_second_schedule_uses_existing_record(self, manager, storage):
        await manager.schedule_next_review("today", 100)
        saved = await manager.schedule_next_review("today", 100)

        assert saved.repetition_count == 2
        assert saved.interval == 3
        assert saved.incorrect_sentence_indices == set()

    @pytest.mark.asyncio
    async def test_existing_incorrect_indices_kept_when_not_given(self, manager, storage):
        storage.review_records["today"] = record("today", 0, interval=3, incorrect_sentence_indices={4})
        saved = await manager.schedule_next_review("today", 90)
        assert saved.incorrect_sentence_indices == {4}

    @pytest.mark.asyncio
    async def test_concurrent_schedule_writes_once(self, manager, catalog, timer):
        storage = InMemoryStorage(delay=0.01)
        manager.storage = storage

        results = await asyncio.gather(
            manager.schedule_next_review("today", 100),
            manager.schedule_next_review("today", 100),
        )

        assert sum(1 for r in results if r is None) == 1
        assert storage.save_record_calls == 1
        assert storage.review_records["today"].repetition_count == 1
        assert not manager.is_scheduling("today")

    @pytest.mark.asyncio
    async def test_storage_failure_returns_none_and_releases_guard(self, manager, storage):
        storage.fail = True
        assert await manager.schedule_next_review("today", 80) is None
        assert not manager.is_scheduling("today")

        storage.fail = False
        assert await manager.schedule_next_review("today", 80) is not None

    @pytest.mark.asyncio
    async def test_remove_exercise(self, manager, storage):
        await manager.schedule_next_review("today", 80)
        assert await manager.remove_exercise("today")
        assert not await manager.remove_exercise("today")
        assert await manager.get_review_queue() == []


class TestCache:

    @pytest.mark.asyncio
    async def test_queue_uses_cache_within_ttl(self, manager, storage, timer):
        storage.review_records["today"] = record("today", 0)

        await manager.get_review_queue()
        await manager.get_review_queue()
        assert storage.load_all_calls == 1
        assert manager.get_cached_review_record("today") is not None

        timer.now = 301
        await manager.get_review_queue()
        assert storage.load_all_calls == 2

    @pytest.mark.asyncio
    async def test_schedule_invalidates_cache(self, manager, storage):
        await manager.get_review_queue()
        await manager.schedule_next_review("today", 90)

        queue = await manager.get_review_queue()
        assert [item.exercise_id for item in queue] == ["today"]
        assert storage.load_all_calls == 2

    @pytest.mark.asyncio
    async def test_storage_failure_falls_back_to_cache(self, manager, storage, timer):
        storage.review_records["overdue"] = record("overdue", -2)
        await manager.get_review_queue()

        timer.now = 1000
        storage.fail = True
        queue = await manager.get_review_queue()
        assert [item.exercise_id for item in queue] == ["overdue"]

    @pytest.mark.asyncio
    async def test_storage_failure_without_cache_gives_empty_queue(self, manager, storage):
        storage.fail = True
        assert await manager.get_review_queue() == []
        assert manager.get_cached_review_record("today") is None


class TestDueReviews:

    @pytest.mark.asyncio
    async def test_due_reviews_and_summary(self, manager, storage):
        storage.review_records = {
            "overdue": record("overdue", -1, last_score=50),
            "today": record("today", 0, last_score=85),
            "tomorrow": record("tomorrow", 1, last_score=40),
        }

        due = await manager.get_due_reviews()
        assert [item.exercise_id for item in due] == ["overdue", "today"]

        summary_ = await manager.check_due_reviews()
        assert summary_.count == 2
        assert summary_.urgent_count == 1

    @pytest.mark.asyncio
    async def test_review_stats(self, manager, storage):
        storage.review_records = {
            "today": record("today", 0, repetition_count=3, last_review_date=TODAY - timedelta(days=2)),
            "later": record("later", 4, repetition_count=1, last_review_date=TODAY - timedelta(days=20)),
        }

        stats = await manager.get_review_stats()
        assert stats.reviews_this_week == 1
        assert stats.total_reviews_completed == 4
        assert stats.exercises_in_review == 2


class SlowReadStorage(InMemoryStorage):
    """读取全部记录时先取快照，等放行后才返回"""

    def __init__(self):
        super().__init__()
        self.read_gate = asyncio.Event()

    async def load_all_review_records(self):
        snapshot = list(self.review_records.values())
        await self.read_gate.wait()
        self.load_all_calls += 1
        return snapshot


class TestCacheOrdering:

    @pytest.mark.asyncio
    async def test_read_overlapping_a_write_does_not_fill_cache(self, manager):
        storage = SlowReadStorage()
        manager.storage = storage

        reading = asyncio.create_task(manager.get_review_queue())
        await asyncio.sleep(0)

        await manager.schedule_next_review("today", 80)
        storage.read_gate.set()
        assert await reading == []

        queue = await manager.get_review_queue()
        assert [item.exercise_id for item in queue] == ["today"]
        assert storage.load_all_calls == 2
