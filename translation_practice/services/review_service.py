import logging
import time
from dataclasses import dataclass, replace
from datetime import date, timedelta
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Set, Union

from translation_practice.config.settings import settings
from translation_practice.practice.errors import SchedulingConflict, StorageError
from translation_practice.practice.records import (
    DifficultyLevel, ExerciseSummary, ReviewQueueItem, ReviewRecord, UrgencyLevel
)
from translation_practice.practice.spaced_repetition import DEFAULT_EASINESS_FACTOR, calculate_next_interval
from translation_practice.services.storage_service import PracticeStorage
from translation_practice.utils.helpers import days_between, round_half_up

logger = logging.getLogger(__name__)

# 每个句子预计复习时间（分钟）
MINUTES_PER_SENTENCE = 2
LEVEL_TIME_MULTIPLIER = {
    DifficultyLevel.BEGINNER: 0.8,
    DifficultyLevel.INTERMEDIATE: 1.0,
    DifficultyLevel.ADVANCED: 1.3,
}
LOW_SCORE_THRESHOLD = 60

ExerciseLoader = Callable[[List[str]], Dict[str, ExerciseSummary]]


class QueueSortKey(Enum):
    """同一紧急程度内的排序方式"""
    NEXT_REVIEW_DATE = "next_review_date"
    DIFFICULTY = "difficulty"


@dataclass
class DueReviewSummary:
    count: int
    urgent_count: int


@dataclass
class ReviewStats:
    reviews_this_week: int
    total_reviews_completed: int
    exercises_in_review: int


class ReviewQueueManager:
    """复习队列管理：汇总所有练习的复习记录，计算紧急程度并安排下一次复习"""

    def __init__(self, storage: PracticeStorage, exercise_loader: ExerciseLoader,
                 clock: Callable[[], date] = date.today,
                 timer: Callable[[], float] = time.monotonic,
                 cache_ttl_seconds: Optional[int] = None):
        self.storage = storage
        self.exercise_loader = exercise_loader
        self.clock = clock
        self.timer = timer
        self.cache_ttl_seconds = settings.REVIEW_CACHE_TTL_SECONDS if cache_ttl_seconds is None else cache_ttl_seconds

        self._records_cache: Optional[List[ReviewRecord]] = None
        self._record_index: Dict[str, ReviewRecord] = {}
        self._cache_timestamp: Optional[float] = None
        # 每次清除缓存加一，读取期间发生过写入时不回填缓存
        self._cache_generation = 0

        # 正在调度中的练习ID
        self._scheduling: Set[str] = set()

        logger.info("复习队列服务初始化完成")

    # ---- 纯计算 ----

    @staticmethod
    def calculate_urgency(next_review_date: date, today: date) -> UrgencyLevel:
        """
        计算复习紧急程度（只比较日期）

        已过期 -> HIGH，今天或明天 -> MEDIUM，更晚 -> LOW
        """
        days_until = days_between(today, next_review_date)
        if days_until < 0:
            return UrgencyLevel.HIGH
        if days_until <= 1:
            return UrgencyLevel.MEDIUM
        return UrgencyLevel.LOW

    @staticmethod
    def estimate_review_time(exercise: ExerciseSummary, record: ReviewRecord) -> int:
        """预计复习时间（分钟）：每句 2 分钟，按难度和上次得分调整"""
        base_time = exercise.sentence_count * MINUTES_PER_SENTENCE
        level_multiplier = LEVEL_TIME_MULTIPLIER.get(DifficultyLevel.parse(exercise.level), 1.0)
        performance_multiplier = 1.5 if record.last_score < LOW_SCORE_THRESHOLD else 1.0
        return round_half_up(base_time * level_multiplier * performance_multiplier)

    def build_queue(self, records: Iterable[ReviewRecord],
                    exercises: Union[Dict[str, ExerciseSummary], Iterable[ExerciseSummary]],
                    secondary: QueueSortKey = QueueSortKey.NEXT_REVIEW_DATE,
                    today: Optional[date] = None) -> List[ReviewQueueItem]:
        """
        构建复习队列

        Args:
            records: 复习记录
            exercises: 练习信息（按练习ID索引的字典或列表）
            secondary: 同一紧急程度内的排序方式
            today: 基准日期，默认取当前日期

        Returns:
            List[ReviewQueueItem]: 按紧急程度和次要排序键排好的队列，找不到练习的记录会被跳过
        """
        if not isinstance(exercises, dict):
            exercises = {exercise.id: exercise for exercise in exercises}
        today = today or self.clock()

        items = []
        for record in records:
            exercise = exercises.get(record.exercise_id)
            if exercise is None:
                logger.debug(f"复习记录对应的练习不存在，跳过: {record.exercise_id}")
                continue

            next_review_date = record.next_review_date or today
            items.append(ReviewQueueItem(
                exercise_id=record.exercise_id,
                exercise=exercise,
                urgency=self.calculate_urgency(next_review_date, today),
                next_review_date=next_review_date,
                last_score=record.last_score,
                estimated_time=self.estimate_review_time(exercise, record),
                incorrect_question_count=len(record.incorrect_sentence_indices),
                record=record,
            ))

        if secondary == QueueSortKey.DIFFICULTY:
            items.sort(key=lambda item: (item.urgency.rank, DifficultyLevel.parse(item.exercise.level).rank))
        else:
            items.sort(key=lambda item: (item.urgency.rank, item.next_review_date))
        return items

    # ---- 调度 ----

    async def schedule_next_review(self, exercise_id: str, performance: int,
                                   incorrect_indices: Optional[Iterable[int]] = None) -> Optional[ReviewRecord]:
        """
        根据本次得分安排下一次复习

        同一练习同时只允许一个调度操作，重复调用会被忽略。

        Args:
            exercise_id: 练习ID
            performance: 本次最终得分（0-100）
            incorrect_indices: 出错的句子下标，为 None 时保留原记录中的值

        Returns:
            ReviewRecord: 保存后的复习记录；重复调用或存储失败时返回 None
        """
        if exercise_id in self._scheduling:
            conflict = SchedulingConflict(exercise_id)
            logger.warning(f"{conflict}，忽略重复调用")
            return None

        self._scheduling.add(exercise_id)
        try:
            today = self.clock()
            existing = await self.storage.load_review_record(exercise_id)

            if existing:
                schedule = calculate_next_interval(existing.interval, existing.easiness_factor, performance, today)
                record = replace(
                    existing,
                    easiness_factor=schedule.easiness_factor,
                    interval=schedule.interval,
                    next_review_date=schedule.next_review_date,
                    repetition_count=existing.repetition_count + 1,
                    last_review_date=today,
                    last_score=performance,
                    incorrect_sentence_indices=set(existing.incorrect_sentence_indices),
                )
            else:
                schedule = calculate_next_interval(0, DEFAULT_EASINESS_FACTOR, performance, today)
                record = ReviewRecord(
                    exercise_id=exercise_id,
                    easiness_factor=schedule.easiness_factor,
                    interval=schedule.interval,
                    next_review_date=schedule.next_review_date,
                    repetition_count=1,
                    last_review_date=today,
                    last_score=performance,
                )

            if incorrect_indices is not None:
                record.incorrect_sentence_indices = set(incorrect_indices)

            await self.storage.save_review_record(record)
            self.invalidate_cache()

            logger.info(
                f"复习已安排: {exercise_id}, 得分={performance}, 间隔={record.interval}天, "
                f"下次复习={record.next_review_date}, 复习次数={record.repetition_count}"
            )
            return record

        except StorageError as e:
            logger.error(f"安排复习失败，等待下次触发重试: {exercise_id}, 错误: {e}")
            return None
        finally:
            self._scheduling.discard(exercise_id)

    def is_scheduling(self, exercise_id: str) -> bool:
        return exercise_id in self._scheduling

    async def remove_exercise(self, exercise_id: str) -> bool:
        """练习被删除时删除对应的复习记录"""
        try:
            deleted = await self.storage.delete_review_record(exercise_id)
        except StorageError as e:
            logger.error(f"删除复习记录失败: {exercise_id}, 错误: {e}")
            return False
        self.invalidate_cache()
        return deleted

    # ---- 读取 ----

    def _is_cache_valid(self) -> bool:
        return (
            self._records_cache is not None
            and self._cache_timestamp is not None
            and self.timer() - self._cache_timestamp < self.cache_ttl_seconds
        )

    def _update_cache(self, records: List[ReviewRecord]):
        self._records_cache = list(records)
        self._record_index = {record.exercise_id: record for record in records}
        self._cache_timestamp = self.timer()

    def invalidate_cache(self):
        """清除复习记录缓存，下一次读取会重新从存储加载"""
        self._cache_generation += 1
        self._records_cache = None
        self._record_index = {}
        self._cache_timestamp = None

    def get_cached_review_record(self, exercise_id: str) -> Optional[ReviewRecord]:
        """从缓存中获取单个练习的复习记录，缓存失效时返回 None"""
        if self._is_cache_valid():
            return self._record_index.get(exercise_id)
        return None

    async def _load_records(self) -> List[ReviewRecord]:
        if self._is_cache_valid():
            logger.debug("使用缓存的复习记录")
            return list(self._records_cache)

        generation = self._cache_generation
        try:
            records = await self.storage.load_all_review_records()
        except StorageError as e:
            logger.error(f"加载复习记录失败: {e}")
            if self._records_cache is not None:
                logger.info("存储不可用，使用缓存的复习记录")
                return list(self._records_cache)
            return []

        if generation == self._cache_generation:
            self._update_cache(records)
        else:
            logger.debug("读取期间复习记录已更新，不缓存本次结果")
        return records

    async def get_review_queue(self, secondary: QueueSortKey = QueueSortKey.NEXT_REVIEW_DATE) -> List[ReviewQueueItem]:
        """获取复习队列"""
        records = await self._load_records()
        if not records:
            return []
        exercises = self.exercise_loader([record.exercise_id for record in records])
        return self.build_queue(records, exercises, secondary)

    async def get_due_reviews(self) -> List[ReviewQueueItem]:
        """获取今天及之前到期的复习项"""
        today = self.clock()
        queue = await self.get_review_queue()
        return [item for item in queue if item.next_review_date <= today]

    async def check_due_reviews(self) -> DueReviewSummary:
        """统计到期复习数量，其中上次得分低于 60 的视为紧急"""
        today = self.clock()
        records = await self._load_records()
        due = [r for r in records if r.next_review_date is not None and r.next_review_date <= today]
        urgent = [r for r in due if r.last_score < LOW_SCORE_THRESHOLD]
        return DueReviewSummary(count=len(due), urgent_count=len(urgent))

    async def get_review_stats(self) -> ReviewStats:
        """复习统计：本周复习次数、累计复习次数"""
        week_ago = self.clock() - timedelta(days=7)
        records = await self._load_records()
        return ReviewStats(
            reviews_this_week=sum(
                1 for r in records if r.last_review_date is not None and r.last_review_date >= week_ago
            ),
            total_reviews_completed=sum(r.repetition_count for r in records),
            exercises_in_review=len(records),
        )
