import logging
from typing import Callable, Dict, Optional

from translation_practice.practice.errors import NotFound, StorageError
from translation_practice.practice.feedback import SuggestionFeedback
from translation_practice.practice.penalty import PenaltyMetrics, PenaltyScorer, calculate_exercise_points
from translation_practice.practice.practice_session import (
    CompletionResult, HintResult, PracticeSession, SubmissionResult
)
from translation_practice.practice.quick_review import QuickReviewSelector
from translation_practice.practice.records import ExerciseAttempt, ExerciseSummary, SentenceAttempt
from translation_practice.practice.scorer import HintProvider, SentenceScorer
from translation_practice.services.exercise_service import load_exercise_summary
from translation_practice.services.review_service import ReviewQueueManager
from translation_practice.services.storage_service import PracticeStorage

logger = logging.getLogger(__name__)


class PracticeService:
    """练习服务，管理进行中的练习会话，并在练习完成时记录成绩、安排复习"""

    def __init__(self, storage: PracticeStorage, review_manager: ReviewQueueManager,
                 scorer: SentenceScorer, hint_provider: Optional[HintProvider] = None,
                 exercise_loader: Callable[[str], Optional[ExerciseSummary]] = load_exercise_summary,
                 penalty_scorer: Optional[PenaltyScorer] = None):
        self.storage = storage
        self.review_manager = review_manager
        self.scorer = scorer
        self.hint_provider = hint_provider
        self.exercise_loader = exercise_loader
        self.penalty_scorer = penalty_scorer or PenaltyScorer()
        self.quick_review = QuickReviewSelector()

        # 活跃的练习会话 {exercise_id: PracticeSession}
        self.active_sessions: Dict[str, PracticeSession] = {}

        logger.info("练习服务初始化完成")

    def _load_exercise(self, exercise_id: str) -> ExerciseSummary:
        exercise = self.exercise_loader(exercise_id)
        if exercise is None:
            raise NotFound(f"练习不存在: {exercise_id}")
        return exercise

    def _new_session(self, exercise: ExerciseSummary) -> PracticeSession:
        # 切换练习时放弃其他会话中尚未返回的评分/提示请求
        for exercise_id in list(self.active_sessions):
            self.abandon(exercise_id)

        session = PracticeSession(
            exercise_id=exercise.id,
            scorer=self.scorer,
            hint_provider=self.hint_provider,
            storage=self.storage,
            penalty_scorer=self.penalty_scorer,
            completion_handler=self._on_complete,
            level=exercise.level.value,
        )
        session.initialize(exercise.source_text)
        self.active_sessions[exercise.id] = session
        return session

    async def start_session(self, exercise_id: str, resume: bool = True) -> PracticeSession:
        """
        开始练习

        Args:
            exercise_id: 练习ID
            resume: 是否从保存的会话快照继续

        Returns:
            PracticeSession: 新的练习会话
        """
        exercise = self._load_exercise(exercise_id)
        session = self._new_session(exercise)

        if resume:
            try:
                state = await self.storage.load_session_state(exercise_id)
            except StorageError as e:
                logger.warning(f"读取会话快照失败，从头开始: {exercise_id}, 错误: {e}")
                state = None
            if state:
                session.restore_state(state)

        logger.info(f"练习开始: {exercise_id}, 当前句子={session.current_index}/{session.total_sentences}")
        return session

    def get_session(self, exercise_id: str) -> PracticeSession:
        session = self.active_sessions.get(exercise_id)
        if session is None:
            raise NotFound(f"练习会话不存在: {exercise_id}")
        return session

    async def submit(self, exercise_id: str, user_input: str) -> SubmissionResult:
        return await self.get_session(exercise_id).submit(user_input)

    def retry(self, exercise_id: str) -> PracticeSession:
        session = self.get_session(exercise_id)
        session.retry()
        return session

    async def advance(self, exercise_id: str) -> Optional[CompletionResult]:
        return await self.get_session(exercise_id).advance()

    async def hint(self, exercise_id: str, user_input: str = "") -> HintResult:
        return await self.get_session(exercise_id).hint(user_input)

    def abandon(self, exercise_id: str) -> bool:
        """放弃练习会话，不等待进行中的请求"""
        session = self.active_sessions.pop(exercise_id, None)
        if session is None:
            return False
        session.abandon()
        return True

    async def _load_latest_attempt(self, exercise_id: str) -> Optional[ExerciseAttempt]:
        """读取最近一次练习记录；存储不可用时记录日志后抛出，调用方可以稍后重试，进行中的会话保持不变"""
        try:
            return await self.storage.load_latest_attempt(exercise_id)
        except StorageError as e:
            logger.warning(f"读取练习记录失败，请稍后重试: {exercise_id}, 错误: {e}")
            raise

    async def start_quick_review(self, exercise_id: str) -> Optional[PracticeSession]:
        """
        快速复习上一次作答中的难句

        Returns:
            PracticeSession: 进入快速复习模式的会话；没有难句时返回 None
        """
        exercise = self._load_exercise(exercise_id)
        previous = self.active_sessions.get(exercise_id)

        if previous is not None and previous.is_complete and previous.is_graded:
            prior_sentences = list(previous.sentences)
            session = self._new_session(exercise)
            if self.quick_review.begin(session, prior_sentences):
                return session
        else:
            attempt = await self._load_latest_attempt(exercise_id)
            if attempt is None:
                raise NotFound(f"练习还没有完成记录: {exercise_id}")
            session = self._new_session(exercise)
            if self.quick_review.begin_from_attempt(session, attempt):
                return session

        self.abandon(exercise_id)
        return None

    async def open_attempt(self, exercise_id: str) -> PracticeSession:
        """以只读模式打开最近一次练习记录"""
        exercise = self._load_exercise(exercise_id)
        attempt = await self._load_latest_attempt(exercise_id)
        if attempt is None:
            raise NotFound(f"练习还没有完成记录: {exercise_id}")

        session = self._new_session(exercise)
        session.load_attempt(attempt)
        return session

    async def _on_complete(self, session: PracticeSession, metrics: PenaltyMetrics) -> ExerciseAttempt:
        """正式练习完成：保存练习记录、清除会话快照并安排复习"""
        exercise_id = session.exercise_id

        try:
            previous = await self.storage.load_latest_attempt(exercise_id)
        except StorageError as e:
            logger.warning(f"读取上次练习记录失败: {exercise_id}, 错误: {e}")
            previous = None
        attempt_count = previous.attempt_number if previous else 0

        attempt = ExerciseAttempt(
            exercise_id=exercise_id,
            attempt_number=attempt_count + 1,
            accuracy_score=metrics.final_score,
            base_score=metrics.base_score,
            total_incorrect_attempts=metrics.total_incorrect_attempts,
            total_retries=metrics.total_retries,
            total_penalty=metrics.total_penalty,
            points_earned=calculate_exercise_points(session.level, attempt_count),
            hints_used=session.total_hints_used,
            user_input=" ".join(s.translation for s in session.sentences if s.translation),
            sentence_attempts=[
                SentenceAttempt(
                    sentence_index=index,
                    user_input=s.translation,
                    accuracy_score=s.accuracy_score or 0,
                    feedback=[SuggestionFeedback(suggestion=s.suggestion)] if s.suggestion else [],
                    incorrect_attempts=s.incorrect_attempts,
                    retry_count=s.retry_count,
                )
                for index, s in enumerate(session.sentences)
            ],
        )

        try:
            await self.storage.save_attempt(attempt)
            await self.storage.clear_session_state(exercise_id)
        except StorageError as e:
            logger.error(f"保存练习记录失败: {exercise_id}, 错误: {e}")

        difficult = self.quick_review.select_difficult(session.sentences)
        await self.review_manager.schedule_next_review(exercise_id, metrics.final_score, difficult)

        logger.info(
            f"练习记录完成: {exercise_id}, 第{attempt.attempt_number}次, "
            f"得分={attempt.accuracy_score}, 积分={attempt.points_earned}"
        )
        return attempt
