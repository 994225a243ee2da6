"""
快速复习：只重练上一次作答中出错或反复重做的句子，不计分也不安排复习
"""
import logging
from dataclasses import dataclass
from typing import List, Sequence

from translation_practice.config.settings import settings
from translation_practice.practice.practice_session import PracticeSession
from translation_practice.practice.records import ExerciseAttempt, SentenceProgress
from translation_practice.utils.helpers import round_half_up

logger = logging.getLogger(__name__)


@dataclass
class QuickReviewProgress:
    current: int
    total: int
    percentage: int


def _is_difficult(incorrect_attempts: int, retry_count: int) -> bool:
    return (incorrect_attempts or 0) >= 1 or (retry_count or 0) >= settings.QUICK_REVIEW_MIN_RETRIES


class QuickReviewSelector:
    """挑选难句并驱动练习会话在难句之间跳转"""

    def select_difficult(self, sentences: Sequence[SentenceProgress]) -> List[int]:
        """错误提交至少 1 次或重做至少 2 次的句子下标"""
        return [
            index for index, sentence in enumerate(sentences)
            if _is_difficult(sentence.incorrect_attempts, sentence.retry_count)
        ]

    def select_from_attempt(self, attempt: ExerciseAttempt) -> List[int]:
        """从保存的练习记录中挑选难句"""
        return sorted(
            sa.sentence_index for sa in attempt.sentence_attempts
            if _is_difficult(sa.incorrect_attempts, sa.retry_count)
        )

    def begin(self, session: PracticeSession, prior_sentences: Sequence[SentenceProgress]) -> bool:
        """
        让会话进入快速复习模式

        Args:
            session: 已按同一原文初始化的练习会话
            prior_sentences: 上一次作答的句子进度

        Returns:
            bool: 没有难句时返回 False，会话保持不变
        """
        indices = [i for i in self.select_difficult(prior_sentences) if i < len(session.sentences)]
        if not indices:
            logger.info(f"没有需要快速复习的句子: exercise={session.exercise_id}")
            return False

        translations = [s.translation for s in prior_sentences]
        self._prepare(session, indices, translations)
        return True

    def begin_from_attempt(self, session: PracticeSession, attempt: ExerciseAttempt) -> bool:
        """根据保存的练习记录进入快速复习"""
        indices = [i for i in self.select_from_attempt(attempt) if i < len(session.sentences)]
        if not indices:
            logger.info(f"历史记录中没有需要快速复习的句子: exercise={session.exercise_id}")
            return False

        translations = [""] * len(session.sentences)
        for sa in attempt.sentence_attempts:
            if 0 <= sa.sentence_index < len(translations):
                translations[sa.sentence_index] = sa.user_input
        self._prepare(session, indices, translations)
        return True

    @staticmethod
    def _prepare(session: PracticeSession, indices: List[int], translations: List[str]):
        selected = set(indices)
        for index, sentence in enumerate(session.sentences):
            if index in selected:
                session.sentences[index] = SentenceProgress(original=sentence.original)
            else:
                sentence.is_completed = True
                sentence.show_translation = True
                sentence.translation = translations[index] if index < len(translations) else ""

        session.enter_quick_review(indices)
        logger.info(f"进入快速复习: exercise={session.exercise_id}, 难句={indices}")

    def progress(self, session: PracticeSession) -> QuickReviewProgress:
        """已完成的难句数量和百分比"""
        indices = session.quick_review_indices
        if not indices:
            return QuickReviewProgress(current=0, total=0, percentage=0)
        completed = sum(1 for i in indices if session.sentences[i].is_completed)
        return QuickReviewProgress(
            current=completed,
            total=len(indices),
            percentage=round_half_up(completed * 100 / len(indices)),
        )
