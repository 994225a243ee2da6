import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from translation_practice.config.settings import settings
from translation_practice.practice.records import DifficultyLevel, SentenceProgress
from translation_practice.utils.helpers import round_half_up

logger = logging.getLogger(__name__)

# 不同难度的基础积分
BASE_POINTS = {
    DifficultyLevel.BEGINNER: 50,
    DifficultyLevel.INTERMEDIATE: 100,
    DifficultyLevel.ADVANCED: 150,
}


@dataclass(frozen=True)
class PenaltyMetrics:
    """练习完成时的扣分结果"""
    base_score: int
    total_incorrect_attempts: int
    total_retries: int
    total_penalty: int
    final_score: int


@dataclass(frozen=True)
class CurrentPenaltyMetrics:
    """练习进行中的实时得分"""
    current_average: int
    total_incorrect_attempts: int
    total_retries: int
    total_penalty: int
    current_score: int


class PenaltyScorer:
    """根据错误提交和重做次数计算扣分后的得分"""

    def __init__(self, incorrect_attempt_penalty: Optional[int] = None,
                 retry_penalty: Optional[int] = None):
        self.incorrect_attempt_penalty = (
            settings.INCORRECT_ATTEMPT_PENALTY if incorrect_attempt_penalty is None else incorrect_attempt_penalty
        )
        self.retry_penalty = settings.RETRY_PENALTY if retry_penalty is None else retry_penalty

    def _totals(self, sentences: List[SentenceProgress]):
        total_incorrect = sum(s.incorrect_attempts or 0 for s in sentences)
        total_retries = sum(s.retry_count or 0 for s in sentences)
        total_penalty = total_incorrect * self.incorrect_attempt_penalty + total_retries * self.retry_penalty
        return total_incorrect, total_retries, total_penalty

    @staticmethod
    def _average_accuracy(sentences: List[SentenceProgress]) -> Optional[float]:
        completed = [s for s in sentences if s.is_completed]
        if not completed:
            return None
        return sum(s.accuracy_score or 0 for s in completed) / len(completed)

    def compute_final_score(self, sentences: Iterable[SentenceProgress]) -> Optional[PenaltyMetrics]:
        """
        计算练习完成时的最终得分

        Args:
            sentences: 练习中的所有句子（基础分只统计已完成的句子）

        Returns:
            PenaltyMetrics: 扣分明细；没有任何已完成句子时返回 None
        """
        sentences = list(sentences)
        avg_accuracy = self._average_accuracy(sentences)
        if avg_accuracy is None:
            return None

        total_incorrect, total_retries, total_penalty = self._totals(sentences)
        final_score = max(0, round_half_up(avg_accuracy - total_penalty))

        metrics = PenaltyMetrics(
            base_score=round_half_up(avg_accuracy),
            total_incorrect_attempts=total_incorrect,
            total_retries=total_retries,
            total_penalty=total_penalty,
            final_score=final_score,
        )
        logger.debug(f"扣分计算: {metrics}")
        return metrics

    def compute_current_penalty(self, sentences: Iterable[SentenceProgress]) -> Optional[CurrentPenaltyMetrics]:
        """计算练习进行中的实时得分，用于界面展示"""
        sentences = list(sentences)
        avg_accuracy = self._average_accuracy(sentences)
        if avg_accuracy is None:
            return None

        total_incorrect, total_retries, total_penalty = self._totals(sentences)
        return CurrentPenaltyMetrics(
            current_average=round_half_up(avg_accuracy),
            total_incorrect_attempts=total_incorrect,
            total_retries=total_retries,
            total_penalty=total_penalty,
            current_score=round_half_up(max(0, avg_accuracy - total_penalty)),
        )


def calculate_exercise_points(level, attempt_count: int) -> int:
    """
    计算练习积分：首次完成拿全部基础分，之后每次乘以 0.8，最低保留基础分的 20%
    """
    base_points = BASE_POINTS[DifficultyLevel.parse(level)]
    if attempt_count <= 0:
        return base_points

    min_points = int(base_points * 0.2)
    calculated = int(base_points * (0.8 ** attempt_count))
    return max(calculated, min_points)
