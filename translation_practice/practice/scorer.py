"""
练习核心依赖的外部协作者接口：句子评分、提示生成
"""
from abc import ABC, abstractmethod
from typing import List

from translation_practice.practice.feedback import ScoreResult, SentenceContext


class SentenceScorer(ABC):
    """句子评分服务"""

    @abstractmethod
    async def score_sentence(self, user_input: str, context: SentenceContext) -> ScoreResult:
        """
        给学生译文打分

        Raises:
            ScoringError: 评分服务暂时不可用
        """


class HintProvider(ABC):
    """翻译提示服务"""

    @abstractmethod
    async def generate_hint(self, source_sentence: str, user_input: str,
                            previous_hints: List[str], context: SentenceContext) -> str:
        """
        生成一条递进式提示，previous_hints 为本句已经给出的提示

        Raises:
            ScoringError: 提示服务暂时不可用
        """
