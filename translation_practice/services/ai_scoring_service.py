import json
import logging
from typing import List

from pydantic import ValidationError

from translation_practice.practice.errors import ScoringError
from translation_practice.practice.feedback import ScoreResult, SentenceContext
from translation_practice.practice.prompt_templates import (
    HINT_SYSTEM_PROMPT, SCORING_SYSTEM_PROMPT, build_hint_prompt, build_scoring_prompt
)
from translation_practice.practice.scorer import HintProvider, SentenceScorer
from translation_practice.utils.helpers import extract_json_block
from translation_practice.utils.llm_client import LLMClient

logger = logging.getLogger(__name__)


class LLMTranslationScorer(SentenceScorer):
    """基于大模型的译文评分服务"""

    def __init__(self, llm_client: LLMClient, temperature: float = 0.3):
        self.llm_client = llm_client
        self.temperature = temperature
        logger.info("AI评分服务初始化完成")

    async def score_sentence(self, user_input: str, context: SentenceContext) -> ScoreResult:
        """
        调用大模型给译文打分

        Args:
            user_input: 学生译文
            context: 当前句子及上下文

        Returns:
            ScoreResult: 准确度得分和反馈条目

        Raises:
            ScoringError: 调用失败、超时或返回内容无法解析
        """
        prompt = build_scoring_prompt(user_input, context)
        try:
            response = await self.llm_client.complete(SCORING_SYSTEM_PROMPT, prompt, temperature=self.temperature)
        except Exception as e:
            logger.error(f"AI评分调用失败: {e}")
            raise ScoringError(f"评分服务暂时不可用: {e}") from e

        result = self.parse_score_response(response)
        logger.info(f"AI评分完成: 得分={result.accuracy_score}, 反馈数={len(result.feedback)}")
        return result

    @staticmethod
    def parse_score_response(response: str) -> ScoreResult:
        """解析模型返回的评分JSON"""
        json_text = extract_json_block(response)
        if json_text is None:
            logger.error(f"评分结果中没有JSON: {response[:200] if response else response}")
            raise ScoringError("评分结果格式错误")

        try:
            data = json.loads(json_text)
            return ScoreResult.from_raw(data)
        except (json.JSONDecodeError, ValidationError, AttributeError) as e:
            logger.error(f"评分结果解析失败: {e}")
            raise ScoringError(f"评分结果格式错误: {e}") from e


class LLMHintProvider(HintProvider):
    """基于大模型的翻译提示服务"""

    def __init__(self, llm_client: LLMClient, temperature: float = 0.7, max_tokens: int = 200):
        self.llm_client = llm_client
        self.temperature = temperature
        self.max_tokens = max_tokens
        logger.info("AI提示服务初始化完成")

    async def generate_hint(self, source_sentence: str, user_input: str,
                            previous_hints: List[str], context: SentenceContext) -> str:
        prompt = build_hint_prompt(source_sentence, user_input, previous_hints, context)
        try:
            response = await self.llm_client.complete(
                HINT_SYSTEM_PROMPT, prompt,
                temperature=self.temperature,
                max_tokens=self.max_tokens
            )
        except Exception as e:
            logger.error(f"AI提示调用失败: {e}")
            raise ScoringError(f"提示服务暂时不可用: {e}") from e

        hint = (response or "").strip()
        if not hint:
            raise ScoringError("提示服务返回了空内容")
        return hint
