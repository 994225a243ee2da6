"""
逐句翻译练习的状态机

每个句子: 待完成 -> 已完成（得分 >= 通过线），重做是已完成状态上的计数自环。
整个练习: 进行中（current_index < 句子数） -> 已完成。
"""
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from translation_practice.config.settings import settings
from translation_practice.practice.errors import InvalidInput, ScoringError, StorageError
from translation_practice.practice.feedback import (
    FeedbackItem, ScoreResult, SentenceContext, extract_suggestion
)
from translation_practice.practice.penalty import PenaltyMetrics, PenaltyScorer
from translation_practice.practice.records import ExerciseAttempt, SentenceProgress
from translation_practice.practice.scorer import HintProvider, SentenceScorer

logger = logging.getLogger(__name__)

_SENTENCE_PATTERN = re.compile(r"[^.!?。！？]+[.!?。！？]+")
_TERMINAL_PUNCTUATION = ".!?,;:"
# 中文标点在英文译文中对应的半角标点
_FULL_WIDTH_PUNCTUATION = {"。": ".", "！": "!", "？": "?", "，": ",", "；": ";", "：": ":"}

CompletionHandler = Callable[["PracticeSession", PenaltyMetrics], Awaitable[Any]]


def split_sentences(text: str) -> List[str]:
    """按句末标点切分原文，最后一个句末标点之后的文字会被忽略"""
    if not text:
        return []
    sentences = []
    for match in _SENTENCE_PATTERN.findall(text):
        sentence = match.strip()
        if sentence:
            sentences.append(sentence)
    return sentences


def add_smart_punctuation(user_input: str, source_sentence: str) -> str:
    """学生译文缺少句末标点时，按原句的句末标点补上，默认补句号"""
    text = user_input.rstrip()
    if not text or text[-1] in _TERMINAL_PUNCTUATION:
        return text

    last_char = source_sentence.strip()[-1:] if source_sentence else ""
    if last_char in _TERMINAL_PUNCTUATION:
        return text + last_char
    if last_char in _FULL_WIDTH_PUNCTUATION:
        return text + _FULL_WIDTH_PUNCTUATION[last_char]
    return text + "."


def should_auto_advance(score: Optional[int]) -> bool:
    """满分时自动进入下一句"""
    return score is not None and score == settings.PERFECT_SCORE


class SessionMode(Enum):
    """练习模式"""
    PRACTICE = "practice"            # 正式练习，完成后计分并安排复习
    QUICK_REVIEW = "quick_review"    # 只重练难句，不计分
    REVIEW = "review"                # 查看历史记录，只读


class SubmissionStatus(Enum):
    """提交结果"""
    ACCEPTED = "accepted"        # 达到通过线
    NEEDS_RETRY = "needs_retry"  # 未达到通过线，句子保持待完成
    ERROR = "error"              # 评分服务失败，可重新提交
    DISCARDED = "discarded"      # 会话已放弃或句子已切换，结果被丢弃


@dataclass
class CompletionResult:
    """练习完成时的结果"""
    metrics: Optional[PenaltyMetrics]
    graded: bool
    outcome: Any = None          # 完成回调的返回值（例如保存的练习记录）


@dataclass
class SubmissionResult:
    """一次提交的处理结果"""
    status: SubmissionStatus
    sentence_index: int
    user_input: str
    accuracy_score: Optional[int] = None
    feedback: List[FeedbackItem] = field(default_factory=list)
    auto_advanced: bool = False
    was_last_sentence: bool = False
    can_skip: bool = False
    completion: Optional[CompletionResult] = None
    error: Optional[str] = None

    @property
    def retryable(self) -> bool:
        return self.status == SubmissionStatus.ERROR

    @property
    def session_complete(self) -> bool:
        return self.completion is not None


@dataclass
class HintResult:
    """一次提示请求的结果"""
    status: str                  # shown / error / discarded
    hint: Optional[str] = None
    hints_remaining: int = 0
    error: Optional[str] = None


class PracticeSession:
    """单个练习的一次作答过程"""

    def __init__(self, exercise_id: str, scorer: SentenceScorer,
                 hint_provider: Optional[HintProvider] = None,
                 storage=None,
                 penalty_scorer: Optional[PenaltyScorer] = None,
                 completion_handler: Optional[CompletionHandler] = None,
                 level: str = "intermediate"):
        self.exercise_id = exercise_id
        self.scorer = scorer
        self.hint_provider = hint_provider
        self.storage = storage
        self.penalty_scorer = penalty_scorer or PenaltyScorer()
        self.completion_handler = completion_handler
        self.level = level

        self.source_text = ""
        self.sentences: List[SentenceProgress] = []
        self.current_index = 0
        self.mode = SessionMode.PRACTICE
        self.quick_review_indices: List[int] = []

        # 当前句子的临时状态
        self.hints_shown = 0
        self.previous_hints: List[str] = []
        self.current_hint: Optional[str] = None
        self.last_feedback: List[FeedbackItem] = []
        self.last_score: Optional[int] = None

        self.total_hints_used = 0
        self.abandoned = False
        self.completion: Optional[CompletionResult] = None

        self._epoch = 0
        self._submitting = False
        self._hint_pending = False

    # ---- 状态查询 ----

    @property
    def total_sentences(self) -> int:
        return len(self.sentences)

    @property
    def is_complete(self) -> bool:
        return self.current_index >= len(self.sentences)

    @property
    def is_graded(self) -> bool:
        return self.mode == SessionMode.PRACTICE

    @property
    def is_quick_review(self) -> bool:
        return self.mode == SessionMode.QUICK_REVIEW

    @property
    def current_sentence(self) -> Optional[SentenceProgress]:
        if self.is_complete:
            return None
        return self.sentences[self.current_index]

    @property
    def has_more_hints(self) -> bool:
        return self.hints_shown < settings.MAX_HINTS_PER_SENTENCE

    @property
    def can_skip(self) -> bool:
        sentence = self.current_sentence
        return sentence is not None and sentence.consecutive_failures >= settings.MAX_CONSECUTIVE_FAILURES

    @property
    def is_submitting(self) -> bool:
        return self._submitting

    # ---- 初始化与快照 ----

    def initialize(self, source_text: str):
        """根据原文初始化句子进度"""
        self.source_text = source_text or ""
        self.sentences = [SentenceProgress(original=s) for s in split_sentences(self.source_text)]
        self.current_index = 0
        self.mode = SessionMode.PRACTICE
        self.quick_review_indices = []
        self.total_hints_used = 0
        self.completion = None
        self._reset_sentence_state()
        logger.info(f"练习会话初始化完成: exercise={self.exercise_id}, 句子数={len(self.sentences)}")

    def get_state(self) -> Dict[str, Any]:
        """导出可持久化的会话快照"""
        return {
            "sentences": [s.to_dict() for s in self.sentences],
            "current_index": self.current_index,
            "hints_shown": self.hints_shown,
            "previous_hints": list(self.previous_hints),
            "current_hint": self.current_hint,
            "total_hints_used": self.total_hints_used,
        }

    def restore_state(self, state: Dict[str, Any]) -> bool:
        """
        从快照恢复会话

        Returns:
            bool: 快照与当前原文一致并成功恢复时返回 True
        """
        raw_sentences = state.get("sentences") or []
        restored = [SentenceProgress.from_dict(s) for s in raw_sentences]
        if self.sentences and [s.original for s in restored] != [s.original for s in self.sentences]:
            logger.warning(f"会话快照与练习原文不一致，忽略快照: exercise={self.exercise_id}")
            return False

        self.sentences = restored
        self.current_index = min(max(int(state.get("current_index", 0)), 0), len(restored))
        self.hints_shown = int(state.get("hints_shown", 0))
        self.previous_hints = list(state.get("previous_hints") or [])
        self.current_hint = state.get("current_hint")
        self.total_hints_used = int(state.get("total_hints_used", 0))
        logger.info(f"会话快照已恢复: exercise={self.exercise_id}, 当前句子={self.current_index}")
        return True

    def load_attempt(self, attempt: ExerciseAttempt):
        """查看历史记录：用保存的作答填充句子并直接跳到结尾"""
        for sentence_attempt in attempt.sentence_attempts:
            index = sentence_attempt.sentence_index
            if 0 <= index < len(self.sentences):
                sentence = self.sentences[index]
                sentence.translation = sentence_attempt.user_input
                sentence.accuracy_score = sentence_attempt.accuracy_score
                sentence.incorrect_attempts = sentence_attempt.incorrect_attempts
                sentence.retry_count = sentence_attempt.retry_count
                sentence.is_completed = True
                sentence.show_translation = True
        self.mode = SessionMode.REVIEW
        self.current_index = len(self.sentences)
        self._reset_sentence_state()
        logger.info(f"已加载历史记录: exercise={self.exercise_id}, 第{attempt.attempt_number}次")

    def enter_quick_review(self, indices: List[int]):
        """进入快速复习模式，从第一个难句开始"""
        if not indices:
            raise InvalidInput("快速复习需要至少一个句子")
        self.quick_review_indices = sorted(indices)
        self.mode = SessionMode.QUICK_REVIEW
        self.current_index = self.quick_review_indices[0]
        self.completion = None
        self._reset_sentence_state()

    # ---- 作答 ----

    def _require_active(self):
        if self.abandoned:
            raise InvalidInput("练习会话已放弃")
        if self.is_complete:
            raise InvalidInput("练习已完成，没有待作答的句子")

    def build_context(self, index: int) -> SentenceContext:
        translated = [s.translation for s in self.sentences[:index] if s.is_completed and s.translation]
        return SentenceContext(
            source_sentence=self.sentences[index].original,
            full_source_text=self.source_text,
            translated_context=" ".join(translated),
            level=self.level,
        )

    async def submit(self, user_input: str) -> SubmissionResult:
        """
        提交当前句子的译文

        Args:
            user_input: 学生译文

        Returns:
            SubmissionResult: 处理结果；评分服务失败时 status 为 error，状态不变

        Raises:
            InvalidInput: 输入为空、练习已完成或上一次提交尚未返回
        """
        text = (user_input or "").strip()
        if not text:
            raise InvalidInput("译文不能为空")
        self._require_active()
        if self._submitting:
            raise InvalidInput("上一次提交尚未完成")

        index = self.current_index
        sentence = self.sentences[index]
        text = add_smart_punctuation(text, sentence.original)
        context = self.build_context(index)
        epoch = self._epoch

        # 评分、保存快照和自动进入下一句完成前都不接受新的提交
        self._submitting = True
        try:
            try:
                result = await self.scorer.score_sentence(text, context)
            except ScoringError as e:
                logger.warning(f"句子评分失败: exercise={self.exercise_id}, 句子={index}, 错误: {e}")
                if epoch != self._epoch:
                    return SubmissionResult(status=SubmissionStatus.DISCARDED, sentence_index=index, user_input=text)
                return SubmissionResult(status=SubmissionStatus.ERROR, sentence_index=index,
                                        user_input=text, error=str(e))

            if epoch != self._epoch or self.current_index != index:
                logger.info(f"丢弃过期的评分结果: exercise={self.exercise_id}, 句子={index}")
                return SubmissionResult(status=SubmissionStatus.DISCARDED, sentence_index=index, user_input=text)

            return await self._apply_score(index, text, result)
        finally:
            self._submitting = False

    async def _apply_score(self, index: int, text: str, result: ScoreResult) -> SubmissionResult:
        sentence = self.sentences[index]
        score = result.accuracy_score
        self.last_score = score
        self.last_feedback = list(result.feedback)

        if score < settings.ADVANCE_THRESHOLD:
            sentence.incorrect_attempts += 1
            sentence.consecutive_failures += 1
            logger.info(f"句子未通过: 句子={index}, 得分={score}, 错误次数={sentence.incorrect_attempts}")
            return SubmissionResult(
                status=SubmissionStatus.NEEDS_RETRY,
                sentence_index=index,
                user_input=text,
                accuracy_score=score,
                feedback=self.last_feedback,
                can_skip=self.can_skip,
            )

        sentence.translation = text
        sentence.is_completed = True
        sentence.accuracy_score = score
        sentence.suggestion = extract_suggestion(result.feedback)
        sentence.consecutive_failures = 0
        logger.info(f"句子通过: 句子={index}, 得分={score}")

        await self._persist()

        was_last = self._next_index(index) >= len(self.sentences)
        auto_advanced = False
        completion = None
        if should_auto_advance(score):
            completion = await self._advance()
            auto_advanced = True

        return SubmissionResult(
            status=SubmissionStatus.ACCEPTED,
            sentence_index=index,
            user_input=text,
            accuracy_score=score,
            feedback=self.last_feedback,
            auto_advanced=auto_advanced,
            was_last_sentence=was_last,
            completion=completion,
        )

    def retry(self):
        """重做当前句子：记一次重做，清除反馈和提示，不改变完成状态"""
        self._require_active()
        if self._submitting:
            raise InvalidInput("提交进行中，不能重做")

        sentence = self.sentences[self.current_index]
        sentence.retry_count += 1
        sentence.consecutive_failures = 0
        self._reset_sentence_state()
        logger.info(f"重做句子: 句子={self.current_index}, 重做次数={sentence.retry_count}")

    async def advance(self) -> Optional[CompletionResult]:
        """
        进入下一句

        Returns:
            CompletionResult: 越过最后一句时返回完成结果，否则返回 None

        Raises:
            InvalidInput: 当前句子未完成且未达到可跳过条件
        """
        self._require_active()
        if self._submitting:
            raise InvalidInput("提交进行中，不能切换句子")

        sentence = self.sentences[self.current_index]
        if not sentence.is_completed and not self.can_skip:
            raise InvalidInput("当前句子尚未完成")
        return await self._advance()

    async def _advance(self) -> Optional[CompletionResult]:
        sentence = self.sentences[self.current_index]
        sentence.show_translation = True
        previous = self.current_index
        self.current_index = self._next_index(previous)
        self._reset_sentence_state()
        logger.debug(f"句子切换: {previous} -> {self.current_index}")

        if self.is_complete:
            return await self._complete()
        return None

    def _next_index(self, index: int) -> int:
        if self.is_quick_review:
            for candidate in self.quick_review_indices:
                if candidate > index:
                    return candidate
            return len(self.sentences)
        return index + 1

    async def _complete(self) -> CompletionResult:
        if self.completion is not None:
            return self.completion

        metrics = self.penalty_scorer.compute_final_score(self.sentences)
        self.completion = CompletionResult(metrics=metrics, graded=self.is_graded)

        if metrics is None:
            logger.warning(f"练习结束但没有已完成的句子，不计分: exercise={self.exercise_id}")
            return self.completion

        logger.info(
            f"练习完成: exercise={self.exercise_id}, 模式={self.mode.value}, "
            f"最终得分={metrics.final_score}, 扣分={metrics.total_penalty}"
        )
        if self.is_graded and self.completion_handler is not None:
            self.completion.outcome = await self.completion_handler(self, metrics)
        return self.completion

    async def hint(self, user_input: str = "") -> HintResult:
        """
        获取当前句子的提示，每句最多 3 次

        Raises:
            InvalidInput: 提示次数已用完、没有提示服务或已有提示请求进行中
        """
        self._require_active()
        if not self.has_more_hints:
            raise InvalidInput("本句提示次数已用完")
        if self.hint_provider is None:
            raise InvalidInput("未配置提示服务")
        if self._hint_pending:
            raise InvalidInput("上一次提示请求尚未完成")

        index = self.current_index
        epoch = self._epoch
        self._hint_pending = True
        try:
            hint_text = await self.hint_provider.generate_hint(
                self.sentences[index].original,
                (user_input or "").strip(),
                list(self.previous_hints),
                self.build_context(index),
            )
        except ScoringError as e:
            logger.warning(f"获取提示失败: exercise={self.exercise_id}, 句子={index}, 错误: {e}")
            return HintResult(status="error", hints_remaining=self._hints_remaining(), error=str(e))
        finally:
            self._hint_pending = False

        if epoch != self._epoch or self.current_index != index:
            logger.info(f"丢弃过期的提示: exercise={self.exercise_id}, 句子={index}")
            return HintResult(status="discarded")

        self.current_hint = hint_text
        self.previous_hints.append(hint_text)
        self.hints_shown += 1
        self.total_hints_used += 1
        return HintResult(status="shown", hint=hint_text, hints_remaining=self._hints_remaining())

    def abandon(self):
        """放弃会话，之后到达的评分/提示结果都会被丢弃"""
        self._epoch += 1
        self.abandoned = True
        logger.info(f"练习会话已放弃: exercise={self.exercise_id}")

    # ---- 内部工具 ----

    def _hints_remaining(self) -> int:
        return max(settings.MAX_HINTS_PER_SENTENCE - self.hints_shown, 0)

    def _reset_sentence_state(self):
        self.hints_shown = 0
        self.previous_hints = []
        self.current_hint = None
        self.last_feedback = []
        self.last_score = None

    async def _persist(self):
        if self.storage is None or not self.is_graded:
            return
        try:
            await self.storage.save_session_state(self.exercise_id, self.get_state())
        except StorageError as e:
            logger.warning(f"保存会话快照失败，继续使用内存状态: exercise={self.exercise_id}, 错误: {e}")
