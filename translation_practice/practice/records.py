"""
练习领域的数据结构：句子进度、练习记录、复习记录、复习队列项
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from translation_practice.practice.feedback import FeedbackItem, dump_feedback_items, parse_feedback_items
from translation_practice.practice.spaced_repetition import DEFAULT_EASINESS_FACTOR
from translation_practice.utils.helpers import parse_date


class DifficultyLevel(Enum):
    """练习难度"""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self]

    @classmethod
    def parse(cls, value: Any) -> "DifficultyLevel":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.INTERMEDIATE


_LEVEL_RANK = {
    DifficultyLevel.BEGINNER: 0,
    DifficultyLevel.INTERMEDIATE: 1,
    DifficultyLevel.ADVANCED: 2,
}


class UrgencyLevel(Enum):
    """复习紧急程度"""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"high": 0, "medium": 1, "low": 2}[self.value]


@dataclass
class ExerciseSummary:
    """练习的只读信息"""
    id: str
    title: str
    source_text: str
    level: DifficultyLevel = DifficultyLevel.INTERMEDIATE
    category: Optional[str] = None
    description: Optional[str] = None
    sentence_count: int = 0


@dataclass
class SentenceProgress:
    """练习中单个句子的进度"""
    original: str
    translation: str = ""
    is_completed: bool = False
    accuracy_score: Optional[int] = None
    incorrect_attempts: int = 0       # 低于通过线的提交次数
    retry_count: int = 0              # 主动重做次数
    show_translation: bool = False    # 仅用于展示
    suggestion: Optional[str] = None
    consecutive_failures: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "original": self.original,
            "translation": self.translation,
            "is_completed": self.is_completed,
            "accuracy_score": self.accuracy_score,
            "incorrect_attempts": self.incorrect_attempts,
            "retry_count": self.retry_count,
            "show_translation": self.show_translation,
            "suggestion": self.suggestion,
            "consecutive_failures": self.consecutive_failures,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SentenceProgress":
        return cls(
            original=data["original"],
            translation=data.get("translation") or "",
            is_completed=bool(data.get("is_completed", False)),
            accuracy_score=data.get("accuracy_score"),
            incorrect_attempts=data.get("incorrect_attempts") or 0,
            retry_count=data.get("retry_count") or 0,
            show_translation=bool(data.get("show_translation", False)),
            suggestion=data.get("suggestion"),
            consecutive_failures=data.get("consecutive_failures") or 0,
        )


@dataclass
class SentenceAttempt:
    """练习记录中单个句子的结果"""
    sentence_index: int
    user_input: str
    accuracy_score: int
    feedback: List[FeedbackItem] = field(default_factory=list)
    incorrect_attempts: int = 0
    retry_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sentence_index": self.sentence_index,
            "user_input": self.user_input,
            "accuracy_score": self.accuracy_score,
            "feedback": dump_feedback_items(self.feedback),
            "incorrect_attempts": self.incorrect_attempts,
            "retry_count": self.retry_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SentenceAttempt":
        return cls(
            sentence_index=data["sentence_index"],
            user_input=data.get("user_input") or "",
            accuracy_score=data.get("accuracy_score") or 0,
            feedback=parse_feedback_items(data.get("feedback")),
            incorrect_attempts=data.get("incorrect_attempts") or 0,
            retry_count=data.get("retry_count") or 0,
        )


@dataclass
class ExerciseAttempt:
    """一次完整练习的记录，每个练习只保留最近一次"""
    exercise_id: str
    attempt_number: int
    accuracy_score: int               # 扣分后的最终得分
    base_score: int
    total_incorrect_attempts: int = 0
    total_retries: int = 0
    total_penalty: int = 0
    points_earned: int = 0
    hints_used: int = 0
    user_input: str = ""
    sentence_attempts: List[SentenceAttempt] = field(default_factory=list)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class ReviewRecord:
    """某个练习的间隔重复数据"""
    exercise_id: str
    easiness_factor: float = DEFAULT_EASINESS_FACTOR
    interval: int = 0
    next_review_date: Optional[date] = None
    repetition_count: int = 0
    last_review_date: Optional[date] = None
    last_score: int = 0
    incorrect_sentence_indices: Set[int] = field(default_factory=set)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exercise_id": self.exercise_id,
            "easiness_factor": self.easiness_factor,
            "interval": self.interval,
            "next_review_date": self.next_review_date.isoformat() if self.next_review_date else None,
            "repetition_count": self.repetition_count,
            "last_review_date": self.last_review_date.isoformat() if self.last_review_date else None,
            "last_score": self.last_score,
            "incorrect_sentence_indices": sorted(self.incorrect_sentence_indices),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReviewRecord":
        return cls(
            exercise_id=data["exercise_id"],
            easiness_factor=data.get("easiness_factor") or DEFAULT_EASINESS_FACTOR,
            interval=data.get("interval") or 0,
            next_review_date=parse_date(data.get("next_review_date")),
            repetition_count=data.get("repetition_count") or 0,
            last_review_date=parse_date(data.get("last_review_date")),
            last_score=data.get("last_score") or 0,
            incorrect_sentence_indices=set(data.get("incorrect_sentence_indices") or []),
        )


@dataclass
class ReviewQueueItem:
    """复习队列中的一项"""
    exercise_id: str
    exercise: ExerciseSummary
    urgency: UrgencyLevel
    next_review_date: date
    last_score: int
    estimated_time: int               # 分钟
    incorrect_question_count: int
    record: ReviewRecord
