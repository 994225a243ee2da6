"""
评分结果与反馈条目

反馈条目是一个封闭的标签联合：grammar / vocabulary / structure / spelling / suggestion。
前四类都指向学生译文中的一段文字，suggestion 只给出整体改进建议。
"""
import logging
from dataclasses import dataclass
from typing import Annotated, Any, Dict, Iterable, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class _FeedbackBase(BaseModel):
    # 模型返回 camelCase 字段，内部统一使用 snake_case
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class _SpanFeedback(_FeedbackBase):
    original_text: str = ""
    suggestion: str = ""
    explanation: str = ""
    start_index: int = 0
    end_index: int = 0
    severity: Optional[Literal["minor", "moderate", "major", "serious"]] = None


class GrammarFeedback(_SpanFeedback):
    type: Literal["grammar"] = "grammar"


class VocabularyFeedback(_SpanFeedback):
    type: Literal["vocabulary"] = "vocabulary"


class StructureFeedback(_SpanFeedback):
    type: Literal["structure"] = "structure"


class SpellingFeedback(_SpanFeedback):
    type: Literal["spelling"] = "spelling"


class SuggestionFeedback(_FeedbackBase):
    type: Literal["suggestion"] = "suggestion"
    suggestion: str
    explanation: str = ""


FeedbackItem = Annotated[
    Union[GrammarFeedback, VocabularyFeedback, StructureFeedback, SpellingFeedback, SuggestionFeedback],
    Field(discriminator="type"),
]

_feedback_adapter = TypeAdapter(FeedbackItem)


def parse_feedback_items(raw_items: Optional[Iterable[Dict[str, Any]]]) -> List[FeedbackItem]:
    """解析反馈列表，无法识别的条目记录警告后丢弃"""
    items = []
    for raw in raw_items or []:
        try:
            items.append(_feedback_adapter.validate_python(raw))
        except ValidationError as e:
            logger.warning(f"忽略无法识别的反馈条目: {raw}, 错误: {e.error_count()} 处")
    return items


def dump_feedback_items(items: Iterable[FeedbackItem]) -> List[Dict[str, Any]]:
    """反馈条目转换为可持久化的字典列表"""
    return [item.model_dump() for item in items]


def extract_suggestion(items: List[FeedbackItem]) -> Optional[str]:
    """优先取 suggestion 类型的建议，否则取第一条带建议的反馈"""
    for item in items:
        if item.type == "suggestion" and item.suggestion:
            return item.suggestion
    for item in items:
        if item.suggestion:
            return item.suggestion
    return None


class ScoreResult(BaseModel):
    """评分服务返回的结果"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    accuracy_score: int = Field(ge=0, le=100)
    feedback: List[FeedbackItem] = Field(default_factory=list)

    @classmethod
    def from_raw(cls, data: Dict[str, Any]) -> "ScoreResult":
        """从模型原始 JSON 构建，反馈中的非法条目会被过滤"""
        feedback = parse_feedback_items(data.get("feedback"))
        score = data.get("accuracyScore", data.get("accuracy_score"))
        return cls(accuracy_score=score, feedback=feedback)


@dataclass
class SentenceContext:
    """提交评分时附带的上下文"""
    source_sentence: str
    full_source_text: str = ""
    translated_context: str = ""   # 之前已完成句子的译文
    level: str = "intermediate"
