from sqlalchemy import Column, String, Integer, Text, Boolean
from .base import BaseModel

from translation_practice.practice.practice_session import split_sentences
from translation_practice.practice.records import DifficultyLevel, ExerciseSummary

"""
练习模型
记录一篇翻译练习的原文、难度、分类和是否启用，原文按句末标点切分为句子。
"""
class Exercise(BaseModel):
    __tablename__ = "exercises"

    exercise_id = Column(String(64), nullable=False, unique=True, index=True)
    title = Column(String(200), nullable=False)
    source_text = Column(Text, nullable=False)
    level = Column(String(20), nullable=False, default=DifficultyLevel.INTERMEDIATE.value)  # beginner, intermediate, advanced
    category = Column(String(50))
    description = Column(Text)

    is_active = Column(Boolean, default=True)

    def to_summary(self) -> ExerciseSummary:
        return ExerciseSummary(
            id=self.exercise_id,
            title=self.title,
            source_text=self.source_text,
            level=DifficultyLevel.parse(self.level),
            category=self.category,
            description=self.description,
            sentence_count=len(split_sentences(self.source_text)),
        )

    def to_dict(self):
        return {
            "id": self.id,
            "exercise_id": self.exercise_id,
            "title": self.title,
            "source_text": self.source_text,
            "level": self.level,
            "category": self.category,
            "description": self.description,
            "sentence_count": len(split_sentences(self.source_text)),
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None
        }
