from sqlalchemy import Column, String, Integer, Text, DateTime, JSON
from datetime import datetime

from translation_practice.models.base import BaseModel
from translation_practice.practice.records import ExerciseAttempt, SentenceAttempt
import pytz


"""
练习记录模型
每个练习只保留最近一次完整作答：扣分后的得分、扣分明细、积分、提示次数以及逐句结果。
"""


class ExerciseAttemptModel(BaseModel):
    __tablename__ = "exercise_attempts"

    exercise_id = Column(String(64), nullable=False, unique=True, index=True)
    attempt_number = Column(Integer, nullable=False, default=1)
    accuracy_score = Column(Integer, nullable=False)
    base_score = Column(Integer, nullable=False)
    total_incorrect_attempts = Column(Integer, default=0)
    total_retries = Column(Integer, default=0)
    total_penalty = Column(Integer, default=0)
    points_earned = Column(Integer, default=0)
    hints_used = Column(Integer, default=0)
    user_input = Column(Text, default="")
    sentence_attempts = Column(JSON, default=list)
    completed_at = Column(DateTime, default=lambda: datetime.now(pytz.utc))

    def to_attempt(self) -> ExerciseAttempt:
        return ExerciseAttempt(
            exercise_id=self.exercise_id,
            attempt_number=self.attempt_number,
            accuracy_score=self.accuracy_score,
            base_score=self.base_score,
            total_incorrect_attempts=self.total_incorrect_attempts or 0,
            total_retries=self.total_retries or 0,
            total_penalty=self.total_penalty or 0,
            points_earned=self.points_earned or 0,
            hints_used=self.hints_used or 0,
            user_input=self.user_input or "",
            sentence_attempts=[SentenceAttempt.from_dict(sa) for sa in self.sentence_attempts or []],
            timestamp=self.completed_at,
        )

    def apply_attempt(self, attempt: ExerciseAttempt):
        self.attempt_number = attempt.attempt_number
        self.accuracy_score = attempt.accuracy_score
        self.base_score = attempt.base_score
        self.total_incorrect_attempts = attempt.total_incorrect_attempts
        self.total_retries = attempt.total_retries
        self.total_penalty = attempt.total_penalty
        self.points_earned = attempt.points_earned
        self.hints_used = attempt.hints_used
        self.user_input = attempt.user_input
        self.sentence_attempts = [sa.to_dict() for sa in attempt.sentence_attempts]
        self.completed_at = attempt.timestamp
