from sqlalchemy import Column, String, Integer, Float, Date, JSON

from translation_practice.models.base import BaseModel
from translation_practice.practice.records import ReviewRecord
from translation_practice.practice.spaced_repetition import DEFAULT_EASINESS_FACTOR


"""
复习记录模型
每个练习一条，保存间隔重复算法的状态：难易系数、间隔、下次复习日期、复习次数、上次得分和出错的句子下标。
"""


class ReviewRecordModel(BaseModel):
    __tablename__ = "review_records"

    exercise_id = Column(String(64), nullable=False, unique=True, index=True)
    easiness_factor = Column(Float, nullable=False, default=DEFAULT_EASINESS_FACTOR)
    interval = Column(Integer, nullable=False, default=0)
    next_review_date = Column(Date, index=True)
    repetition_count = Column(Integer, nullable=False, default=0)
    last_review_date = Column(Date)
    last_score = Column(Integer, nullable=False, default=0)
    incorrect_sentence_indices = Column(JSON, default=list)

    def to_record(self) -> ReviewRecord:
        return ReviewRecord(
            exercise_id=self.exercise_id,
            easiness_factor=self.easiness_factor,
            interval=self.interval or 0,
            next_review_date=self.next_review_date,
            repetition_count=self.repetition_count or 0,
            last_review_date=self.last_review_date,
            last_score=self.last_score or 0,
            incorrect_sentence_indices=set(self.incorrect_sentence_indices or []),
        )

    def apply_record(self, record: ReviewRecord):
        self.easiness_factor = record.easiness_factor
        self.interval = record.interval
        self.next_review_date = record.next_review_date
        self.repetition_count = record.repetition_count
        self.last_review_date = record.last_review_date
        self.last_score = record.last_score
        self.incorrect_sentence_indices = sorted(record.incorrect_sentence_indices)
