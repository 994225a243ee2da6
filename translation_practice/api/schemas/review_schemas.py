from pydantic import BaseModel
from typing import List, Optional
from datetime import date

class ReviewQueueItemResponse(BaseModel):
    exercise_id: str
    title: str
    level: str
    category: Optional[str] = None
    urgency: str
    next_review_date: date
    last_score: int
    estimated_time: int
    incorrect_question_count: int
    repetition_count: int
    interval: int
    easiness_factor: float

class ReviewQueueResponse(BaseModel):
    items: List[ReviewQueueItemResponse]
    total: int

class DueReviewResponse(BaseModel):
    count: int
    urgent_count: int

class ReviewStatsResponse(BaseModel):
    reviews_this_week: int
    total_reviews_completed: int
    exercises_in_review: int
