from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime

class SubmitRequest(BaseModel):
    user_input: str

class HintRequest(BaseModel):
    user_input: str = ""

class SentenceProgressResponse(BaseModel):
    index: int
    original: str
    translation: str
    is_completed: bool
    accuracy_score: Optional[int] = None
    incorrect_attempts: int
    retry_count: int
    show_translation: bool
    suggestion: Optional[str] = None

class PenaltyResponse(BaseModel):
    current_average: int
    total_incorrect_attempts: int
    total_retries: int
    total_penalty: int
    current_score: int

class QuickReviewProgressResponse(BaseModel):
    current: int
    total: int
    percentage: int

class SessionStateResponse(BaseModel):
    exercise_id: str
    mode: str
    current_index: int
    total_sentences: int
    is_complete: bool
    has_more_hints: bool
    can_skip: bool
    hints_shown: int
    current_hint: Optional[str] = None
    total_hints_used: int
    sentences: List[SentenceProgressResponse]
    current_penalty: Optional[PenaltyResponse] = None
    quick_review_progress: Optional[QuickReviewProgressResponse] = None

class CompletionResponse(BaseModel):
    graded: bool
    base_score: Optional[int] = None
    final_score: Optional[int] = None
    total_incorrect_attempts: int = 0
    total_retries: int = 0
    total_penalty: int = 0
    attempt_number: Optional[int] = None
    points_earned: Optional[int] = None

class SubmissionResponse(BaseModel):
    status: str
    sentence_index: int
    user_input: str
    accuracy_score: Optional[int] = None
    feedback: List[Dict[str, Any]] = Field(default_factory=list)
    auto_advanced: bool = False
    was_last_sentence: bool = False
    can_skip: bool = False
    retryable: bool = False
    session_complete: bool = False
    error: Optional[str] = None
    completion: Optional[CompletionResponse] = None
    session: SessionStateResponse

class AdvanceResponse(BaseModel):
    completion: Optional[CompletionResponse] = None
    session: SessionStateResponse

class HintResponse(BaseModel):
    status: str
    hint: Optional[str] = None
    hints_remaining: int = 0
    error: Optional[str] = None

class QuickReviewResponse(BaseModel):
    started: bool
    message: str
    session: Optional[SessionStateResponse] = None

class SentenceAttemptResponse(BaseModel):
    sentence_index: int
    user_input: str
    accuracy_score: int
    feedback: List[Dict[str, Any]] = Field(default_factory=list)
    incorrect_attempts: int
    retry_count: int

class AttemptResponse(BaseModel):
    exercise_id: str
    attempt_number: int
    accuracy_score: int
    base_score: int
    total_incorrect_attempts: int
    total_retries: int
    total_penalty: int
    points_earned: int
    hints_used: int
    user_input: str
    sentence_attempts: List[SentenceAttemptResponse]
    timestamp: Optional[datetime] = None
