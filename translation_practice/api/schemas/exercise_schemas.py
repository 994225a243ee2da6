from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime

class ExerciseBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    source_text: str = Field(..., min_length=1)
    level: str = "intermediate"
    category: Optional[str] = None
    description: Optional[str] = None

class ExerciseCreate(ExerciseBase):
    exercise_id: Optional[str] = Field(None, max_length=64)

class ExerciseResponse(ExerciseBase):
    id: int
    exercise_id: str
    sentence_count: int
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(
        from_attributes=True
    )

class ExerciseListResponse(BaseModel):
    exercises: List[ExerciseResponse]
    total: int
    skip: int
    limit: int
