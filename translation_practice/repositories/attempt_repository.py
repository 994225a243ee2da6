from sqlalchemy.orm import Session

from translation_practice.models.exercise_attempt import ExerciseAttemptModel
from translation_practice.repositories.base import BaseRepository

class AttemptRepository(BaseRepository[ExerciseAttemptModel]):
    def __init__(self, db: Session):
        super().__init__(db, ExerciseAttemptModel)
