from sqlalchemy.orm import Session

from translation_practice.models.practice_progress import PracticeProgress
from translation_practice.repositories.base import BaseRepository

class ProgressRepository(BaseRepository[PracticeProgress]):
    def __init__(self, db: Session):
        super().__init__(db, PracticeProgress)
