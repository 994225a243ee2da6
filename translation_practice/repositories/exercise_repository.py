from typing import List, Optional
from sqlalchemy.orm import Session

from translation_practice.models.exercise import Exercise
from translation_practice.repositories.base import BaseRepository

class ExerciseRepository(BaseRepository[Exercise]):
    def __init__(self, db: Session):
        super().__init__(db, Exercise)

    def get_active_exercises(self, level: Optional[str] = None, category: Optional[str] = None,
                             skip: int = 0, limit: int = 100) -> List[Exercise]:
        """获取启用的练习，可按难度和分类过滤"""
        query = self.db.query(Exercise).filter(Exercise.is_active == True)
        if level:
            query = query.filter(Exercise.level == level)
        if category:
            query = query.filter(Exercise.category == category)
        return query.order_by(Exercise.id.asc()).offset(skip).limit(limit).all()

    def get_by_exercise_ids(self, exercise_ids: List[str]) -> List[Exercise]:
        """批量获取启用的练习"""
        if not exercise_ids:
            return []
        return self.db.query(Exercise).filter(
            Exercise.exercise_id.in_(exercise_ids),
            Exercise.is_active == True
        ).all()

    def deactivate(self, exercise_id: str) -> bool:
        """停用练习"""
        exercise = self.get_by_exercise_id(exercise_id)
        if not exercise:
            return False
        exercise.is_active = False
        self.db.commit()
        return True
